#!/usr/bin/env python
"""
CPUE Standardization Comparison
===============================

Simulates (or loads) CPUE data, fits the configured models, aligns their
year effects to the reference geometric mean, and writes the comparison.

Usage:
    python run_comparison.py                            # spatial lognormal, seed 42
    python run_comparison.py --scenario spatiotemporal --family hurdle
    python run_comparison.py --models glm:gamma gam:gamma --family gamma
    python run_comparison.py --data catches.csv --reference glm_lognormal
    python run_comparison.py --cache-dir cache          # reuse cached fits
    python run_comparison.py --cache-dir cache --recompute
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from cpue_compare import (
    ComparisonConfig,
    ModelSpec,
    plot_index_comparison,
    plot_simulated_field,
    read_cpue_csv,
    run_comparison,
)

SCRIPT_DIR = Path(__file__).parent
OUTPUT_DIR = SCRIPT_DIR / "output"


def parse_model(text):
    """'method[:family]' -> ModelSpec named '<method>_<family>'."""
    method, _, family = text.partition(':')
    if method.startswith('delta_'):
        return ModelSpec(method, method)
    family = family or 'lognormal'
    return ModelSpec(f'{method}_{family}', method, family)


def build_parser():
    parser = argparse.ArgumentParser(description='Compare CPUE standardization models')
    parser.add_argument('--config', type=Path, help='JSON config file (overridden by flags)')
    parser.add_argument('--scenario', choices=['spatial', 'spatiotemporal'])
    parser.add_argument('--family', choices=['lognormal', 'gamma', 'hurdle'])
    parser.add_argument('--seed', type=int, help='Random seed for simulation')
    parser.add_argument('--n-years', type=int)
    parser.add_argument('--models', nargs='+', metavar='METHOD[:FAMILY]',
                        help='e.g. glm:lognormal gam:gamma mixed bayes delta_glm')
    parser.add_argument('--reference', help="Reference series name ('truth' for simulated data)")
    parser.add_argument('--data', type=Path, help='Real CPUE CSV with year and cpue columns')
    parser.add_argument('--cache-dir', type=Path, help='Directory for cached fits')
    parser.add_argument('--recompute', action='store_true', help='Refit even if cached')
    parser.add_argument('--output-dir', type=Path, default=OUTPUT_DIR)
    parser.add_argument('--no-plot', action='store_true')
    parser.add_argument('--verbose', action='store_true')
    return parser


def config_from_args(args):
    overrides = {}
    if args.config:
        with open(args.config) as fh:
            overrides.update(json.load(fh))

    flag_values = {
        'scenario': args.scenario,
        'family': args.family,
        'random_state': args.seed,
        'n_years': args.n_years,
        'reference': args.reference,
        'cache_dir': str(args.cache_dir) if args.cache_dir else None,
    }
    overrides.update({k: v for k, v in flag_values.items() if v is not None})
    if args.models:
        overrides['models'] = [parse_model(m).to_dict() for m in args.models]
    if args.recompute:
        overrides['recompute'] = True
    if args.verbose:
        overrides['verbose'] = True

    return ComparisonConfig.from_dict(overrides)


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = config_from_args(args)

    data = read_cpue_csv(args.data) if args.data else None
    result = run_comparison(config, data=data)

    output_dir = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    result.table.to_csv(output_dir / 'comparison_table.csv', index=False)
    summary = result.summary()
    summary.to_csv(output_dir / 'summary.csv')
    with open(output_dir / 'config.json', 'w') as fh:
        json.dump(config.to_dict(), fh, indent=2, default=str)

    print("=" * 70)
    print(f"Reference: {result.reference}")
    print("=" * 70)
    print(summary.to_string(float_format=lambda v: f"{v:.4f}"))

    if not args.no_plot:
        plot_index_comparison(result.table, save_path=output_dir / 'index_comparison.png')
        if result.simulation is not None:
            plot_simulated_field(result.simulation, save_path=output_dir / 'simulated_field.png')
        print(f"\nPlots saved to {output_dir}")

    return result


if __name__ == "__main__":
    main()
