"""
Comparison plots for aligned CPUE indices.
"""

from typing import Optional, Tuple

import numpy as np


def _pyplot():
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib is required for plotting. Install with: pip install matplotlib")
    return plt


def plot_index_comparison(
    table,
    reference: Optional[str] = None,
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None,
    title: str = 'Standardized CPUE Index Comparison',
    log_scale: bool = False
):
    """
    Overlay the normalized index of every model.

    Parameters
    ----------
    table : pd.DataFrame
        Output of build_comparison_table() (columns model, year, index).
    reference : str, optional
        Model drawn as a thick black line. Defaults to the table's
        recorded reference.
    figsize : tuple, default=(10, 6)
        Figure size.
    save_path : str, optional
        If provided, save figure to this path.
    title : str
        Figure title.
    log_scale : bool, default=False
        Log-scale y axis.

    Returns
    -------
    matplotlib.figure.Figure
    """
    plt = _pyplot()

    if 'index' not in table.columns:
        raise ValueError("table has no 'index' column. Use build_comparison_table().")

    if reference is None:
        reference = table.attrs.get('reference')

    models = [m for m in table['model'].unique() if m != reference]
    colors = plt.cm.tab10(np.linspace(0, 1, max(len(models), 1)))

    fig, ax = plt.subplots(figsize=figsize)

    for model, color in zip(models, colors):
        subset = table[table['model'] == model].sort_values('year')
        ax.plot(subset['year'], subset['index'], marker='o', markersize=4,
                linewidth=1.5, color=color, label=model)

    if reference is not None and reference in set(table['model']):
        subset = table[table['model'] == reference].sort_values('year')
        ax.plot(subset['year'], subset['index'], color='black', linewidth=3,
                label=f'{reference} (reference)', zorder=5)

    anchor = table.attrs.get('reference_geometric_mean')
    if anchor is not None:
        ax.axhline(y=anchor, color='gray', linestyle='--', alpha=0.5)

    if log_scale:
        ax.set_yscale('log')
    ax.set_xlabel('Year')
    ax.set_ylabel('Relative index (common geometric mean)')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend(loc='center left', bbox_to_anchor=(1.02, 0.5), fontsize=9)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_simulated_field(
    sim,
    year: Optional[int] = None,
    figsize: Tuple[int, int] = (6, 5),
    save_path: Optional[str] = None,
    cmap: str = 'viridis'
):
    """
    Scatter the simulated sites coloured by the latent spatial field.

    Parameters
    ----------
    sim : dict
        Output of simulate_spatial_cpue() / simulate_spatiotemporal_cpue().
    year : int, optional
        Year label to show. Defaults to the first year.
    figsize : tuple, default=(6, 5)
        Figure size.
    save_path : str, optional
        If provided, save figure to this path.
    cmap : str, default='viridis'
        Colormap.

    Returns
    -------
    matplotlib.figure.Figure
    """
    plt = _pyplot()

    years = list(sim['years'])
    if year is None:
        year = years[0]
    if year not in years:
        raise ValueError(f"year {year} not simulated. Available: {years}")

    sites = sim['sites']
    values = sim['field'][:, years.index(year)]

    fig, ax = plt.subplots(figsize=figsize)
    points = ax.scatter(sites['lon'], sites['lat'], c=values, cmap=cmap,
                        s=60, edgecolors='k', linewidth=0.5)
    fig.colorbar(points, ax=ax, label='Latent field')
    ax.set_xlabel('lon')
    ax.set_ylabel('lat')
    ax.set_title(f"Simulated {sim['params']['scenario']} field, {year}")

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
