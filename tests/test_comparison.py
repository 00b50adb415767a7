"""
Test suite for model comparison, configuration and result caching.
"""
import json

import numpy as np
import pandas as pd
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from cpue_compare import (
    ComparisonConfig,
    ModelSpec,
    ResultCache,
    YearEffects,
    build_comparison_table,
    fit_all,
    geometric_mean,
    nominal_index,
    run_comparison,
    simulate_spatial_cpue,
    true_year_effects,
    usable_models,
)
from cpue_compare.cache import compute_config_hash, dataframe_fingerprint, make_key
from cpue_compare.comparison import default_models


@pytest.fixture
def three_series():
    """Hand-built series on log, logit and identity links."""
    years = [2000, 2001, 2002]
    return [
        YearEffects('log_model', years, [0.1, -0.2], link='log', treatment_contrasts=True),
        YearEffects('logit_model', years, [0.0, 0.5, -0.5], link='logit'),
        YearEffects('raw_model', years, [2.0, 4.0, 8.0], link='identity'),
    ]


@pytest.fixture(scope='module')
def small_sim():
    return simulate_spatial_cpue(
        n_sites=20, n_years=5, n_vessels=3, n_samples_per_year=60,
        year_effects=[0.0, 0.3, -0.2, 0.4, -0.3], random_state=7
    )


@pytest.fixture
def small_config():
    return {
        'n_years': 5,
        'n_sites': 20,
        'n_vessels': 3,
        'n_samples_per_year': 60,
        'random_state': 3,
        'models': [
            {'name': 'glm', 'method': 'glm'},
            {'name': 'mixed', 'method': 'mixed'},
        ],
    }


class TestBuildComparisonTable:
    """Tests for geometric-mean alignment across models."""

    def test_every_series_matches_reference(self, three_series):
        table = build_comparison_table(three_series, reference='raw_model')

        assert table.attrs['reference'] == 'raw_model'
        np.testing.assert_almost_equal(table.attrs['reference_geometric_mean'], 4.0)
        for _, group in table.groupby('model'):
            np.testing.assert_almost_equal(geometric_mean(group['index'].values), 4.0)

    def test_reference_series_unchanged(self, three_series):
        table = build_comparison_table(three_series, reference='raw_model')
        raw = table[table['model'] == 'raw_model']

        np.testing.assert_allclose(raw['index'], [2.0, 4.0, 8.0])

    def test_no_reference_anchors_to_one(self, three_series):
        table = build_comparison_table(three_series)

        assert table.attrs['reference'] is None
        for _, group in table.groupby('model'):
            np.testing.assert_almost_equal(geometric_mean(group['index'].values), 1.0)

    def test_reference_object(self, three_series):
        external = YearEffects('ext', [2000, 2001], [1.0, 9.0], link='identity')
        table = build_comparison_table(three_series, reference=external)

        np.testing.assert_almost_equal(table.attrs['reference_geometric_mean'], 3.0)

    def test_unknown_reference(self, three_series):
        with pytest.raises(ValueError, match="Unknown reference"):
            build_comparison_table(three_series, reference='missing')

    def test_empty(self):
        with pytest.raises(ValueError, match="empty"):
            build_comparison_table([])

    def test_columns(self, three_series):
        table = build_comparison_table(three_series)

        assert list(table.columns) == ['model', 'method', 'family', 'year', 'raw', 'index']
        assert len(table) == 9


class TestReferenceSeries:
    """Tests for the nominal and true indices."""

    def test_nominal_index(self):
        data = pd.DataFrame({
            'year': [2000, 2000, 2000, 2001, 2001],
            'cpue': [1.0, 4.0, 0.0, 2.0, 8.0],
        })
        effects = nominal_index(data)

        assert effects.link == 'identity'
        assert list(effects.years) == [2000, 2001]
        np.testing.assert_allclose(effects.response_scale(), [2.0, 4.0])

    def test_nominal_index_with_zeros(self):
        data = pd.DataFrame({'year': [2000, 2001], 'cpue': [0.0, 2.0]})

        with pytest.raises(ValueError, match="strictly positive"):
            nominal_index(data, positive_only=False)

    def test_true_year_effects(self, small_sim):
        truth = true_year_effects(small_sim)

        assert truth.name == 'truth'
        np.testing.assert_allclose(truth.response_scale(), small_sim['true_index'])


class TestComparisonConfig:
    """Tests for configuration handling."""

    def test_defaults(self):
        config = ComparisonConfig.from_dict()

        assert config.scenario == 'spatial'
        assert config.reference == 'truth'
        assert [m.name for m in config.models] == ['glm_lognormal', 'gam_lognormal',
                                                   'mixed_lognormal']

    def test_hurdle_defaults(self):
        names = [m.name for m in default_models('hurdle')]

        assert 'delta_glm' in names
        assert 'delta_gam' in names

    def test_gamma_defaults(self):
        config = ComparisonConfig.from_dict({'family': 'gamma'})

        assert config.models[0] == ModelSpec('glm_gamma', 'glm', 'gamma')

    def test_models_from_dicts(self, small_config):
        config = ComparisonConfig.from_dict(small_config)

        assert all(isinstance(m, ModelSpec) for m in config.models)
        assert config.models[1].method == 'mixed'

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown config keys"):
            ComparisonConfig.from_dict({'n_yeras': 5})

    def test_unknown_scenario(self):
        with pytest.raises(ValueError, match="Unknown scenario"):
            ComparisonConfig.from_dict({'scenario': 'inla'})

    def test_from_json(self, tmp_path, small_config):
        path = tmp_path / 'config.json'
        with open(path, 'w') as fh:
            json.dump(small_config, fh)

        config = ComparisonConfig.from_json(path)

        assert config.n_years == 5
        assert config.models[0].name == 'glm'

    def test_from_json_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ComparisonConfig.from_json(tmp_path / 'nope.json')

    def test_duplicate_model_names(self):
        models = [{'name': 'glm', 'method': 'glm'},
                  {'name': 'glm', 'method': 'glm', 'family': 'gamma'}]
        with pytest.raises(ValueError, match="unique"):
            ComparisonConfig.from_dict({'models': models})

    @pytest.mark.parametrize("name", ['nominal', 'truth'])
    def test_reserved_model_names(self, name):
        with pytest.raises(ValueError, match="reserved"):
            ComparisonConfig.from_dict({'models': [{'name': name, 'method': 'glm'}]})


class TestUsableModels:
    """Tests for dropping models the data cannot support."""

    def test_grouped_models_need_group_column(self):
        specs = [ModelSpec('glm', 'glm'), ModelSpec('mixed', 'mixed'),
                 ModelSpec('bayes', 'bayes')]
        data = pd.DataFrame({'year': [2000, 2001], 'cpue': [1.0, 2.0]})

        with pytest.warns(UserWarning, match="'site'"):
            kept = usable_models(specs, data)

        assert [s.name for s in kept] == ['glm']

    def test_custom_group_column(self):
        specs = [ModelSpec('mixed', 'mixed', options={'group_col': 'port'})]
        data = pd.DataFrame({'year': [2000], 'cpue': [1.0], 'port': ['a']})

        assert usable_models(specs, data) == specs

    def test_nothing_left(self):
        data = pd.DataFrame({'year': [2000], 'cpue': [1.0]})

        with pytest.warns(UserWarning):
            with pytest.raises(ValueError, match="None of the configured models"):
                usable_models([ModelSpec('mixed', 'mixed')], data)


class TestResultCache:
    """Tests for the on-disk result store."""

    def test_computes_once(self, tmp_path):
        cache = ResultCache(tmp_path)
        calls = []

        def compute():
            calls.append(1)
            return {'value': 42}

        first = cache.get_or_compute('entry', compute, config={'a': 1})
        second = cache.get_or_compute('entry', compute)

        assert first == second == {'value': 42}
        assert len(calls) == 1
        assert 'entry' in cache
        assert cache.load_manifest()['entry']['config'] == {'a': 1}

    def test_recompute_overwrites(self, tmp_path):
        ResultCache(tmp_path).save('entry', 1)
        cache = ResultCache(tmp_path, recompute=True)

        assert cache.get_or_compute('entry', lambda: 2) == 2
        assert ResultCache(tmp_path).load('entry') == 2

    def test_missing_entry(self, tmp_path):
        with pytest.raises(KeyError):
            ResultCache(tmp_path).load('missing')

    def test_unsafe_key(self, tmp_path):
        cache = ResultCache(tmp_path)
        path = cache.save('glm/lognormal run', [1, 2])

        assert path.parent == tmp_path
        assert cache.load('glm/lognormal run') == [1, 2]

    def test_empty_key(self, tmp_path):
        with pytest.raises(ValueError, match="non-empty"):
            ResultCache(tmp_path).path_for('')

    def test_clear(self, tmp_path):
        cache = ResultCache(tmp_path)
        cache.save('a', 1)
        cache.save('b', 2)
        cache.clear()

        assert 'a' not in cache
        assert cache.load_manifest() == {}

    def test_keys_and_hashes(self):
        assert make_key('glm') == 'glm'
        key = make_key('glm', {'family': 'gamma'})
        assert key.startswith('glm-') and len(key) == len('glm-') + 12
        assert compute_config_hash({'a': 1, 'b': 2}) == compute_config_hash({'b': 2, 'a': 1})
        assert compute_config_hash({'a': 1}) != compute_config_hash({'a': 2})

    def test_dataframe_fingerprint(self):
        a = pd.DataFrame({'x': [1.0, 2.0]})
        b = pd.DataFrame({'x': [1.0, 2.5]})

        assert dataframe_fingerprint(a) == dataframe_fingerprint(a.copy())
        assert dataframe_fingerprint(a) != dataframe_fingerprint(b)


class TestFitAll:
    """Tests for fitting a list of model specs."""

    def test_without_cache(self, small_sim):
        specs = [ModelSpec('glm', 'glm'), ModelSpec('gam', 'gam')]
        effects = fit_all(small_sim['data'], specs)

        assert [e.name for e in effects] == ['glm', 'gam']

    def test_cached_results_reused(self, small_sim, tmp_path):
        specs = [ModelSpec('glm', 'glm')]
        cache = ResultCache(tmp_path)

        first = fit_all(small_sim['data'], specs, cache=cache)
        manifest = cache.load_manifest()
        second = fit_all(small_sim['data'], specs, cache=cache)

        assert len(manifest) == 1
        assert cache.load_manifest() == manifest
        np.testing.assert_allclose(first[0].coefficients, second[0].coefficients)

    def test_changed_data_new_entry(self, small_sim, tmp_path):
        specs = [ModelSpec('glm', 'glm')]
        cache = ResultCache(tmp_path)
        data = small_sim['data']

        fit_all(data, specs, cache=cache)
        fit_all(data[data['year'] > 2000], specs, cache=cache)

        assert len(cache.load_manifest()) == 2

    def test_fresh_fit_keeps_result(self, small_sim, tmp_path):
        specs = [ModelSpec('glm', 'glm')]
        cache = ResultCache(tmp_path)

        fresh = fit_all(small_sim['data'], specs, cache=cache)
        cached = fit_all(small_sim['data'], specs, cache=cache)

        assert 'result' in fresh[0].metadata
        assert 'result' not in cached[0].metadata
        assert cached[0].metadata['formula'] == fresh[0].metadata['formula']


class TestRunComparison:
    """End-to-end comparison runs."""

    def test_simulated_run(self, small_config):
        result = run_comparison(small_config)

        assert result.reference == 'truth'
        assert set(result.table['model']) == {'glm', 'mixed', 'nominal', 'truth'}
        anchor = result.table.attrs['reference_geometric_mean']
        np.testing.assert_almost_equal(anchor, geometric_mean(result.simulation['true_index']))
        for _, group in result.table.groupby('model'):
            np.testing.assert_almost_equal(geometric_mean(group['index'].values), anchor)

    def test_summary(self, small_config):
        summary = run_comparison(small_config).summary()

        assert list(summary.columns) == ['method', 'n_years', 'geometric_mean',
                                         'correlation', 'rmse_log', 'converged']
        np.testing.assert_almost_equal(summary.loc['truth', 'correlation'], 1.0)
        np.testing.assert_almost_equal(summary.loc['truth', 'rmse_log'], 0.0)
        assert summary.loc['glm', 'correlation'] > 0.8

    def test_wide(self, small_config):
        wide = run_comparison(small_config).wide()

        assert wide.shape == (5, 4)

    def test_supplied_data(self, small_sim, small_config):
        with pytest.warns(UserWarning, match="No simulated truth"):
            result = run_comparison(small_config, data=small_sim['data'])

        assert result.reference == 'glm'
        assert result.simulation is None
        assert 'truth' not in set(result.table['model'])

    def test_cache_dir(self, small_config, tmp_path):
        config = {**small_config, 'cache_dir': str(tmp_path)}
        first = run_comparison(config)
        second = run_comparison(config)

        assert len(ResultCache(tmp_path).load_manifest()) == 2
        pd.testing.assert_frame_equal(first.table, second.table)

    def test_year_and_cpue_only(self, small_sim):
        data = small_sim['data'][['year', 'cpue']]

        with pytest.warns(UserWarning, match="mixed_lognormal"):
            result = run_comparison({'random_state': 3}, data=data)

        assert result.reference == 'glm_lognormal'
        assert set(result.table['model']) == {'glm_lognormal', 'gam_lognormal', 'nominal'}
        assert result.summary().loc['gam_lognormal', 'n_years'] == 5

    def test_hurdle_run(self, small_config):
        config = {k: v for k, v in small_config.items() if k != 'models'}
        config['family'] = 'hurdle'

        with pytest.warns(UserWarning, match="zero-catch"):
            result = run_comparison(config)

        assert set(result.table['model']) == {'delta_glm', 'delta_gam', 'glm_binomial',
                                              'glm_lognormal', 'nominal', 'truth'}
        assert (result.data['cpue'] == 0).any()
        anchor = result.table.attrs['reference_geometric_mean']
        for _, group in result.table.groupby('model'):
            np.testing.assert_almost_equal(geometric_mean(group['index'].values), anchor)
        assert result.summary().loc['delta_glm', 'correlation'] > 0.5

    def test_spatiotemporal(self, small_config):
        result = run_comparison({**small_config, 'scenario': 'spatiotemporal'})

        assert result.simulation['params']['scenario'] == 'spatiotemporal'
        assert result.simulation['field'].shape == (20, 5)
        anchor = result.table.attrs['reference_geometric_mean']
        for _, group in result.table.groupby('model'):
            np.testing.assert_almost_equal(geometric_mean(group['index'].values), anchor)
        assert set(result.summary().index) == {'glm', 'mixed', 'nominal', 'truth'}

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
