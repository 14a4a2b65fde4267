"""
Tests for toy studies and fit statistics.
"""

import numpy as np
import pytest

from mlfit.core.data import DataSetConfiguration, PDFWithData
from mlfit.core.fitting import (FitResult, FitResultVector, MinimiserConfiguration, ToyStudy,
                                calculate_statistics, extract_fit_statistics, format_statistics,
                                profile_likelihood, profile_likelihood_2d, pull_statistics)
from mlfit.core.parameters import ParameterSet, PhysicsParameter, ResultParameterSet
from mlfit.core.pdfs import DecayTime


def _vector(points, name='gamma'):
    """FitResultVector from (value, nll, status) triples with unit errors around 0.7."""
    vector = FitResultVector([name])
    for value, nll, status in points:
        results = ResultParameterSet()
        results.force_new_result_parameter(name, value, 0.7, 0.1, 0.1, 2.0)
        vector.add_fit_result(FitResult(nll, results, status), timed=False)
    return vector


class TestToyStudy:
    def test_generate_and_fit(self, time_boundary, decay_parameters, function_config):
        entry = PDFWithData(DecayTime(), time_boundary,
                            DataSetConfiguration('Generate', number_events=500, seed=8))
        study = ToyStudy(MinimiserConfiguration('Minuit'), function_config, decay_parameters,
                         [entry], number_studies=3, verbosity=-1)
        vector = study.do_toy_study()

        assert vector.number_results() == 3
        assert vector.get_all_names() == ['gamma']
        np.testing.assert_array_equal(vector.get_fit_statuses(), [3, 3, 3])
        gammas = vector.get_parameter_values('gamma')
        assert np.all(np.abs(gammas - 0.7) < 0.2)
        # Fresh events for every toy
        assert len(set(np.round(gammas, 10))) == 3
        assert np.all(vector.get_real_times() >= 0.0)
        assert decay_parameters.get_physics_parameter('gamma').get_value() == 0.7

    def test_generation_values(self, time_boundary, decay_parameters, function_config):
        entry = PDFWithData(DecayTime(), time_boundary,
                            DataSetConfiguration('Generate', number_events=2000, seed=9))
        generation = ParameterSet([PhysicsParameter('gamma', 1.2)])
        study = ToyStudy(MinimiserConfiguration('Minuit'), function_config, decay_parameters,
                         [entry], number_studies=2, verbosity=-1, generation_values=generation)
        vector = study.do_toy_study()

        np.testing.assert_allclose(vector.get_parameter_values('gamma'), [1.2, 1.2], atol=0.15)
        # Fits start from, and pulls refer to, the checked starting values
        for result in vector:
            gamma = result.get_result_parameter_set().get_result_parameter('gamma')
            assert gamma.get_original_value() == 0.7
        assert decay_parameters.get_physics_parameter('gamma').get_value() == 0.7

    def test_strategy_by_name(self, time_boundary, decay_parameters, function_config, script):
        entry = PDFWithData(DecayTime(), time_boundary,
                            DataSetConfiguration('Generate', number_events=50, seed=8))
        study = ToyStudy(MinimiserConfiguration('Scripted'), function_config, decay_parameters,
                         [entry], number_studies=2, strategy='Petes')
        assert study.do_toy_study().number_results() == 2
        # No phases to reflect, so one fit per toy
        assert len(script.calls) == 2


class TestStatistics:
    def test_information_criteria(self):
        stats = calculate_statistics(100.0, 1000, 2)
        assert stats['aic'] == pytest.approx(204.0)
        assert stats['bic'] == pytest.approx(2 * np.log(1000) + 200.0)
        assert stats['dof'] == 998

    def test_no_data(self):
        assert calculate_statistics(0.0, 0, 1)['bic'] == np.inf

    def test_extract_and_format(self):
        results = ResultParameterSet()
        results.force_new_result_parameter('gamma', 0.7, 0.7, 0.01, 0.1, 2.0)
        results.force_new_result_parameter('Aperp_sq', 0.25, 0.25, 0.0, 0.0, 0.0, 'Fixed')
        stats = extract_fit_statistics(FitResult(50.0, results, 3), 400)
        assert stats['n_params'] == 1
        assert stats['fit_status'] == 3
        text = format_statistics(stats)
        assert text.startswith("=== Fit Statistics ===")
        assert "Fit status = 3" in text
        assert "N data = 400" in text

    def test_pulls_exclude_failures(self):
        vector = _vector([(0.8, 1.0, 3), (0.6, 1.0, 3), (0.7, 1.0, 3), (5.0, -9999.0, -1)])
        stats = pull_statistics(vector, 'gamma')
        assert stats['n'] == 3
        assert stats['mean'] == pytest.approx(0.0, abs=1e-12)
        assert stats['width'] == pytest.approx(1.0)
        assert stats['width_error'] == pytest.approx(1.0 / 2.0)

    def test_pulls_need_two_fits(self):
        stats = pull_statistics(_vector([(0.8, 1.0, 3)]), 'gamma')
        assert stats['n'] == 1
        assert np.isnan(stats['mean'])

    def test_profile_likelihood(self):
        vector = _vector([(0.6, 12.0, 3), (0.7, 10.0, 3), (0.8, -9999.0, -1), (0.9, 11.5, 1)])
        values, delta = profile_likelihood(vector, 'gamma')
        np.testing.assert_allclose(values, [0.6, 0.7, 0.9])
        np.testing.assert_allclose(delta, [2.0, 0.0, 1.5])

    def test_profile_all_failed(self):
        values, delta = profile_likelihood(_vector([(0.6, -9999.0, -1)]), 'gamma')
        assert len(values) == 0
        assert len(delta) == 0

    def test_profile_likelihood_2d(self):
        vectors = []
        for outer, nlls in ((0.1, [5.0, 4.0]), (0.2, [3.0, -9999.0])):
            vector = FitResultVector(['deltaGamma', 'gamma'])
            for inner, nll in zip((0.6, 0.7), nlls):
                results = ResultParameterSet()
                results.force_new_result_parameter('deltaGamma', outer, outer, 0.0, outer, outer, 'Fixed')
                results.force_new_result_parameter('gamma', inner, inner, 0.0, inner, inner, 'Fixed')
                vector.add_fit_result(FitResult(nll, results, -1 if nll == -9999.0 else 3), timed=False)
            vectors.append(vector)

        outer, inner, delta = profile_likelihood_2d(vectors, 'deltaGamma', 'gamma')
        assert delta.shape == (2, 2)
        np.testing.assert_allclose(outer[:, 0], [0.1, 0.2])
        np.testing.assert_allclose(inner[0], [0.6, 0.7])
        np.testing.assert_allclose(delta[0], [2.0, 1.0])
        assert delta[1, 0] == 0.0
        assert np.isnan(delta[1, 1])
