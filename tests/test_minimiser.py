"""
Tests for the Minuit and lmfit minimisers on small generated samples.
"""

from types import SimpleNamespace

import numpy as np
import pytest
from scipy.stats import chi2

from mlfit.core.data import DataSetConfiguration, PDFWithData, PhaseSpaceBoundary, generate_toy_data
from mlfit.core.exceptions import ConfigurationError
from mlfit.core.fitting import (Converged, FitFunctionConfiguration, GenericFailure,
                                IntegrationFailure, MinimiserConfiguration, OutputConfiguration,
                                build_bottle, do_safe_fit, get_minimiser, list_minimisers)
from mlfit.core.fitting.minimiser import covariance_ellipse, minuit_status
from mlfit.core.parameters import ParameterSet, PhysicsParameter
from mlfit.core.pdfs import Gaussian


@pytest.fixture
def gaussian_fit():
    boundary = PhaseSpaceBoundary()
    boundary.set_continuous('mass', 5.0, 5.6, 'GeV')
    parameters = ParameterSet([PhysicsParameter('mass_mean', 5.3, 5.2, 5.4),
                               PhysicsParameter('mass_sigma', 0.03, 0.005, 0.1, step_size=0.001)])
    pdf = Gaussian()
    pdf.set_physics_parameters(parameters)
    data = generate_toy_data(pdf, boundary, 1000, rng=np.random.default_rng(3))
    return parameters, [PDFWithData(pdf, boundary, DataSetConfiguration('Memory', data_set=data))]


def _fit_function(parameters, pdf_with_data):
    bottle = build_bottle(parameters, [e.get_pdf() for e in pdf_with_data],
                          [e.get_data_set() for e in pdf_with_data])
    config = FitFunctionConfiguration()
    config.set_integrator_test(False)
    return config.get_fit_function(bottle)


class TestMinuit:
    def test_gaussian_fit(self, gaussian_fit, function_config):
        parameters, pdf_with_data = gaussian_fit
        result = do_safe_fit(MinimiserConfiguration('Minuit'), function_config, parameters,
                             pdf_with_data, verbosity=-1)

        results = result.get_result_parameter_set()
        assert result.get_fit_status() == 3
        assert results.get_result_parameter('mass_mean').get_value() == pytest.approx(5.3, abs=0.01)
        assert results.get_result_parameter('mass_sigma').get_value() == pytest.approx(0.03, abs=0.005)
        covariance = result.get_covariance_matrix()
        assert covariance.shape == (2, 2)
        assert np.allclose(covariance, covariance.T)
        assert result.get_covariance_names() == ['mass_mean', 'mass_sigma']

    def test_fixed_parameter_not_minimised(self, gaussian_fit, function_config):
        parameters, pdf_with_data = gaussian_fit
        parameters.get_physics_parameter('mass_sigma').set_type('Fixed')
        result = do_safe_fit(MinimiserConfiguration('Minuit'), function_config, parameters,
                             pdf_with_data, verbosity=-1)
        sigma = result.get_result_parameter_set().get_result_parameter('mass_sigma')
        assert sigma.get_value() == 0.03
        assert sigma.get_error() == 0.0
        assert result.get_covariance_names() == ['mass_mean']

    def test_simplex(self, decay_fit, function_config):
        parameters, pdf_with_data = decay_fit
        result = do_safe_fit(MinimiserConfiguration('Simplex'), function_config, parameters,
                             pdf_with_data, verbosity=-1)
        gamma = result.get_result_parameter_set().get_result_parameter('gamma')
        assert gamma.get_value() == pytest.approx(0.7, abs=0.1)

    def test_contours(self, gaussian_fit, function_config):
        parameters, pdf_with_data = gaussian_fit
        output_config = OutputConfiguration(contour_plots=[('mass_mean', 'mass_sigma', 2)])
        result = do_safe_fit(MinimiserConfiguration('Minuit', output_config, contour_points=20),
                             function_config, parameters, pdf_with_data, verbosity=-1)

        contours = result.get_contours()
        assert len(contours) == 1
        contour = contours[0]
        assert contour.get_contour_number() == 2
        one_sigma = contour.get_plot(1)
        two_sigma = contour.get_plot(2)
        assert one_sigma.shape[1] == 2
        assert len(one_sigma) > 0
        # The 2 sigma contour encloses the 1 sigma contour
        assert np.ptp(two_sigma[:, 0]) > np.ptp(one_sigma[:, 0])

    def test_all_parameters_fixed(self, decay_fit, function_config):
        parameters, pdf_with_data = decay_fit
        parameters.get_physics_parameter('gamma').set_type('Fixed')
        result = do_safe_fit(MinimiserConfiguration('Minuit'), function_config, parameters,
                             pdf_with_data, verbosity=-1)
        assert result.get_fit_status() == 3
        assert np.isfinite(result.get_minimum_value())


class TestMinuitStatus:
    def _fmin(self, **flags):
        defaults = dict(is_valid=False, has_accurate_covar=False, has_made_posdef_covar=False,
                        has_covariance=False)
        defaults.update(flags)
        return SimpleNamespace(**defaults)

    def test_mapping(self):
        assert minuit_status(self._fmin(is_valid=True, has_accurate_covar=True, has_covariance=True)) == 3
        assert minuit_status(self._fmin(has_made_posdef_covar=True, has_covariance=True)) == 2
        assert minuit_status(self._fmin(is_valid=True, has_covariance=True)) == 1
        assert minuit_status(self._fmin()) == 0


class TestLmfit:
    @pytest.mark.parametrize('method', ['nelder', 'powell', 'lbfgsb'])
    def test_decay_fit(self, decay_fit, function_config, method):
        parameters, pdf_with_data = decay_fit
        result = do_safe_fit(MinimiserConfiguration(method), function_config, parameters,
                             pdf_with_data, verbosity=-1)

        gamma = result.get_result_parameter_set().get_result_parameter('gamma')
        assert result.get_fit_status() >= 1
        assert gamma.get_value() == pytest.approx(0.7, abs=0.1)
        assert 0.0 < gamma.get_error() < 0.1

    def test_agrees_with_minuit(self, gaussian_fit, function_config):
        parameters, pdf_with_data = gaussian_fit
        minuit = do_safe_fit(MinimiserConfiguration('Minuit'), function_config, parameters,
                             pdf_with_data, verbosity=-1)
        nelder = do_safe_fit(MinimiserConfiguration('nelder'), function_config, parameters,
                             pdf_with_data, verbosity=-1)
        assert nelder.get_minimum_value() == pytest.approx(minuit.get_minimum_value(), abs=0.05)
        for name in ('mass_mean', 'mass_sigma'):
            a = minuit.get_result_parameter_set().get_result_parameter(name)
            b = nelder.get_result_parameter_set().get_result_parameter(name)
            assert b.get_value() == pytest.approx(a.get_value(), abs=0.5 * a.get_error())
            assert b.get_error() == pytest.approx(a.get_error(), rel=0.2)

    def test_contour_ellipse(self, gaussian_fit, function_config):
        parameters, pdf_with_data = gaussian_fit
        output_config = OutputConfiguration(contour_plots=[('mass_mean', 'mass_sigma', 1)])
        result = do_safe_fit(MinimiserConfiguration('nelder', output_config), function_config,
                             parameters, pdf_with_data, verbosity=-1)
        if result.get_fit_status() != 3:
            pytest.skip("Hessian not positive definite for this sample")
        contour = result.get_contours()[0]
        assert contour.get_plot(1).shape == (40, 2)


class TestCovarianceEllipse:
    def test_unit_covariance(self):
        points = covariance_ellipse([1.0, 2.0], np.eye(2), 1, points=16)
        radius = np.sqrt(chi2.ppf(chi2.cdf(1.0, 1), 2))
        distances = np.hypot(points[:, 0] - 1.0, points[:, 1] - 2.0)
        assert points.shape == (16, 2)
        np.testing.assert_allclose(distances, radius)

    def test_scaled_axes(self):
        points = covariance_ellipse([0.0, 0.0], np.diag([4.0, 1.0]), 1, points=8)
        assert np.ptp(points[:, 0]) == pytest.approx(2.0 * np.ptp(points[:, 1]))


class TestOutcomes:
    def test_minimise_outcomes(self, decay_fit, script):
        from mlfit.core.exceptions import FitFailure, IntegrationError
        parameters, pdf_with_data = decay_fit
        fit_function = _fit_function(parameters, pdf_with_data)
        minimiser = get_minimiser('Scripted', 1)

        script.outcomes = [IntegrationError("no integral"), FitFailure("bad"), 3]
        assert isinstance(minimiser.minimise(fit_function), IntegrationFailure)
        assert isinstance(minimiser.minimise(fit_function), GenericFailure)
        outcome = minimiser.minimise(fit_function)
        assert isinstance(outcome, Converged)
        assert outcome.result is minimiser.get_fit_result()


class TestRegistry:
    def test_known_minimisers(self):
        names = list_minimisers()
        for name in ('Minuit', 'Migrad', 'Simplex', 'nelder', 'powell', 'lbfgsb'):
            assert name in names

    def test_unknown_minimiser(self):
        with pytest.raises(ConfigurationError):
            get_minimiser('Genetic', 3)
