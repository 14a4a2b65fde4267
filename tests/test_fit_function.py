"""
Tests for the physics bottle, constraints and the negative log-likelihood.
"""

import numpy as np
import pytest

from mlfit.core.data import DataSet
from mlfit.core.exceptions import ConfigurationError
from mlfit.core.fitting import (ConstraintFunction, ExternalConstraint, FitFunctionConfiguration,
                                PhysicsBottle, build_bottle, get_fit_function)
from mlfit.core.fitting.constraints import gamma_l, gamma_obs
from mlfit.core.parameters import ParameterSet, PhysicsParameter
from mlfit.core.pdfs import DecayTime


def _gamma_set(gamma=0.66, delta_gamma=0.1):
    return ParameterSet([PhysicsParameter('gamma', gamma), PhysicsParameter('deltaGamma', delta_gamma)])


class TestConstraints:
    def test_gamma_l(self):
        constraint = ConstraintFunction([ExternalConstraint('GammaL', 0.7, 0.05)])
        # GammaL = 0.66 + 0.05 = 0.71, penalty 0.5 * (0.01 / 0.05)^2
        assert constraint.evaluate(_gamma_set()) == pytest.approx(0.02)

    def test_gamma_obs(self):
        expected = gamma_obs(0.66, 0.1)
        ratio = 0.1 / 2.0 / 0.66
        assert expected == pytest.approx(0.66 * (1 - ratio**2) / (1 + ratio**2))
        constraint = ConstraintFunction([ExternalConstraint('GammaObs', expected, 0.01)])
        assert constraint.evaluate(_gamma_set()) == pytest.approx(0.0)

    def test_plain_parameter(self):
        constraint = ConstraintFunction([ExternalConstraint('gamma', 0.6, 0.03)])
        assert constraint.evaluate(_gamma_set()) == pytest.approx(0.5 * 4.0)

    def test_absent_parameter_ignored(self):
        constraint = ConstraintFunction([ExternalConstraint('Phi_s', 0.0, 0.1)])
        assert constraint.evaluate(_gamma_set()) == 0.0

    def test_sum_of_constraints(self):
        constraint = ConstraintFunction([ExternalConstraint('GammaL', 0.7, 0.05),
                                         ExternalConstraint('gamma', 0.6, 0.03)])
        assert constraint.evaluate(_gamma_set()) == pytest.approx(0.02 + 2.0)

    def test_derived_constraint_needs_gamma(self):
        constraint = ConstraintFunction([ExternalConstraint('GammaL', 0.7, 0.05)])
        with pytest.raises(ConfigurationError):
            constraint.evaluate(ParameterSet([PhysicsParameter('gamma', 0.66)]))

    def test_non_positive_error(self):
        with pytest.raises(ConfigurationError):
            ExternalConstraint('gamma', 0.6, 0.0)

    def test_gamma_l_formula(self):
        assert gamma_l(0.66, 0.1) == pytest.approx(0.71)


class TestPhysicsBottle:
    def test_finalise_pushes_parameters(self, time_boundary):
        pdf = DecayTime()
        bottle = PhysicsBottle(ParameterSet([PhysicsParameter('gamma', 1.3)]))
        bottle.add_result(pdf, DataSet(time_boundary, {'time': [1.0]}))
        bottle.finalise()
        assert pdf.param('gamma') == 1.3
        assert bottle.number_results() == 1

    def test_bottle_copies_parameters(self, decay_parameters):
        bottle = PhysicsBottle(decay_parameters)
        bottle.get_parameter_set().get_physics_parameter('gamma').set_value(1.5)
        assert decay_parameters.get_physics_parameter('gamma').get_value() == 0.7

    def test_missing_data_set(self, decay_parameters):
        bottle = PhysicsBottle(decay_parameters)
        bottle.add_result(DecayTime(), None)
        with pytest.raises(ConfigurationError):
            bottle.finalise()

    def test_no_additions_after_finalise(self, decay_parameters, decay_data):
        bottle = build_bottle(decay_parameters, [DecayTime()], [decay_data])
        with pytest.raises(ConfigurationError):
            bottle.add_result(DecayTime(), decay_data)

    def test_mismatched_counts(self, decay_parameters, decay_data):
        with pytest.raises(ConfigurationError):
            build_bottle(decay_parameters, [DecayTime()], [decay_data, decay_data])


class TestNegativeLogLikelihood:
    def _nll(self, bottle, **config):
        return FitFunctionConfiguration(**config).get_fit_function(bottle)

    def test_value(self, time_boundary):
        data = DataSet(time_boundary, {'time': [0.0, 1.0, 2.0]})
        bottle = build_bottle(ParameterSet([PhysicsParameter('gamma', 1.0)]), [DecayTime()], [data])
        norm = 1.0 - np.exp(-10.0)
        assert self._nll(bottle).evaluate() == pytest.approx(3.0 + 3.0 * np.log(norm))

    def test_constraints_added(self, time_boundary):
        data = DataSet(time_boundary, {'time': [0.0, 1.0, 2.0]})
        parameters = ParameterSet([PhysicsParameter('gamma', 1.0)])
        plain = self._nll(build_bottle(parameters, [DecayTime()], [data])).evaluate()
        constrained = self._nll(build_bottle(parameters, [DecayTime()], [data],
                                             [ExternalConstraint('gamma', 0.9, 0.1)])).evaluate()
        assert constrained - plain == pytest.approx(0.5)

    def test_event_weights(self, time_boundary):
        times = [0.5, 1.0, 3.0]
        parameters = ParameterSet([PhysicsParameter('gamma', 0.8)])
        plain = DataSet(time_boundary, {'time': times})
        weighted = DataSet(time_boundary, {'time': times, 'w': [2.0, 2.0, 2.0], 'alpha': [0.5, 0.5, 0.5]})

        reference = self._nll(build_bottle(parameters, [DecayTime()], [plain])).evaluate()
        doubled = self._nll(build_bottle(parameters, [DecayTime()], [weighted]), weight_name='w').evaluate()
        scaled = self._nll(build_bottle(parameters, [DecayTime()], [weighted]), weight_name='w',
                           alpha_name='alpha').evaluate()
        assert doubled == pytest.approx(2.0 * reference)
        assert scaled == pytest.approx(reference)

    def test_empty_data_set(self, time_boundary):
        data = DataSet(time_boundary, {'time': []})
        bottle = build_bottle(ParameterSet([PhysicsParameter('gamma', 1.0)]), [DecayTime()], [data])
        assert self._nll(bottle).evaluate() == 0.0

    def test_set_parameter_values_updates_pdfs(self, time_boundary):
        pdf = DecayTime()
        data = DataSet(time_boundary, {'time': [1.0]})
        fit_function = self._nll(build_bottle(ParameterSet([PhysicsParameter('gamma', 1.0)]), [pdf], [data]))
        fit_function.set_parameter_values({'gamma': 0.5})
        assert pdf.param('gamma') == 0.5
        assert fit_function.get_parameter_set().get_physics_parameter('gamma').get_value() == 0.5

    def test_numerical_normalisation_agrees(self, time_boundary):
        data = DataSet(time_boundary, {'time': [0.2, 1.4, 2.5]})
        parameters = ParameterSet([PhysicsParameter('gamma', 0.9)])
        analytic = self._nll(build_bottle(parameters, [DecayTime()], [data])).evaluate()
        numerical = self._nll(build_bottle(parameters, [DecayTime()], [data]),
                              name='NumericalNegativeLogLikelihood').evaluate()
        assert numerical == pytest.approx(analytic, rel=1e-6)

    def test_unfinalised_bottle(self, decay_parameters):
        with pytest.raises(ConfigurationError):
            get_fit_function('NegativeLogLikelihood').set_physics_bottle(PhysicsBottle(decay_parameters))

    def test_unknown_fit_function(self):
        with pytest.raises(ConfigurationError):
            get_fit_function('ChiSquared')

    def test_up_error(self):
        assert get_fit_function('NegativeLogLikelihood').up_error(2.0) == 2.0
