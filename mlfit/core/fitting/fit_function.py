"""
Fit functions: the objective a minimiser drives.
"""

import numpy as np

from ..exceptions import ConfigurationError
from ..integration import get_normalisation, numerical_normalisation, integrator_test
from ...utils import log_debug, log_warning


class NegativeLogLikelihood:
    """
    -Σ w_i ln(P(x_i)/N) over every (PDF, DataSet) of a bottle, plus constraints.

    Event weights are read from the `weight_name` observable and multiplied
    by the `alpha_name` observable when one is given.
    """

    name = 'NegativeLogLikelihood'

    # Floor applied to normalised PDF values before the logarithm
    MINIMUM_PDF_VALUE = 1e-300

    def __init__(self):
        self.bottle = None
        self.weight_name = None
        self.alpha_name = None
        self.integrator_test = False
        self.call_count = 0

    def use_event_weights(self, weight_name, alpha_name=None):
        self.weight_name = weight_name
        self.alpha_name = alpha_name

    def set_integrator_test(self, flag):
        self.integrator_test = bool(flag)

    def normalise(self, pdf, boundary):
        return get_normalisation(pdf, boundary)

    def set_physics_bottle(self, bottle):
        """
        Attach a finalised bottle.

        Raises
        ------
        ConfigurationError
            If the bottle was not finalised
        """
        if not bottle.finalised:
            raise ConfigurationError("PhysicsBottle must be finalised before fitting")
        self.bottle = bottle
        if self.integrator_test:
            for pdf, data_set in bottle.get_results():
                integrator_test(pdf, data_set.boundary)

    def get_physics_bottle(self):
        return self.bottle

    def get_parameter_set(self):
        return self.bottle.get_parameter_set()

    def set_parameter_values(self, values):
        """Push a name -> true value mapping into the parameters and every PDF."""
        parameter_set = self.bottle.get_parameter_set()
        parameter_set.set_values(values)
        self.bottle.set_parameter_set(parameter_set)

    def event_weights(self, data_set):
        if self.weight_name is None:
            return None
        if self.weight_name not in data_set:
            raise ConfigurationError(f"Weight observable '{self.weight_name}' not in DataSet")
        weights = data_set.get_observable(self.weight_name)
        if self.alpha_name is not None:
            if self.alpha_name not in data_set:
                raise ConfigurationError(f"Alpha observable '{self.alpha_name}' not in DataSet")
            weights = weights * data_set.get_observable(self.alpha_name)
        return weights

    def evaluate_data_set(self, pdf, data_set):
        if data_set.get_data_number() == 0:
            return 0.0
        values = np.asarray(pdf.evaluate(data_set.as_dict()), dtype=float)
        values = np.broadcast_to(values, (data_set.get_data_number(),))
        probabilities = values / self.normalise(pdf, data_set.boundary)
        bad = ~np.isfinite(probabilities) | (probabilities <= 0.0)
        if np.any(bad):
            log_debug(f"{type(pdf).__name__}: {int(np.sum(bad))} events with non-positive probability")
            probabilities = np.where(bad, self.MINIMUM_PDF_VALUE, probabilities)
        log_probabilities = np.log(probabilities)
        weights = self.event_weights(data_set)
        if weights is not None:
            log_probabilities = weights * log_probabilities
        return -float(np.sum(log_probabilities))

    def evaluate(self):
        """
        Value of the fit function at the current bottle parameters.

        Returns
        -------
        float
            Negative log-likelihood plus constraint penalties
        """
        if self.bottle is None:
            raise ConfigurationError("No PhysicsBottle attached to the fit function")
        self.call_count += 1
        total = 0.0
        for pdf, data_set in self.bottle.get_results():
            total += self.evaluate_data_set(pdf, data_set)
        parameter_set = self.bottle.get_parameter_set()
        for constraint in self.bottle.get_constraints():
            total += constraint.evaluate(parameter_set)
        if not np.isfinite(total):
            log_warning(f"Fit function is {total} at {parameter_set.get_values()}")
        return total

    def up_error(self, n_sigma=1.0):
        """Change in the function defining an n-sigma interval."""
        return 0.5 * n_sigma * n_sigma


class NumericalNegativeLogLikelihood(NegativeLogLikelihood):
    """NegativeLogLikelihood that always normalises by numerical integration."""

    name = 'NumericalNegativeLogLikelihood'

    def normalise(self, pdf, boundary):
        return numerical_normalisation(pdf, boundary)


FIT_FUNCTION_REGISTRY = {
    'NegativeLogLikelihood': NegativeLogLikelihood,
    'NumericalNegativeLogLikelihood': NumericalNegativeLogLikelihood,
}


def get_fit_function(name):
    """
    Construct a fit function by name.

    Raises
    ------
    ConfigurationError
        If the name is not registered
    """
    if name not in FIT_FUNCTION_REGISTRY:
        raise ConfigurationError(f"Fit function '{name}' not found. "
                                 f"Available: {list(FIT_FUNCTION_REGISTRY.keys())}")
    return FIT_FUNCTION_REGISTRY[name]()
