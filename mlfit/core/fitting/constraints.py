"""
External Gaussian constraints on physics parameters.
"""

from ..exceptions import ConfigurationError


class ExternalConstraint:
    """A measurement (value ± error) applied to a parameter or derived quantity."""

    def __init__(self, name, value, error):
        if error <= 0:
            raise ConfigurationError(f"Constraint '{name}' needs a positive error, got {error}")
        self.name = name
        self.value = float(value)
        self.error = float(error)

    def get_name(self):
        return self.name

    def get_value(self):
        return self.value

    def get_error(self):
        return self.error

    def __repr__(self):
        return f"ExternalConstraint({self.name!r}, {self.value}, {self.error})"


def _value(parameter_set, constraint_name, name):
    if name not in parameter_set:
        raise ConfigurationError(f"Constraint '{constraint_name}' needs parameter '{name}'")
    return parameter_set.get_physics_parameter(name).get_value()


def gamma_l(gamma, delta_gamma):
    """GammaL = Γ + ΔΓ/2"""
    return gamma + delta_gamma / 2.0


def gamma_obs(gamma, delta_gamma):
    """GammaObs = Γ (1 - (ΔΓ/2Γ)²) / (1 + (ΔΓ/2Γ)²)"""
    ratio = delta_gamma / 2.0 / gamma
    return gamma * (1.0 - ratio * ratio) / (1.0 + ratio * ratio)


# Derived quantities computed from (gamma, deltaGamma)
DERIVED_CONSTRAINTS = {
    'GammaL': gamma_l,
    'GammaObs': gamma_obs,
}


class ConstraintFunction:
    """
    Penalty 0.5 * Σ ((x - value) / error)² over a list of ExternalConstraints.

    Constraints named 'GammaL' or 'GammaObs' act on the quantity derived from
    the 'gamma' and 'deltaGamma' parameters. Any other constraint acts on the
    parameter of the same name and is ignored if that parameter is absent.

    Parameters
    ----------
    constraints : list of ExternalConstraint, optional
        Constraints to apply
    """

    def __init__(self, constraints=None):
        self.constraints = list(constraints or [])

    def add_constraint(self, constraint):
        self.constraints.append(constraint)

    def get_constraint_names(self):
        return [c.get_name() for c in self.constraints]

    def evaluate(self, parameter_set):
        """
        Constraint penalty for the current parameter values.

        Parameters
        ----------
        parameter_set : ParameterSet
            Parameters to evaluate

        Returns
        -------
        float
            Penalty added to the negative log-likelihood
        """
        total = 0.0
        for constraint in self.constraints:
            name = constraint.get_name()
            if name in DERIVED_CONSTRAINTS:
                fit_value = DERIVED_CONSTRAINTS[name](_value(parameter_set, name, 'gamma'),
                                                      _value(parameter_set, name, 'deltaGamma'))
            elif name in parameter_set:
                fit_value = parameter_set.get_physics_parameter(name).get_value()
            else:
                continue
            gauss_sqrt = (fit_value - constraint.get_value()) / constraint.get_error()
            total += gauss_sqrt * gauss_sqrt
        return 0.5 * total
