"""
Common interface of all PDFs.
"""

import numpy as np

from ..exceptions import ConfigurationError


class BasePDF:
    """
    Base class for probability density functions.

    Subclasses list their default observable and parameter names and implement
    `evaluate`. They may implement `normalisation` analytically; returning None
    asks the fit function for a numerical integral over the boundary.

    Parameters
    ----------
    names : dict, optional
        Renaming of default observable/parameter names, e.g.
        {'gamma': 'gamma_s'} to share one parameter between two PDFs under a
        different name.
    """

    observable_names = ()
    parameter_names = ()

    def __init__(self, names=None):
        self.names = dict(names or {})
        unknown = set(self.names) - set(self.observable_names) - set(self.parameter_names)
        if unknown:
            raise ConfigurationError(f"{type(self).__name__} has no names {sorted(unknown)} to rename")
        self.values = {}

    def get_name(self, default):
        return self.names.get(default, default)

    def get_prototype_data_point(self):
        """Names of the observables this PDF needs."""
        return [self.get_name(name) for name in self.observable_names]

    def get_prototype_parameter_set(self):
        """Names of the physics parameters this PDF needs."""
        return [self.get_name(name) for name in self.parameter_names]

    def set_physics_parameters(self, parameter_set):
        """
        Take the current parameter values into the PDF.

        Raises
        ------
        ConfigurationError
            If a required parameter is absent from the set
        """
        for default in self.parameter_names:
            name = self.get_name(default)
            if name not in parameter_set:
                raise ConfigurationError(f"{type(self).__name__} needs parameter '{name}'")
            self.values[default] = parameter_set.get_physics_parameter(name).get_value()
        return True

    def param(self, default):
        return self.values[default]

    def observable(self, data, default):
        return np.asarray(data[self.get_name(default)], dtype=float)

    def observable_range(self, boundary, default):
        constraint = boundary.get_constraint(self.get_name(default))
        return constraint.minimum, constraint.maximum

    def evaluate(self, data):
        """
        Unnormalised PDF value.

        Parameters
        ----------
        data : dict
            Observable name -> value (float) or array of values
        """
        raise NotImplementedError

    def normalisation(self, boundary):
        """Integral of `evaluate` over the boundary, or None if not known analytically."""
        return None

    def get_do_not_integrate_list(self):
        return []
