"""
Physics parameter containers.

A ParameterSet is the mutable, ordered collection of PhysicsParameters shared by
every PDF in a fit. The ResultParameterSet is its fitted counterpart stored in
a FitResult.
"""

import copy
import hashlib
from contextlib import contextmanager

import numpy as np
from lmfit import Parameters

from .exceptions import ConfigurationError


PARAMETER_TYPES = ('Free', 'Fixed', 'Hidden')


class PhysicsParameter:
    """
    A single named physics parameter.

    Attributes
    ----------
    name : str
        Parameter name
    value : float
        True (unblinded) value seen by the PDFs
    minimum, maximum : float
        Bounds given to the minimiser. Equal bounds mean unbounded.
    step_size : float
        Initial step size for the minimiser
    type : str
        One of 'Free', 'Fixed', 'Hidden'
    unit : str
        Unit label
    """

    def __init__(self, name, value=0.0, minimum=0.0, maximum=0.0, step_size=0.01,
                 type='Free', unit='', blinding_string=None, blinding_scale=0.0):
        if type not in PARAMETER_TYPES:
            raise ConfigurationError(f"Unknown parameter type '{type}' for '{name}'. "
                                     f"Available: {list(PARAMETER_TYPES)}")
        self.name = name
        self.value = float(value)
        self.minimum = float(minimum)
        self.maximum = float(maximum)
        self.step_size = float(step_size)
        self.type = type
        self.unit = unit
        self.blinding_string = blinding_string
        self.blinding_scale = float(blinding_scale)
        self.blind_offset = _blind_offset(blinding_string, blinding_scale)

    @property
    def blinded(self):
        return self.blinding_string is not None

    def get_value(self):
        return self.value

    def set_value(self, value):
        self.value = float(value)

    def get_blinded_value(self):
        """Value shifted by the blinding offset (identical when unblinded)."""
        return self.value + self.blind_offset

    def set_blinded_value(self, blinded_value):
        self.value = float(blinded_value) - self.blind_offset

    def get_type(self):
        return self.type

    def set_type(self, type):
        if type not in PARAMETER_TYPES:
            raise ConfigurationError(f"Unknown parameter type '{type}' for '{self.name}'")
        self.type = type

    def get_unit(self):
        return self.unit

    def is_free(self):
        return self.type == 'Free'

    def has_bounds(self):
        return self.maximum > self.minimum

    def __repr__(self):
        return (f"PhysicsParameter({self.name!r}, value={self.value}, "
                f"minimum={self.minimum}, maximum={self.maximum}, type={self.type!r})")


def _blind_offset(blinding_string, blinding_scale):
    """Deterministic offset in [-scale, scale) seeded from the blinding string."""
    if blinding_string is None:
        return 0.0
    seed = int.from_bytes(hashlib.sha256(blinding_string.encode('utf-8')).digest()[:8], 'little')
    rng = np.random.default_rng(seed)
    return float(blinding_scale * rng.uniform(-1.0, 1.0))


class ParameterSet:
    """
    Ordered mapping of parameter name to PhysicsParameter.

    Parameters
    ----------
    parameters : iterable of PhysicsParameter or str, optional
        Initial content. Plain names create default Free parameters.
    """

    def __init__(self, parameters=None):
        self._parameters = {}
        for param in parameters or []:
            if isinstance(param, str):
                param = PhysicsParameter(param)
            self.add_physics_parameter(param)

    def add_physics_parameter(self, parameter):
        if parameter.name in self._parameters:
            raise ConfigurationError(f"Parameter '{parameter.name}' already in ParameterSet")
        self._parameters[parameter.name] = parameter

    def set_physics_parameter(self, name, value, minimum=0.0, maximum=0.0, step_size=0.01,
                              type='Free', unit='', **blinding):
        """Create or replace the named parameter."""
        self._parameters[name] = PhysicsParameter(name, value, minimum, maximum, step_size,
                                                  type, unit, **blinding)

    def get_physics_parameter(self, name):
        if name not in self._parameters:
            raise KeyError(f"Parameter '{name}' not found. Available: {self.get_all_names()}")
        return self._parameters[name]

    def get_all_names(self):
        return list(self._parameters.keys())

    def get_all_fixed_names(self):
        return [name for name, param in self._parameters.items() if not param.is_free()]

    def get_all_float_names(self):
        return [name for name, param in self._parameters.items() if param.is_free()]

    def get_values(self):
        return {name: param.value for name, param in self._parameters.items()}

    def set_values(self, values):
        """Set true values from a name -> value mapping."""
        for name, value in values.items():
            self.get_physics_parameter(name).set_value(value)

    def copy(self):
        return copy.deepcopy(self)

    def to_lmfit_parameters(self, keys=None):
        """
        Build an lmfit.Parameters view of the free parameters.

        Parameters
        ----------
        keys : dict, optional
            Mapping of parameter name to lmfit-safe key. Defaults to 'p0', 'p1', ...

        Returns
        -------
        params : lmfit.Parameters
            One entry per free parameter
        keys : dict
            Name -> key mapping used
        """
        free = self.get_all_float_names()
        if keys is None:
            keys = {name: f'p{i}' for i, name in enumerate(free)}
        params = Parameters()
        for name in free:
            param = self._parameters[name]
            if param.has_bounds():
                params.add(keys[name], value=param.value, min=param.minimum, max=param.maximum)
            else:
                params.add(keys[name], value=param.value)
        return params, keys

    def __contains__(self, name):
        return name in self._parameters

    def __iter__(self):
        return iter(self._parameters.values())

    def __len__(self):
        return len(self._parameters)

    def __repr__(self):
        return f"ParameterSet({self.get_all_names()})"


@contextmanager
def fixed_parameter(parameter_set, name):
    """
    Fix a parameter for the duration of a block.

    The parameter type and true value are restored exactly on every exit path,
    including exceptions raised inside the block.

    Parameters
    ----------
    parameter_set : ParameterSet
        Set holding the parameter
    name : str
        Name of the parameter to fix

    Yields
    ------
    PhysicsParameter
        The fixed parameter, whose value the caller may change freely

    Examples
    --------
    >>> with fixed_parameter(params, 'gamma') as gamma:
    ...     gamma.set_blinded_value(0.7)
    ...     result = do_safe_fit(...)
    """
    if name not in parameter_set:
        raise ConfigurationError(f"Cannot fix unknown parameter '{name}'")
    parameter = parameter_set.get_physics_parameter(name)
    original_value = parameter.get_value()
    original_type = parameter.get_type()
    parameter.set_type('Fixed')
    try:
        yield parameter
    finally:
        parameter.set_type(original_type)
        parameter.set_value(original_value)


class ResultParameter:
    """Fitted value, error and bookkeeping for one parameter."""

    def __init__(self, name, value, original_value, error, minimum, maximum, type='Free', unit=''):
        self.name = name
        self.value = float(value)
        self.original_value = float(original_value)
        self.error = float(error)
        self.minimum = float(minimum)
        self.maximum = float(maximum)
        self.type = type
        self.unit = unit
        self.scan_status = False

    def get_value(self):
        return self.value

    def get_error(self):
        return self.error

    def get_original_value(self):
        return self.original_value

    def get_type(self):
        return self.type

    def get_unit(self):
        return self.unit

    def get_scan_status(self):
        return self.scan_status

    def set_scan_status(self, status):
        self.scan_status = bool(status)

    def get_pull(self):
        """(fitted - original) / error, NaN when the error is zero."""
        if self.error == 0.0:
            return float('nan')
        return (self.value - self.original_value) / self.error

    def __repr__(self):
        return f"ResultParameter({self.name!r}, value={self.value}, error={self.error})"


class ResultParameterSet:
    """Ordered collection of ResultParameters, one per parameter name."""

    def __init__(self, names=None):
        self._parameters = {}
        for name in names or []:
            self._parameters[name] = ResultParameter(name, 0.0, 0.0, 0.0, 0.0, 0.0, 'Fixed', '')

    @classmethod
    def from_parameter_set(cls, parameter_set):
        """Result set mirroring the input values, with zero errors."""
        results = cls()
        for param in parameter_set:
            value = param.get_blinded_value()
            results.force_new_result_parameter(param.name, value, value, 0.0, param.minimum,
                                               param.maximum, param.type, param.unit)
        return results

    def set_result_parameter(self, name, value, original_value, error, minimum, maximum,
                             type='Free', unit=''):
        """Overwrite an existing result parameter, keeping its scan status."""
        if name not in self._parameters:
            raise KeyError(f"Result parameter '{name}' not found. Available: {self.get_all_names()}")
        scan_status = self._parameters[name].scan_status
        parameter = ResultParameter(name, value, original_value, error, minimum, maximum, type, unit)
        parameter.scan_status = scan_status
        self._parameters[name] = parameter

    def force_new_result_parameter(self, name, value, original_value, error, minimum, maximum,
                                   type='Free', unit=''):
        """Add (or replace) a result parameter regardless of the current names."""
        self._parameters[name] = ResultParameter(name, value, original_value, error,
                                                 minimum, maximum, type, unit)

    def get_result_parameter(self, name):
        if name not in self._parameters:
            raise KeyError(f"Result parameter '{name}' not found. Available: {self.get_all_names()}")
        return self._parameters[name]

    def get_all_names(self):
        return list(self._parameters.keys())

    def get_all_float_names(self):
        return [name for name, param in self._parameters.items() if param.type == 'Free']

    def __contains__(self, name):
        return name in self._parameters

    def __iter__(self):
        return iter(self._parameters.values())

    def __len__(self):
        return len(self._parameters)
