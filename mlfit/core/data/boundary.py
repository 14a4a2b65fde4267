"""
Phase-space boundaries of the observables.
"""

import itertools

import numpy as np

from ..exceptions import ConfigurationError


class ContinuousConstraint:
    """Observable restricted to the closed range [minimum, maximum]."""

    discrete = False

    def __init__(self, name, minimum, maximum, unit=''):
        if maximum <= minimum:
            raise ConfigurationError(f"Observable '{name}' has an empty range [{minimum}, {maximum}]")
        self.name = name
        self.minimum = float(minimum)
        self.maximum = float(maximum)
        self.unit = unit

    def contains(self, values):
        values = np.asarray(values)
        return (values >= self.minimum) & (values <= self.maximum)

    def sample(self, rng, size):
        return rng.uniform(self.minimum, self.maximum, size)

    def width(self):
        return self.maximum - self.minimum


class DiscreteConstraint:
    """Observable taking one of a fixed list of values (e.g. a tag)."""

    discrete = True

    def __init__(self, name, values, unit=''):
        if len(values) == 0:
            raise ConfigurationError(f"Observable '{name}' has no allowed values")
        self.name = name
        self.values = [float(v) for v in values]
        self.unit = unit

    def contains(self, values):
        return np.isin(np.asarray(values, dtype=float), self.values)

    def sample(self, rng, size):
        return rng.choice(self.values, size)


class PhaseSpaceBoundary:
    """
    Collection of per-observable constraints.

    Parameters
    ----------
    constraints : iterable
        ContinuousConstraint / DiscreteConstraint instances
    """

    def __init__(self, constraints=None):
        self._constraints = {}
        for constraint in constraints or []:
            self.add_constraint(constraint)

    def add_constraint(self, constraint):
        self._constraints[constraint.name] = constraint

    def set_continuous(self, name, minimum, maximum, unit=''):
        self.add_constraint(ContinuousConstraint(name, minimum, maximum, unit))

    def set_discrete(self, name, values, unit=''):
        self.add_constraint(DiscreteConstraint(name, values, unit))

    def get_constraint(self, name):
        if name not in self._constraints:
            raise ConfigurationError(f"Observable '{name}' not in phase space. "
                                     f"Available: {self.get_all_names()}")
        return self._constraints[name]

    def get_all_names(self):
        return list(self._constraints.keys())

    def get_continuous_names(self):
        return [name for name, c in self._constraints.items() if not c.discrete]

    def get_discrete_names(self):
        return [name for name, c in self._constraints.items() if c.discrete]

    def get_discrete_combinations(self):
        """All combinations of discrete values, as a list of dicts."""
        names = self.get_discrete_names()
        if not names:
            return [{}]
        value_lists = [self._constraints[name].values for name in names]
        return [dict(zip(names, combo)) for combo in itertools.product(*value_lists)]

    def is_point_inside(self, data):
        """
        Boolean mask of events inside every constraint.

        Parameters
        ----------
        data : dict
            Observable name -> array of values. Observables without a
            constraint are ignored.
        """
        mask = None
        for name, constraint in self._constraints.items():
            if name not in data:
                continue
            inside = constraint.contains(data[name])
            mask = inside if mask is None else mask & inside
        return mask

    def __contains__(self, name):
        return name in self._constraints
