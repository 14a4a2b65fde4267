"""
Fraction-weighted sum of two PDFs.
"""

from .base import BasePDF
from ..integration import get_normalisation


class NormalisedSum(BasePDF):
    """
    f * P1/N1 + (1 - f) * P2/N2 over a fixed boundary.

    Parameters
    ----------
    first, second : BasePDF
        Component PDFs
    boundary : PhaseSpaceBoundary
        Region over which each component is normalised
    names : dict, optional
        Renaming of 'fraction'
    """

    parameter_names = ('fraction',)

    def __init__(self, first, second, boundary, names=None):
        super().__init__(names)
        self.first = first
        self.second = second
        self.boundary = boundary
        self._norms = (1.0, 1.0)

    def get_prototype_data_point(self):
        names = list(self.first.get_prototype_data_point())
        return names + [n for n in self.second.get_prototype_data_point() if n not in names]

    def get_prototype_parameter_set(self):
        names = [self.get_name('fraction')]
        for component in (self.first, self.second):
            names += [n for n in component.get_prototype_parameter_set() if n not in names]
        return names

    def set_physics_parameters(self, parameter_set):
        super().set_physics_parameters(parameter_set)
        self.first.set_physics_parameters(parameter_set)
        self.second.set_physics_parameters(parameter_set)
        self._norms = (get_normalisation(self.first, self.boundary),
                       get_normalisation(self.second, self.boundary))
        return True

    def evaluate(self, data):
        fraction = self.param('fraction')
        return (fraction * self.first.evaluate(data) / self._norms[0]
                + (1.0 - fraction) * self.second.evaluate(data) / self._norms[1])

    def normalisation(self, boundary):
        # Components are normalised over self.boundary
        return 1.0

    def get_do_not_integrate_list(self):
        names = list(self.first.get_do_not_integrate_list())
        return names + [n for n in self.second.get_do_not_integrate_list() if n not in names]
