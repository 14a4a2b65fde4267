"""
Decay-time PDFs.
"""

import numpy as np

from .base import BasePDF


def exp_integral(gamma, t_low, t_high):
    """Integral of exp(-gamma t) over [t_low, t_high]."""
    if abs(gamma) < 1e-12:
        return t_high - t_low
    return (np.exp(-gamma * t_low) - np.exp(-gamma * t_high)) / gamma


class DecayTime(BasePDF):
    """
    Single exponential decay.

    Notes
    -----
    Mathematical form: P(t) = exp(-Γ t)
    """

    observable_names = ('time',)
    parameter_names = ('gamma',)

    def evaluate(self, data):
        return np.exp(-self.param('gamma') * self.observable(data, 'time'))

    def normalisation(self, boundary):
        t_low, t_high = self.observable_range(boundary, 'time')
        return exp_integral(self.param('gamma'), t_low, t_high)


class UntaggedDecay(BasePDF):
    """
    Untagged decay-time distribution of a two-width system.

    Parameters
    ----------
    gamma : float
        Average decay width Γ
    deltaGamma : float
        Width difference ΔΓ = Γ_L - Γ_H
    Aperp_sq : float
        Fraction of the CP-odd (heavy) component

    Notes
    -----
    Γ_L = Γ + ΔΓ/2, Γ_H = Γ - ΔΓ/2 and
    P(t) = (1 - A⊥²) exp(-Γ_L t) + A⊥² exp(-Γ_H t)
    """

    observable_names = ('time',)
    parameter_names = ('gamma', 'deltaGamma', 'Aperp_sq')

    def _widths(self):
        gamma = self.param('gamma')
        half = self.param('deltaGamma') / 2.0
        return gamma + half, gamma - half

    def evaluate(self, data):
        time = self.observable(data, 'time')
        gamma_l, gamma_h = self._widths()
        odd = self.param('Aperp_sq')
        return (1.0 - odd) * np.exp(-gamma_l * time) + odd * np.exp(-gamma_h * time)

    def normalisation(self, boundary):
        t_low, t_high = self.observable_range(boundary, 'time')
        gamma_l, gamma_h = self._widths()
        odd = self.param('Aperp_sq')
        return ((1.0 - odd) * exp_integral(gamma_l, t_low, t_high)
                + odd * exp_integral(gamma_h, t_low, t_high))
