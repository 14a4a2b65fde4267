"""
Mass PDFs.
"""

import numpy as np
from scipy.special import erf

from .base import BasePDF
from ..exceptions import FitFailure


class Gaussian(BasePDF):
    """
    Gaussian mass peak.

    Notes
    -----
    Mathematical form: P(m) = exp(-((m - μ)² / (2σ²)))
    """

    observable_names = ('mass',)
    parameter_names = ('mass_mean', 'mass_sigma')

    def evaluate(self, data):
        mass = self.observable(data, 'mass')
        sigma = self.param('mass_sigma')
        return np.exp(-((mass - self.param('mass_mean'))**2) / (2 * sigma**2))

    def normalisation(self, boundary):
        sigma = self.param('mass_sigma')
        if sigma <= 0:
            raise FitFailure(f"Gaussian width must be positive, got {sigma}")
        m_low, m_high = self.observable_range(boundary, 'mass')
        mean = self.param('mass_mean')
        root2 = np.sqrt(2.0) * sigma
        return sigma * np.sqrt(np.pi / 2.0) * (erf((m_high - mean) / root2) - erf((m_low - mean) / root2))


class LinearBackground(BasePDF):
    """
    Linear combinatorial background, normalised numerically.

    Parameters
    ----------
    reference : float, optional
        Mass at which the line equals one

    Notes
    -----
    Mathematical form: P(m) = 1 + slope * (m - reference)
    """

    observable_names = ('mass',)
    parameter_names = ('background_slope',)

    def __init__(self, reference=0.0, names=None):
        super().__init__(names)
        self.reference = reference

    def evaluate(self, data):
        mass = self.observable(data, 'mass')
        return 1.0 + self.param('background_slope') * (mass - self.reference)
