"""
Exception types raised by the fitting framework.
"""


class ConfigurationError(ValueError):
    """Raised when the fit inputs are inconsistent (caller misuse)."""


class NumericalFailure(Exception):
    """
    Base class for numerical failures raised while evaluating a fit.

    Attributes
    ----------
    code : int
        Numeric failure code reported alongside the message
    """
    code = 10


class FitFailure(NumericalFailure):
    """Generic failure of a fit for the current parameter values."""
    code = 10


class IntegrationError(NumericalFailure):
    """A PDF normalisation could not be computed."""
    code = 13


class ScanError(RuntimeError):
    """An exception escaped the safe fit while scanning."""
