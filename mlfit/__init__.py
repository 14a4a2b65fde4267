"""MLFit: maximum-likelihood fitting, likelihood scans and toy studies."""

__version__ = "0.1.0"
