"""
Probability density functions.

This module provides a small set of decay-time and mass PDFs and a registry
mapping PDF names to their constructors.
"""

from .base import BasePDF
from .decay import DecayTime, UntaggedDecay
from .mass import Gaussian, LinearBackground
from .normalised_sum import NormalisedSum
from ..exceptions import ConfigurationError


# PDF registry - maps PDF names to constructors
PDF_REGISTRY = {
    'DecayTime': DecayTime,
    'UntaggedDecay': UntaggedDecay,
    'Gaussian': Gaussian,
    'LinearBackground': LinearBackground,
    'NormalisedSum': NormalisedSum,
}


def get_pdf(name, **config):
    """
    Construct a PDF by name.

    Parameters
    ----------
    name : str
        PDF name (e.g., 'DecayTime', 'Gaussian')
    **config
        Constructor arguments (e.g., names={'gamma': 'gamma_s'})

    Returns
    -------
    BasePDF
        PDF instance

    Raises
    ------
    ConfigurationError
        If PDF name not found in registry
    """
    if name not in PDF_REGISTRY:
        raise ConfigurationError(f"PDF '{name}' not found. Available: {list_pdfs()}")
    return PDF_REGISTRY[name](**config)


def list_pdfs():
    """List all available PDF names."""
    return list(PDF_REGISTRY.keys())


def register_pdf(name, factory):
    """
    Register a custom PDF.

    Parameters
    ----------
    name : str
        PDF name
    factory : callable
        Class or function returning a BasePDF instance
    """
    PDF_REGISTRY[name] = factory


__all__ = [
    'BasePDF',
    'DecayTime',
    'UntaggedDecay',
    'Gaussian',
    'LinearBackground',
    'NormalisedSum',
    'get_pdf',
    'list_pdfs',
    'register_pdf',
    'PDF_REGISTRY',
]
