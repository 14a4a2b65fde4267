"""Core package initialization."""

from . import pdfs
from . import data
from . import fitting
from . import parameters
from . import integration
from . import exceptions

__all__ = ['pdfs', 'data', 'fitting', 'parameters', 'integration', 'exceptions']
