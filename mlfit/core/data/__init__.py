"""Observables, data sets and data sources."""

from .boundary import PhaseSpaceBoundary, ContinuousConstraint, DiscreteConstraint
from .dataset import DataSet, load_data_set
from .generator import generate_toy_data
from .pdf_with_data import PDFWithData, DataSetConfiguration

__all__ = [
    'PhaseSpaceBoundary',
    'ContinuousConstraint',
    'DiscreteConstraint',
    'DataSet',
    'load_data_set',
    'generate_toy_data',
    'PDFWithData',
    'DataSetConfiguration',
]
