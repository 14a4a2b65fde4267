"""
Binding of a PDF to the recipe producing its data.
"""

import numpy as np

from ..exceptions import ConfigurationError
from .dataset import DataSet, load_data_set
from .generator import generate_toy_data
from ...utils import log_info


DATA_SOURCES = ('Generate', 'File', 'Memory')


class DataSetConfiguration:
    """
    Recipe for the events of one PDF.

    Parameters
    ----------
    source : str
        'Generate' (accept-reject toys from the PDF), 'File' (text file) or
        'Memory' (an existing DataSet)
    number_events : int, optional
        Events to generate ('Generate' only)
    filename : str, optional
        Path to the data file ('File' only)
    data_set : DataSet, optional
        Pre-made events ('Memory' only)
    seed : int, optional
        Seed of the generator. Successive generations advance the same stream.
    """

    def __init__(self, source, number_events=0, filename=None, data_set=None, seed=None):
        if source not in DATA_SOURCES:
            raise ConfigurationError(f"Unknown data source '{source}'. Available: {list(DATA_SOURCES)}")
        if source == 'File' and filename is None:
            raise ConfigurationError("Data source 'File' needs a filename")
        if source == 'Memory' and data_set is None:
            raise ConfigurationError("Data source 'Memory' needs a data_set")
        self.source = source
        self.number_events = int(number_events)
        self.filename = filename
        self.data_set = data_set
        self.rng = np.random.default_rng(seed)

    def make_data_set(self, pdf, boundary):
        if self.source == 'Generate':
            return generate_toy_data(pdf, boundary, self.number_events, rng=self.rng)
        if self.source == 'File':
            return load_data_set(self.filename, boundary)
        return self.data_set


class PDFWithData:
    """
    Lazily produces the (PDF, DataSet) pair of one fit component.

    The data set is only created the first time it is requested, using the
    physics parameters pushed in most recently.

    Parameters
    ----------
    pdf : BasePDF
        The PDF
    boundary : PhaseSpaceBoundary
        Phase space of the data
    data_config : DataSetConfiguration
        How to obtain the events
    """

    def __init__(self, pdf, boundary, data_config):
        self.pdf = pdf
        self.boundary = boundary
        self.data_config = data_config
        self._data_set = None

    def set_physics_parameters(self, parameter_set):
        return self.pdf.set_physics_parameters(parameter_set)

    def get_pdf(self):
        return self.pdf

    def get_data_set(self):
        if self._data_set is None:
            self._data_set = self.data_config.make_data_set(self.pdf, self.boundary)
            log_info(f"{type(self.pdf).__name__}: {self._data_set.get_data_number()} events "
                     f"from source '{self.data_config.source}'")
        return self._data_set

    def get_boundary(self):
        return self.boundary

    def has_data(self):
        return self._data_set is not None

    def clear_data(self):
        """Drop the cached events so the next request regenerates them."""
        self._data_set = None
