"""
Event data sets and text-file loading.
"""

import numpy as np

from ..exceptions import ConfigurationError


class DataSet:
    """
    Column store of events bound to a phase-space boundary.

    Parameters
    ----------
    boundary : PhaseSpaceBoundary
        Boundary the events live in
    columns : dict, optional
        Observable name -> array of values. All columns must have equal length.
    """

    def __init__(self, boundary, columns=None):
        self.boundary = boundary
        self._columns = {}
        length = None
        for name, values in (columns or {}).items():
            values = np.asarray(values, dtype=float)
            if length is not None and len(values) != length:
                raise ConfigurationError(f"Column '{name}' has {len(values)} entries, expected {length}")
            length = len(values)
            self._columns[name] = values

    def get_data_number(self):
        if not self._columns:
            return 0
        return len(next(iter(self._columns.values())))

    def get_observable_names(self):
        return list(self._columns.keys())

    def get_observable(self, name):
        if name not in self._columns:
            raise KeyError(f"Observable '{name}' not in DataSet. Available: {self.get_observable_names()}")
        return self._columns[name]

    def get_data_point(self, index):
        """Single event as a dict of floats."""
        return {name: float(values[index]) for name, values in self._columns.items()}

    def as_dict(self):
        return dict(self._columns)

    def apply_boundary(self):
        """Return a new DataSet with the events outside the boundary removed."""
        mask = self.boundary.is_point_inside(self._columns)
        if mask is None:
            return DataSet(self.boundary, self._columns)
        return DataSet(self.boundary, {name: values[mask] for name, values in self._columns.items()})

    def __len__(self):
        return self.get_data_number()

    def __contains__(self, name):
        return name in self._columns


def auto_detect_delimiter(filepath, max_lines=10):
    """
    Automatically detect delimiter in text file.

    Parameters
    ----------
    filepath : str
        Path to file
    max_lines : int, optional
        Number of lines to check, default 10

    Returns
    -------
    str or None
        Detected delimiter (comma, tab) or None for whitespace
    """
    with open(filepath, 'r') as f:
        lines = []
        for i, line in enumerate(f):
            if i >= max_lines:
                break
            line = line.strip()
            if line and not line.startswith('#'):
                lines.append(line)

    if not lines:
        return None

    for delim in (',', '\t'):
        counts = [line.count(delim) for line in lines]
        if len(set(counts)) == 1 and counts[0] > 0:
            return delim

    return None


def load_data_set(filepath, boundary, names=None, comments='#'):
    """
    Load events from a text file with one observable per column.

    The first non-comment line is taken as the header naming the columns
    unless `names` is given. Events outside the boundary are dropped.

    Parameters
    ----------
    filepath : str
        Path to TXT/CSV file
    boundary : PhaseSpaceBoundary
        Boundary the events must lie in
    names : list of str, optional
        Column names, overriding the header line
    comments : str, optional
        Character indicating comment lines, default '#'

    Returns
    -------
    DataSet
        Events inside the boundary

    Raises
    ------
    ConfigurationError
        If the file cannot be parsed or lacks a boundary observable
    """
    delimiter = auto_detect_delimiter(filepath)

    skip_header = 0
    header = None
    with open(filepath, 'r') as f:
        for line in f:
            stripped = line.strip()
            if not stripped or stripped.startswith(comments):
                skip_header += 1
                continue
            parts = [p.strip() for p in (stripped.split(delimiter) if delimiter else stripped.split())]
            try:
                [float(p) for p in parts]
            except ValueError:
                # Non-numeric line - treat as header
                header = parts
                skip_header += 1
            break

    names = names or header
    if names is None:
        raise ConfigurationError(f"No column names given or found in '{filepath}'")

    try:
        data = np.loadtxt(filepath, delimiter=delimiter, comments=comments,
                          skiprows=skip_header, ndmin=2)
    except ValueError as e:
        raise ConfigurationError(f"Error loading file '{filepath}': {e}") from e

    if data.shape[1] != len(names):
        raise ConfigurationError(f"File '{filepath}' has {data.shape[1]} columns "
                                 f"but {len(names)} names were given")

    columns = {name: data[:, i] for i, name in enumerate(names)}
    for name in boundary.get_all_names():
        if name not in columns:
            raise ConfigurationError(f"Observable '{name}' missing from '{filepath}'")
        if not np.all(np.isfinite(columns[name])):
            raise ConfigurationError(f"Observable '{name}' in '{filepath}' contains NaN or Inf")

    return DataSet(boundary, columns).apply_boundary()
