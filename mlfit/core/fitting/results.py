"""
Fit results, result collections and contours.
"""

import math
import time

import numpy as np

from ..exceptions import ConfigurationError
from ..parameters import ResultParameterSet


# Fit status codes (covariance quality, Minuit convention)
FIT_STATUS_FAILED = -1
FIT_STATUS_NOT_CONVERGED = 0
FIT_STATUS_APPROXIMATE = 1
FIT_STATUS_FORCED_POSDEF = 2
FIT_STATUS_CONVERGED = 3

# Minimum value reported by a fit that produced no result
LLSCAN_FIT_FAILURE_VALUE = -9999.0


def pack_lower_triangle(matrix):
    """Row-major lower triangle (diagonal included) of a square matrix."""
    matrix = np.asarray(matrix, dtype=float)
    rows, cols = np.tril_indices(matrix.shape[0])
    return list(matrix[rows, cols])


def unpack_lower_triangle(packed, size):
    """Symmetric matrix from a packed lower triangle."""
    matrix = np.zeros((size, size))
    rows, cols = np.tril_indices(size)
    matrix[rows, cols] = packed
    matrix[cols, rows] = packed
    return matrix


class FunctionContour:
    """
    Contour lines of two parameters, indexed by sigma (1-based).

    Parameters
    ----------
    x_name, y_name : str
        Parameters on the x and y axes
    contour_number : int
        Number of contours (1 to contour_number sigma)
    """

    def __init__(self, x_name, y_name, contour_number):
        self.x_name = x_name
        self.y_name = y_name
        self._contours = [np.empty((0, 2)) for _ in range(contour_number)]

    def get_x_name(self):
        return self.x_name

    def get_y_name(self):
        return self.y_name

    def get_contour_number(self):
        return len(self._contours)

    def _check_sigma(self, sigma):
        if sigma < 1 or sigma > len(self._contours):
            raise ConfigurationError(f"Contour sigma value ({sigma}) is invalid")

    def set_plot(self, sigma, points):
        """Store the (N, 2) array of (x, y) points of the `sigma` contour."""
        self._check_sigma(sigma)
        self._contours[sigma - 1] = np.asarray(points, dtype=float).reshape(-1, 2)

    def get_plot(self, sigma):
        self._check_sigma(sigma)
        return self._contours[sigma - 1]


class FitResult:
    """
    Outcome of one fit attempt.

    Parameters
    ----------
    minimum_value : float
        Minimum of the fit function
    result_parameters : ResultParameterSet
        Fitted values and errors
    fit_status : int
        One of the FIT_STATUS_* codes
    physics_parameters : ParameterSet, optional
        Parameters at the minimum
    covariance : array_like, optional
        Covariance of the free parameters, as a square matrix or a packed
        lower triangle
    covariance_names : list of str, optional
        Parameter order of the covariance
    contours : list of FunctionContour, optional
        Contours requested from the minimiser
    """

    def __init__(self, minimum_value, result_parameters, fit_status, physics_parameters=None,
                 covariance=None, covariance_names=None, contours=None):
        self.minimum_value = float(minimum_value)
        self.result_parameters = result_parameters
        self.fit_status = int(fit_status)
        self.physics_parameters = physics_parameters
        self.covariance_names = list(covariance_names or [])
        if covariance is None:
            self.covariance = []
        elif np.ndim(covariance) == 2:
            self.covariance = pack_lower_triangle(covariance)
        else:
            self.covariance = list(covariance)
        self.contours = list(contours or [])

    def get_minimum_value(self):
        return self.minimum_value

    def get_fit_status(self):
        return self.fit_status

    def is_converged(self):
        return self.fit_status == FIT_STATUS_CONVERGED

    def get_result_parameter_set(self):
        return self.result_parameters

    def get_physics_parameters(self):
        return self.physics_parameters

    def get_covariance_names(self):
        return list(self.covariance_names)

    def get_covariance_matrix(self):
        return unpack_lower_triangle(self.covariance, len(self.covariance_names))

    def get_covariance_element(self, row, col):
        if row < col:
            row, col = col, row
        return self.covariance[row * (row + 1) // 2 + col]

    def get_contours(self):
        return list(self.contours)


def failed_fit_result(parameter_set):
    """Placeholder for a fit that produced nothing, keeping the input parameter names."""
    return FitResult(LLSCAN_FIT_FAILURE_VALUE, ResultParameterSet.from_parameter_set(parameter_set),
                     FIT_STATUS_FAILED, parameter_set.copy())


class FitResultVector:
    """
    Ordered, append-only collection of FitResults with per-fit timing.

    Parameters
    ----------
    names : list of str, optional
        Parameter names expected in every result
    """

    def __init__(self, names=None):
        self.names = list(names or [])
        self._results = []
        self._real_times = []
        self._cpu_times = []
        self._start = None

    def start_stopwatch(self):
        self._start = (time.perf_counter(), time.process_time())

    def add_fit_result(self, result, timed=True):
        """Append a result, recording the time since `start_stopwatch`."""
        self._results.append(result)
        if timed and self._start is not None:
            self._real_times.append(time.perf_counter() - self._start[0])
            self._cpu_times.append(time.process_time() - self._start[1])
        else:
            self._real_times.append(math.nan)
            self._cpu_times.append(math.nan)
        self._start = None

    def number_results(self):
        return len(self._results)

    def get_fit_result(self, index):
        return self._results[index]

    def get_all_names(self):
        return list(self.names)

    def _per_parameter(self, name, getter):
        values = []
        for result in self._results:
            results = result.get_result_parameter_set()
            values.append(getter(results.get_result_parameter(name)) if name in results else math.nan)
        return np.array(values, dtype=float)

    def get_parameter_values(self, name):
        return self._per_parameter(name, lambda p: p.get_value())

    def get_parameter_errors(self, name):
        return self._per_parameter(name, lambda p: p.get_error())

    def get_parameter_pulls(self, name):
        return self._per_parameter(name, lambda p: p.get_pull())

    def get_minimum_values(self):
        return np.array([r.get_minimum_value() for r in self._results], dtype=float)

    def get_fit_statuses(self):
        return np.array([r.get_fit_status() for r in self._results], dtype=int)

    def get_real_times(self):
        return np.array(self._real_times, dtype=float)

    def get_cpu_times(self):
        return np.array(self._cpu_times, dtype=float)

    def __iter__(self):
        return iter(self._results)

    def __len__(self):
        return len(self._results)


def format_fit_result(result):
    """
    Format a fit result for review.

    Parameters
    ----------
    result : FitResult
        Result to format

    Returns
    -------
    str
        Status, minimum and value ± error per parameter
    """
    lines = []
    lines.append("-" * 50)
    lines.append(f"Fit Review:\t\tStatus:\t{result.get_fit_status()}\t\t"
                 f"NLL:\t{result.get_minimum_value():.10g}")
    for parameter in result.get_result_parameter_set():
        if parameter.get_type() == 'Hidden':
            continue
        lines.append(f"{parameter.name:>25} : {parameter.get_value():13.5g}  \\pm  "
                     f"{parameter.get_error():13.5g}")
    lines.append("-" * 50)
    return '\n'.join(lines)
