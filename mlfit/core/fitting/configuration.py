"""
Configuration objects for minimisers, fit functions, scans and contours.
"""

from ..exceptions import ConfigurationError
from .fit_function import get_fit_function
from .minimiser import get_minimiser


class MinimiserConfiguration:
    """
    Which minimiser to build and how.

    Parameters
    ----------
    name : str
        Registered minimiser name
    output_config : OutputConfiguration, optional
        Source of contour requests
    **options
        Passed to the minimiser factory
    """

    def __init__(self, name='Minuit', output_config=None, **options):
        self.name = name
        self.options = options
        self.contours = output_config.get_contour_plots() if output_config is not None else []

    def get_minimiser(self, n_parameters):
        minimiser = get_minimiser(self.name, n_parameters, **self.options)
        if self.contours:
            minimiser.contour_plots(self.contours)
        return minimiser


class FitFunctionConfiguration:
    """
    Which fit function to build and how.

    Parameters
    ----------
    name : str
        Registered fit function name
    weight_name : str, optional
        Observable holding per-event weights
    alpha_name : str, optional
        Observable multiplied into the weights
    """

    def __init__(self, name='NegativeLogLikelihood', weight_name=None, alpha_name=None):
        self.name = name
        self.weight_name = weight_name
        self.alpha_name = alpha_name
        self.integrator_test = True

    def get_weights_were_used(self):
        return self.weight_name is not None

    def get_weight_name(self):
        return self.weight_name

    def get_alpha_name(self):
        return self.alpha_name

    def set_integrator_test(self, flag):
        self.integrator_test = bool(flag)

    def get_fit_function(self, bottle=None):
        fit_function = get_fit_function(self.name)
        if self.weight_name is not None:
            fit_function.use_event_weights(self.weight_name, self.alpha_name)
        fit_function.set_integrator_test(self.integrator_test)
        if bottle is not None:
            fit_function.set_physics_bottle(bottle)
        return fit_function


class ScanParam:
    """
    Grid of a likelihood scan over one parameter.

    The grid has `points` equally spaced values from `minimum` to `maximum`
    inclusive; a single point sits at `minimum`.
    """

    __slots__ = ('_name', '_minimum', '_maximum', '_points')

    def __init__(self, name, minimum, maximum, points):
        if int(points) < 1:
            raise ConfigurationError(f"Scan of '{name}' needs at least one point, got {points}")
        self._name = name
        self._minimum = float(minimum)
        self._maximum = float(maximum)
        self._points = int(points)

    def get_name(self):
        return self._name

    def get_min(self):
        return self._minimum

    def get_max(self):
        return self._maximum

    def get_points(self):
        return self._points

    def get_step(self):
        if self._points == 1:
            return 0.0
        return (self._maximum - self._minimum) / (self._points - 1)

    def get_grid(self):
        step = self.get_step()
        return [self._minimum + index * step for index in range(self._points)]

    def __repr__(self):
        return f"ScanParam({self._name!r}, {self._minimum}, {self._maximum}, {self._points})"


class OutputConfiguration:
    """
    Requested scans and contours.

    Parameters
    ----------
    scan_params : list of ScanParam, optional
        One-dimensional scans
    scan_2d : list of (ScanParam, ScanParam), optional
        Two-dimensional scans as (outer, inner) pairs
    contour_plots : list of (str, str, int), optional
        (x_name, y_name, n_sigma) contour requests
    """

    def __init__(self, scan_params=None, scan_2d=None, contour_plots=None):
        self.scan_params = list(scan_params or [])
        self.scan_2d = list(scan_2d or [])
        self.contour_plots = [(x, y, int(n)) for x, y, n in (contour_plots or [])]

    def add_scan_param(self, scan_param):
        self.scan_params.append(scan_param)

    def add_2d_scan(self, outer, inner):
        self.scan_2d.append((outer, inner))

    def add_contour_plot(self, x_name, y_name, n_sigma=1):
        self.contour_plots.append((x_name, y_name, int(n_sigma)))

    def get_scan_param(self, name):
        """
        Raises
        ------
        ConfigurationError
            If no scan of `name` was requested
        """
        for scan_param in self.scan_params:
            if scan_param.get_name() == name:
                return scan_param
        raise ConfigurationError(f"No scan configured for parameter '{name}'")

    def get_2d_scan_params(self, outer_name, inner_name):
        """(outer, inner) ScanParams of a 2D scan, falling back to the 1D scans."""
        for outer, inner in self.scan_2d:
            if outer.get_name() == outer_name and inner.get_name() == inner_name:
                return outer, inner
        return self.get_scan_param(outer_name), self.get_scan_param(inner_name)

    def get_scan_names(self):
        return [scan_param.get_name() for scan_param in self.scan_params]

    def get_2d_scan_names(self):
        return [(outer.get_name(), inner.get_name()) for outer, inner in self.scan_2d]

    def get_contour_plots(self):
        return list(self.contour_plots)
