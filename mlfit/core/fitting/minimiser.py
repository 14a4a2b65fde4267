"""
Minimiser back-ends.

Every minimiser reports its outcome as one of Converged, IntegrationFailure
or GenericFailure instead of raising, so callers can decide how a failed fit
is handled.
"""

from dataclasses import dataclass

import numpy as np
import numdifftools as nd
from iminuit import Minuit
from lmfit import Minimizer
from scipy.stats import chi2

from ..exceptions import ConfigurationError, FitFailure, IntegrationError, NumericalFailure
from ..parameters import ResultParameterSet
from .results import (FitResult, FunctionContour, FIT_STATUS_APPROXIMATE, FIT_STATUS_CONVERGED,
                      FIT_STATUS_FORCED_POSDEF, FIT_STATUS_NOT_CONVERGED)
from ...utils import log_debug, log_warning


@dataclass(frozen=True)
class Converged:
    """The minimiser returned a result (whatever its fit status)."""
    result: FitResult


@dataclass(frozen=True)
class IntegrationFailure:
    """A normalisation failed during minimisation."""
    message: str


@dataclass(frozen=True)
class GenericFailure:
    """Any other numerical failure during minimisation."""
    message: str


class BaseMinimiser:
    """
    Common driver for minimiser back-ends.

    Parameters
    ----------
    n_parameters : int
        Number of free parameters expected
    output_level : int
        Verbosity (0 quiet, 1 summary, 2 or more per-iteration)
    contour_points : int
        Points per contour line
    """

    def __init__(self, n_parameters=0, output_level=1, contour_points=40):
        self.n_parameters = n_parameters
        self.output_level = output_level
        self.contour_points = contour_points
        self.contours = []
        self.result = None

    def set_output_level(self, level):
        self.output_level = level

    def contour_plots(self, contours):
        """Request (x_name, y_name, n_sigma) contours from the next fit."""
        self.contours = list(contours)

    def get_fit_result(self):
        return self.result

    def minimise(self, fit_function):
        """
        Minimise the fit function.

        Parameters
        ----------
        fit_function : NegativeLogLikelihood
            Function with a finalised bottle attached

        Returns
        -------
        Converged, IntegrationFailure or GenericFailure
        """
        free = fit_function.get_parameter_set().get_all_float_names()
        if self.n_parameters and len(free) != self.n_parameters:
            log_debug(f"Minimiser set up for {self.n_parameters} parameters, fitting {len(free)}")
        try:
            self.result = self._minimise(fit_function, free)
        except IntegrationError as e:
            log_warning(f"Integration failure during minimisation: {e}")
            return IntegrationFailure(str(e))
        except NumericalFailure as e:
            log_warning(f"Numerical failure during minimisation: {e}")
            return GenericFailure(str(e))
        return Converged(self.result)

    def _minimise(self, fit_function, free):
        raise NotImplementedError

    def _objective(self, fit_function, free):
        def nll(x):
            fit_function.set_parameter_values(dict(zip(free, x)))
            return fit_function.evaluate()
        return nll

    def _build_result(self, fit_function, free, best, errors, minimum, status,
                      covariance=None, contours=None):
        fit_function.set_parameter_values(dict(zip(free, best)))
        bottle = fit_function.get_physics_bottle()
        parameter_set = fit_function.get_parameter_set()
        results = ResultParameterSet()
        for param in parameter_set:
            error = errors[free.index(param.name)] if param.name in free else 0.0
            results.force_new_result_parameter(param.name, param.get_blinded_value(),
                                               bottle.initial_values[param.name], float(error),
                                               param.minimum, param.maximum,
                                               param.get_type(), param.get_unit())
        return FitResult(minimum, results, status, parameter_set.copy(),
                         covariance=covariance, covariance_names=free, contours=contours)

    def _requested_contours(self, free):
        for x_name, y_name, n_sigma in self.contours:
            if x_name not in free or y_name not in free:
                log_warning(f"Contour {x_name} vs {y_name} skipped: both parameters must be free")
                continue
            yield x_name, y_name, int(n_sigma)


def minuit_status(fmin):
    """Map an iminuit FMin onto the fit status codes."""
    if fmin.is_valid and fmin.has_accurate_covar:
        return FIT_STATUS_CONVERGED
    if fmin.has_made_posdef_covar:
        return FIT_STATUS_FORCED_POSDEF
    if fmin.has_covariance:
        return FIT_STATUS_APPROXIMATE
    return FIT_STATUS_NOT_CONVERGED


class MinuitMinimiser(BaseMinimiser):
    """
    MIGRAD (optionally preceded by SIMPLEX) followed by HESSE, via iminuit.

    Parameters
    ----------
    n_parameters : int
        Number of free parameters expected
    simplex : bool
        Run SIMPLEX before MIGRAD
    strategy : int
        Minuit strategy (0, 1 or 2)
    max_calls : int, optional
        Call limit passed to MIGRAD
    """

    def __init__(self, n_parameters=0, simplex=False, strategy=1, max_calls=None, **kwargs):
        super().__init__(n_parameters, **kwargs)
        self.simplex = simplex
        self.strategy = strategy
        self.max_calls = max_calls

    def _minimise(self, fit_function, free):
        nll = self._objective(fit_function, free)
        parameter_set = fit_function.get_parameter_set()
        if not free:
            return self._build_result(fit_function, free, [], [], fit_function.evaluate(),
                                      FIT_STATUS_CONVERGED)

        x0 = [parameter_set.get_physics_parameter(name).get_value() for name in free]
        m = Minuit(nll, np.array(x0, dtype=float), name=free)
        m.errordef = Minuit.LIKELIHOOD
        m.strategy = self.strategy
        m.print_level = max(0, min(self.output_level - 1, 3))
        for name in free:
            param = parameter_set.get_physics_parameter(name)
            if param.step_size > 0:
                m.errors[name] = param.step_size
            if param.has_bounds():
                m.limits[name] = (param.minimum, param.maximum)

        if self.simplex:
            m.simplex(ncall=self.max_calls)
        m.migrad(ncall=self.max_calls)
        if m.fmin.is_valid:
            m.hesse()

        status = minuit_status(m.fmin)
        best = [m.values[name] for name in free]
        errors = [m.errors[name] for name in free]
        covariance = np.array(m.covariance) if m.covariance is not None else None
        contours = []
        if m.fmin.is_valid:
            for x_name, y_name, n_sigma in self._requested_contours(free):
                contour = FunctionContour(x_name, y_name, n_sigma)
                for sigma in range(1, n_sigma + 1):
                    try:
                        points = m.mncontour(x_name, y_name, cl=float(sigma), size=self.contour_points)
                    except RuntimeError as e:
                        log_warning(f"Contour {x_name} vs {y_name} at {sigma} sigma failed: {e}")
                        continue
                    contour.set_plot(sigma, points)
                contours.append(contour)
        return self._build_result(fit_function, free, best, errors, m.fval, status,
                                  covariance, contours)


def covariance_ellipse(center, covariance, n_sigma, points=40):
    """
    Points of the Gaussian n-sigma confidence region of two parameters.

    The region has the same coverage as an n-sigma interval in one dimension.
    """
    level = chi2.ppf(chi2.cdf(n_sigma * n_sigma, 1), 2)
    lower = np.linalg.cholesky(covariance)
    angles = np.linspace(0.0, 2.0 * np.pi, points, endpoint=False)
    circle = np.sqrt(level) * np.vstack([np.cos(angles), np.sin(angles)])
    return (np.asarray(center, dtype=float)[:, None] + lower @ circle).T


class LmfitMinimiser(BaseMinimiser):
    """
    Scalar minimisation through lmfit, with errors from a numerical Hessian.

    Parameters
    ----------
    n_parameters : int
        Number of free parameters expected
    method : str
        lmfit scalar method (e.g., 'nelder', 'powell', 'lbfgsb')
    max_nfev : int, optional
        Function evaluation limit
    """

    def __init__(self, n_parameters=0, method='nelder', max_nfev=None, **kwargs):
        super().__init__(n_parameters, **kwargs)
        self.method = method
        self.max_nfev = max_nfev

    def _log_iteration(self, params, iteration, resid, *args, **kwargs):
        log_debug(f"{self.method} iteration {iteration}: {float(np.sum(resid)):.10g}")

    def _minimise(self, fit_function, free):
        nll = self._objective(fit_function, free)
        if not free:
            return self._build_result(fit_function, free, [], [], fit_function.evaluate(),
                                      FIT_STATUS_CONVERGED)

        params, keys = fit_function.get_parameter_set().to_lmfit_parameters()

        def objective(lm_params):
            return nll([lm_params[keys[name]].value for name in free])

        iter_cb = self._log_iteration if self.output_level >= 2 else None
        minimizer = Minimizer(objective, params, nan_policy='raise', calc_covar=False,
                              max_nfev=self.max_nfev, iter_cb=iter_cb)
        try:
            result = minimizer.minimize(method=self.method)
        except ValueError as e:
            raise FitFailure(f"lmfit {self.method} failed: {e}") from e

        best = np.array([result.params[keys[name]].value for name in free])
        minimum = nll(best)
        covariance, status = self._hessian_covariance(nll, best, result.success)
        if covariance is None:
            errors = np.zeros(len(free))
        else:
            errors = np.sqrt(np.abs(np.diag(covariance)))

        contours = []
        if covariance is not None and status == FIT_STATUS_CONVERGED:
            for x_name, y_name, n_sigma in self._requested_contours(free):
                i, j = free.index(x_name), free.index(y_name)
                block = covariance[np.ix_([i, j], [i, j])]
                contour = FunctionContour(x_name, y_name, n_sigma)
                for sigma in range(1, n_sigma + 1):
                    contour.set_plot(sigma, covariance_ellipse(best[[i, j]], block, sigma,
                                                               self.contour_points))
                contours.append(contour)
        return self._build_result(fit_function, free, best, errors, minimum, status,
                                  covariance, contours)

    def _hessian_covariance(self, nll, best, success):
        try:
            hessian = np.atleast_2d(nd.Hessian(nll)(best))
        except NumericalFailure as e:
            log_warning(f"Hessian evaluation failed: {e}")
            return None, FIT_STATUS_APPROXIMATE if success else FIT_STATUS_NOT_CONVERGED
        if not np.all(np.isfinite(hessian)):
            return None, FIT_STATUS_NOT_CONVERGED
        # Covariance of a negative log-likelihood is the inverse Hessian
        pos_def = bool(np.all(np.linalg.eigvalsh(hessian) > 0.0))
        covariance = np.linalg.inv(hessian) if pos_def else np.linalg.pinv(hessian)
        if success and pos_def:
            return covariance, FIT_STATUS_CONVERGED
        if success:
            return covariance, FIT_STATUS_FORCED_POSDEF
        if pos_def:
            return covariance, FIT_STATUS_APPROXIMATE
        return covariance, FIT_STATUS_NOT_CONVERGED


LMFIT_METHODS = ('nelder', 'powell', 'lbfgsb', 'bfgs', 'cg', 'tnc', 'slsqp')


def _lmfit_factory(method):
    def factory(n_parameters=0, **options):
        return LmfitMinimiser(n_parameters, method=method, **options)
    return factory


# Minimiser registry - maps minimiser names to factories(n_parameters, **options)
MINIMISER_REGISTRY = {
    'Minuit': MinuitMinimiser,
    'Migrad': MinuitMinimiser,
    'Simplex': lambda n_parameters=0, **options: MinuitMinimiser(n_parameters, simplex=True, **options),
}
MINIMISER_REGISTRY.update({method: _lmfit_factory(method) for method in LMFIT_METHODS})


def get_minimiser(name, n_parameters=0, **options):
    """
    Construct a minimiser by name.

    Parameters
    ----------
    name : str
        Minimiser name (e.g., 'Minuit', 'nelder')
    n_parameters : int
        Number of free parameters
    **options
        Back-end options (e.g., strategy=2, max_nfev=5000)

    Raises
    ------
    ConfigurationError
        If the name is not registered
    """
    if name not in MINIMISER_REGISTRY:
        raise ConfigurationError(f"Minimiser '{name}' not found. Available: {list_minimisers()}")
    return MINIMISER_REGISTRY[name](n_parameters, **options)


def list_minimisers():
    """List all available minimiser names."""
    return list(MINIMISER_REGISTRY.keys())


def register_minimiser(name, factory):
    """Register a custom minimiser factory taking (n_parameters, **options)."""
    MINIMISER_REGISTRY[name] = factory
