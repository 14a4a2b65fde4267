"""
Fit statistics: information criteria, toy pulls and likelihood profiles.
"""

import numpy as np

from .results import FIT_STATUS_FAILED


def calculate_statistics(minimum_nll, n_data, n_params):
    """
    Calculate information criteria of a likelihood fit.

    Parameters
    ----------
    minimum_nll : float
        Minimum of the negative log-likelihood
    n_data : int
        Number of events fitted
    n_params : int
        Number of free parameters

    Returns
    -------
    stats : dict
        Dictionary containing:
        - 'nll': minimum negative log-likelihood
        - 'aic': Akaike Information Criterion, 2k + 2 NLL
        - 'bic': Bayesian Information Criterion, k ln(n) + 2 NLL
    """
    dof = n_data - n_params
    if n_data > 0:
        bic = n_params * np.log(n_data) + 2 * minimum_nll
    else:
        bic = np.inf

    stats = {
        'nll': minimum_nll,
        'aic': 2 * n_params + 2 * minimum_nll,
        'bic': bic,
        'n_data': n_data,
        'n_params': n_params,
        'dof': dof,
    }

    return stats


def extract_fit_statistics(result, n_data):
    """
    Extract statistics from a FitResult.

    Parameters
    ----------
    result : FitResult
        Result of a fit
    n_data : int
        Number of events fitted

    Returns
    -------
    stats : dict
        calculate_statistics output plus the fit status
    """
    n_params = len(result.get_result_parameter_set().get_all_float_names())
    stats = calculate_statistics(result.get_minimum_value(), n_data, n_params)
    stats['fit_status'] = result.get_fit_status()
    return stats


def pull_statistics(result_vector, name):
    """
    Mean and width of the pulls of one parameter over a set of toy fits.

    Failed fits and undefined pulls are ignored.

    Returns
    -------
    stats : dict
        'mean', 'mean_error', 'width', 'width_error' and 'n' (pulls used)
    """
    pulls = result_vector.get_parameter_pulls(name)
    statuses = result_vector.get_fit_statuses()
    pulls = pulls[(statuses != FIT_STATUS_FAILED) & np.isfinite(pulls)]
    n = len(pulls)
    if n < 2:
        return {'mean': np.nan, 'mean_error': np.nan, 'width': np.nan, 'width_error': np.nan, 'n': n}
    width = np.std(pulls, ddof=1)
    return {
        'mean': float(np.mean(pulls)),
        'mean_error': float(width / np.sqrt(n)),
        'width': float(width),
        'width_error': float(width / np.sqrt(2.0 * (n - 1))),
        'n': n,
    }


def profile_likelihood(result_vector, name):
    """
    ΔNLL profile of a 1D scan.

    Parameters
    ----------
    result_vector : FitResultVector
        Output of a scan of `name`
    name : str
        Scanned parameter

    Returns
    -------
    values : ndarray
        Scan values of the usable points
    delta_nll : ndarray
        NLL minus the lowest NLL of the usable points
    """
    values = result_vector.get_parameter_values(name)
    nll = result_vector.get_minimum_values()
    usable = (result_vector.get_fit_statuses() != FIT_STATUS_FAILED) & np.isfinite(nll)
    if not np.any(usable):
        return np.array([]), np.array([])
    return values[usable], nll[usable] - np.min(nll[usable])


def profile_likelihood_2d(result_vectors, outer_name, inner_name):
    """
    ΔNLL surface of a 2D scan.

    Parameters
    ----------
    result_vectors : list of FitResultVector
        Output of a 2D scan, one vector per outer value

    Returns
    -------
    outer, inner, delta_nll : ndarray
        Arrays of shape (n_outer, n_inner). Failed points are NaN.
    """
    outer = np.array([v.get_parameter_values(outer_name) for v in result_vectors])
    inner = np.array([v.get_parameter_values(inner_name) for v in result_vectors])
    nll = np.array([v.get_minimum_values() for v in result_vectors])
    statuses = np.array([v.get_fit_statuses() for v in result_vectors])
    nll = np.where((statuses != FIT_STATUS_FAILED) & np.isfinite(nll), nll, np.nan)
    if np.all(np.isnan(nll)):
        return outer, inner, nll
    return outer, inner, nll - np.nanmin(nll)


def format_statistics(stats):
    """
    Format statistics for display.

    Parameters
    ----------
    stats : dict
        Statistics dictionary

    Returns
    -------
    str
        Formatted statistics string
    """
    lines = []
    lines.append("=== Fit Statistics ===")
    if 'fit_status' in stats:
        lines.append(f"Fit status = {stats['fit_status']}")
    lines.append(f"NLL = {stats.get('nll', 0):.6f}")
    lines.append(f"AIC = {stats.get('aic', 0):.2f}")
    lines.append(f"BIC = {stats.get('bic', 0):.2f}")
    lines.append(f"N data = {stats.get('n_data', 0)}")
    lines.append(f"N parameters = {stats.get('n_params', 0)}")
    lines.append(f"Degrees of freedom = {stats.get('dof', 0)}")

    return '\n'.join(lines)
