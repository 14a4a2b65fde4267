"""
Numerical normalisation of PDFs over a phase-space boundary.
"""

import itertools
import warnings

import numpy as np
from scipy.integrate import quad, nquad, IntegrationWarning

from .exceptions import IntegrationError
from ..utils import log_warning


def numerical_normalisation(pdf, boundary):
    """
    Integrate a PDF over the continuous observables of a boundary.

    Discrete observables are summed over. Observables on the PDF's
    do-not-integrate list cannot be handled numerically.

    Parameters
    ----------
    pdf : BasePDF
        PDF with its physics parameters set
    boundary : PhaseSpaceBoundary
        Integration region

    Returns
    -------
    float
        The integral

    Raises
    ------
    IntegrationError
        If the integral is not positive and finite, or scipy reports a
        non-converged integration
    """
    if pdf.get_do_not_integrate_list():
        raise IntegrationError(f"{type(pdf).__name__} has per-event observables "
                               f"{pdf.get_do_not_integrate_list()} and no analytic normalisation")

    continuous, discrete = [], []
    for name in pdf.get_prototype_data_point():
        if name not in boundary:
            raise IntegrationError(f"Observable '{name}' has no range to integrate over")
        if boundary.get_constraint(name).discrete:
            discrete.append(name)
        else:
            continuous.append(name)

    ranges = [(boundary.get_constraint(name).minimum, boundary.get_constraint(name).maximum)
              for name in continuous]
    value_lists = [boundary.get_constraint(name).values for name in discrete]

    total = 0.0
    with warnings.catch_warnings():
        warnings.simplefilter('error', IntegrationWarning)
        try:
            for combo in itertools.product(*value_lists):
                fixed = dict(zip(discrete, combo))

                def integrand(*xs):
                    point = dict(fixed)
                    point.update(zip(continuous, xs))
                    return float(pdf.evaluate(point))

                if not continuous:
                    total += integrand()
                elif len(continuous) == 1:
                    total += quad(integrand, *ranges[0])[0]
                else:
                    total += nquad(integrand, ranges)[0]
        except IntegrationWarning as e:
            raise IntegrationError(f"Integration of {type(pdf).__name__} did not converge: {e}") from e

    if not np.isfinite(total) or total <= 0.0:
        raise IntegrationError(f"Integral of {type(pdf).__name__} is {total}")
    return total


def get_normalisation(pdf, boundary):
    """Analytic normalisation when the PDF provides one, numerical otherwise."""
    norm = pdf.normalisation(boundary)
    if norm is None:
        return numerical_normalisation(pdf, boundary)
    if not np.isfinite(norm) or norm <= 0.0:
        raise IntegrationError(f"{type(pdf).__name__} returned normalisation {norm}")
    return norm


def integrator_test(pdf, boundary, tolerance=0.01):
    """
    Compare analytic and numerical normalisation of a PDF.

    Returns
    -------
    bool
        True if they agree within the relative tolerance or no analytic
        normalisation exists
    """
    analytic = pdf.normalisation(boundary)
    if analytic is None or pdf.get_do_not_integrate_list():
        return True
    numeric = numerical_normalisation(pdf, boundary)
    if abs(analytic - numeric) > tolerance * abs(numeric):
        log_warning(f"{type(pdf).__name__}: analytic normalisation {analytic:.6g} differs from "
                    f"numerical {numeric:.6g}")
        return False
    return True
