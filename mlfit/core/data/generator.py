"""
Accept-reject toy generation from a PDF.
"""

import numpy as np

from ..exceptions import ConfigurationError
from .dataset import DataSet
from ...utils import log_debug, log_warning


def _sample_uniform(boundary, observables, rng, size):
    return {name: boundary.get_constraint(name).sample(rng, size) for name in observables}


def generate_toy_data(pdf, boundary, n_events, rng=None, batch_size=10000, safety_factor=1.2):
    """
    Generate events distributed according to a PDF.

    Candidates are drawn uniformly over the boundary and kept with probability
    P(x) / P_max. P_max is estimated from a uniform sample and raised whenever a
    larger value is met.

    Parameters
    ----------
    pdf : BasePDF
        PDF with its physics parameters already set
    boundary : PhaseSpaceBoundary
        Phase space to generate in. Must constrain every PDF observable.
    n_events : int
        Number of events to generate
    rng : numpy.random.Generator, optional
        Random generator. A fresh default generator is used if omitted.
    batch_size : int, optional
        Number of candidates drawn per iteration
    safety_factor : float, optional
        Multiplier applied to the estimated maximum

    Returns
    -------
    DataSet
        Generated events
    """
    rng = rng if rng is not None else np.random.default_rng()
    observables = list(boundary.get_all_names())
    for name in pdf.get_prototype_data_point():
        if name not in boundary:
            raise ConfigurationError(f"Cannot generate '{name}': not in phase space")

    if n_events <= 0:
        return DataSet(boundary, {name: np.empty(0) for name in observables})

    probe = _sample_uniform(boundary, observables, rng, batch_size)
    p_max = float(np.max(pdf.evaluate(probe))) * safety_factor
    if not np.isfinite(p_max) or p_max <= 0:
        raise ConfigurationError(f"PDF {type(pdf).__name__} is not positive anywhere in phase space")

    accepted = {name: [] for name in observables}
    n_accepted = 0
    while n_accepted < n_events:
        candidates = _sample_uniform(boundary, observables, rng, batch_size)
        values = np.broadcast_to(np.asarray(pdf.evaluate(candidates), dtype=float), (batch_size,))
        batch_max = float(np.max(values))
        if batch_max > p_max:
            log_warning(f"Generation maximum raised from {p_max:.4g} to {batch_max * safety_factor:.4g}")
            p_max = batch_max * safety_factor
        keep = rng.uniform(0.0, p_max, batch_size) < values
        for name in observables:
            accepted[name].append(candidates[name][keep])
        n_accepted += int(np.sum(keep))

    columns = {name: np.concatenate(chunks)[:n_events] for name, chunks in accepted.items()}
    log_debug(f"Generated {n_events} events for {type(pdf).__name__}")
    return DataSet(boundary, columns)
