"""
Fit assembly: build a physics bottle, minimise it and report the result.

`do_fit` raises when the minimiser fails. `do_safe_fit` never raises for a
numerical failure and returns a placeholder FitResult with fit status -1
instead. Only configuration errors escape it.
"""

import functools

import numpy as np

from ..exceptions import ConfigurationError, FitFailure, IntegrationError, NumericalFailure
from ..parameters import ParameterSet
from .bottle import PhysicsBottle
from .constraints import ConstraintFunction
from .minimiser import Converged, GenericFailure, IntegrationFailure
from .results import failed_fit_result, format_fit_result
from ...utils import (log_critical, log_info, log_warning, restore_output_level,
                      set_output_level)


def check_input_obs(pdfs, data_sets, weight_name=None, alpha_name=None):
    """
    Check every DataSet provides the observables its PDF needs.

    Parameters
    ----------
    pdfs : list of BasePDF
        PDFs of the fit
    data_sets : list of DataSet
        Data matched to the PDFs by position
    weight_name, alpha_name : str, optional
        Weight observables required in every DataSet

    Raises
    ------
    ConfigurationError
        If the counts differ or an observable is missing
    """
    if len(pdfs) != len(data_sets):
        raise ConfigurationError(f"Mismatched number of PDFs ({len(pdfs)}) "
                                 f"and DataSets ({len(data_sets)})")
    for index, (pdf, data_set) in enumerate(zip(pdfs, data_sets)):
        required = list(pdf.get_prototype_data_point())
        required += [name for name in (weight_name, alpha_name) if name is not None]
        for name in required:
            if name not in data_set:
                raise ConfigurationError(f"DataSet {index} lacks observable '{name}' "
                                         f"needed by {type(pdf).__name__}")


def check_input_params(given, pdfs, data_numbers):
    """
    Check `given` holds every parameter the PDFs need.

    Parameters
    ----------
    given : ParameterSet
        Parameters supplied by the caller
    pdfs : list of BasePDF
        PDFs of the fit
    data_numbers : list of int
        Events requested per PDF

    Returns
    -------
    ParameterSet
        Copy of the required parameters, in first-use order

    Raises
    ------
    ConfigurationError
        If the counts differ or a required parameter is missing
    """
    if len(pdfs) != len(data_numbers):
        raise ConfigurationError(f"Mismatched number of PDFs ({len(pdfs)}) "
                                 f"and data sizes ({len(data_numbers)})")
    required = []
    for pdf in pdfs:
        required += [name for name in pdf.get_prototype_parameter_set() if name not in required]
    missing = [name for name in required if name not in given]
    if missing:
        raise ConfigurationError(f"Parameters required by the PDFs are missing: {missing}")
    unused = [name for name in given.get_all_names() if name not in required]
    if unused:
        log_info(f"Parameters not used by any PDF: {unused}")
    log_info(f"{len(required)} parameters for {int(np.sum(data_numbers))} events")
    return ParameterSet([given.get_physics_parameter(name) for name in required]).copy()


def generation_parameters(checked, bottle_parameters):
    """Copy of `checked` with values taken from `bottle_parameters` where both have a parameter."""
    merged = checked.copy()
    for param in merged:
        if param.name in bottle_parameters:
            param.set_value(bottle_parameters.get_physics_parameter(param.name).get_value())
    return merged


def check_parameter_set(result, parameters):
    """Add every parameter of `parameters` missing from the result, with zero error."""
    results = result.get_result_parameter_set()
    for param in parameters:
        if param.name not in results:
            value = param.get_blinded_value()
            results.force_new_result_parameter(param.name, value, value, 0.0, param.minimum,
                                               param.maximum, param.get_type(), param.get_unit())
    return result


def _add_constraints(bottle, constraints):
    constraints = list(constraints or [])
    if constraints:
        bottle.add_constraint(ConstraintFunction(constraints))


def build_bottle(parameters, pdfs, data_sets, constraints=()):
    """Finalised PhysicsBottle of explicit PDFs and DataSets."""
    if len(pdfs) != len(data_sets):
        raise ConfigurationError(f"Mismatched number of PDFs ({len(pdfs)}) "
                                 f"and DataSets ({len(data_sets)})")
    bottle = PhysicsBottle(parameters)
    for pdf, data_set in zip(pdfs, data_sets):
        bottle.add_result(pdf, data_set)
    _add_constraints(bottle, constraints)
    bottle.finalise()
    return bottle


def bottle_from_pdf_with_data(parameters, pdf_with_data, constraints=()):
    """Finalised PhysicsBottle of PDFWithData entries, creating their data if needed."""
    bottle = PhysicsBottle(parameters)
    for entry in pdf_with_data:
        entry.set_physics_parameters(parameters)
        bottle.add_result(entry.get_pdf(), entry.get_data_set())
    _add_constraints(bottle, constraints)
    bottle.finalise()
    return bottle


def fit_bottle(minimiser_config, function_config, bottle, verbosity=1):
    """
    Minimise a finalised bottle.

    Returns
    -------
    Converged, IntegrationFailure or GenericFailure
    """
    pdfs = [pdf for pdf, _ in bottle.get_results()]
    data_sets = [data_set for _, data_set in bottle.get_results()]
    check_input_obs(pdfs, data_sets, function_config.get_weight_name(), function_config.get_alpha_name())
    minimiser = minimiser_config.get_minimiser(len(bottle.get_parameter_set().get_all_float_names()))
    minimiser.set_output_level(verbosity)
    fit_function = function_config.get_fit_function(bottle)
    return minimiser.minimise(fit_function)


def raise_failures(fit):
    """Turn a fit returning an outcome into one returning a FitResult or raising."""
    @functools.wraps(fit)
    def wrapper(*args, **kwargs):
        outcome = fit(*args, **kwargs)
        if isinstance(outcome, Converged):
            return outcome.result
        if isinstance(outcome, IntegrationFailure):
            raise IntegrationError(outcome.message)
        raise FitFailure(outcome.message)
    return wrapper


def recover_failures(fit):
    """
    Turn a fit returning an outcome into one that always returns a FitResult.

    Numerical failures and unexpected exceptions give a placeholder result
    built from `parameters`; configuration errors propagate.
    """
    @functools.wraps(fit)
    def wrapper(minimiser_config, function_config, parameters, pdf_with_data, constraints=(),
                verbosity=1):
        previous_level = set_output_level(verbosity)
        try:
            return _recover(fit, minimiser_config, function_config, parameters, pdf_with_data,
                            constraints, verbosity)
        finally:
            restore_output_level(previous_level)
    return wrapper


def _recover(fit, minimiser_config, function_config, parameters, pdf_with_data, constraints,
             verbosity):
    try:
        outcome = fit(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                      verbosity)
    except ConfigurationError:
        raise
    except IntegrationError as e:
        outcome = IntegrationFailure(str(e))
    except NumericalFailure as e:
        outcome = GenericFailure(str(e))
    except Exception as e:
        log_critical("Unexpected exception during fit, THIS IS SERIOUS", e)
        return check_parameter_set(failed_fit_result(parameters), parameters)

    if isinstance(outcome, IntegrationFailure):
        log_warning(f"Integration error, fit failed: {outcome.message}")
        return check_parameter_set(failed_fit_result(parameters), parameters)
    if isinstance(outcome, GenericFailure):
        log_warning(f"Fit failed for these parameters: {parameters.get_values()} ({outcome.message})")
        return check_parameter_set(failed_fit_result(parameters), parameters)

    result = outcome.result
    if not np.isfinite(result.get_minimum_value()):
        log_warning(f"Fit minimum is {result.get_minimum_value()}, treating the fit as failed")
        return check_parameter_set(failed_fit_result(parameters), parameters)
    check_parameter_set(result, parameters)
    log_info(format_fit_result(result))
    return result


@raise_failures
def do_fit(minimiser_config, function_config, parameters, pdfs, data_sets, constraints=(),
           verbosity=1):
    """
    Fit PDFs to DataSets.

    Parameters
    ----------
    minimiser_config : MinimiserConfiguration
        Minimiser to use
    function_config : FitFunctionConfiguration
        Fit function to use
    parameters : ParameterSet
        Starting values (not modified)
    pdfs : list of BasePDF
        PDFs of the fit
    data_sets : list of DataSet
        Data matched to the PDFs by position
    constraints : list of ExternalConstraint, optional
        External constraints

    Returns
    -------
    FitResult

    Raises
    ------
    ConfigurationError
        On inconsistent inputs
    IntegrationError, FitFailure
        If the minimiser fails
    """
    check_input_obs(pdfs, data_sets, function_config.get_weight_name(), function_config.get_alpha_name())
    for pdf in pdfs:
        pdf.set_physics_parameters(parameters)
    bottle = build_bottle(parameters, pdfs, data_sets, constraints)
    return fit_bottle(minimiser_config, function_config, bottle, verbosity)


@recover_failures
def do_safe_fit(minimiser_config, function_config, parameters, pdf_with_data, constraints=(),
                verbosity=1):
    """
    Fit PDFWithData entries, never raising for a numerical failure.

    Parameters
    ----------
    minimiser_config : MinimiserConfiguration
        Minimiser to use
    function_config : FitFunctionConfiguration
        Fit function to use
    parameters : ParameterSet
        Starting values (not modified)
    pdf_with_data : list of PDFWithData
        Fit components
    constraints : list of ExternalConstraint, optional
        External constraints
    verbosity : int
        -1 silent, 0 warnings, 1 fit review, 2 or more everything

    Returns
    -------
    FitResult
        The fit result, or a placeholder with fit status -1 and minimum
        LLSCAN_FIT_FAILURE_VALUE if the fit failed. Every parameter of
        `parameters` is present in the result.
    """
    bottle = bottle_from_pdf_with_data(parameters, pdf_with_data, constraints)
    return fit_bottle(minimiser_config, function_config, bottle, verbosity)


# Reflections producing the ambiguous solutions of the strong phases
STRONG_PHASE_REFLECTIONS = {
    'delta_para': lambda value: -value,
    'delta_perp': lambda value: np.pi - value,
}

# Reflections producing the ambiguous solution of the CP phase and width difference
WIDTH_REFLECTIONS = {
    'Phi_s': lambda value: np.pi - value,
    'deltaGamma': lambda value: -value,
}


def _reseeded_fit(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                  verbosity, reflections, first_result):
    names = [name for name in reflections
             if name in parameters and parameters.get_physics_parameter(name).is_free()]
    if not names:
        return None
    seeded = parameters.copy()
    first_values = first_result.get_result_parameter_set()
    for param in seeded:
        if param.is_free() and param.name in first_values:
            param.set_blinded_value(first_values.get_result_parameter(param.name).get_value())
    for name in names:
        param = seeded.get_physics_parameter(name)
        value = reflections[name](param.get_value())
        if param.has_bounds():
            value = float(np.clip(value, param.minimum, param.maximum))
        param.set_value(value)
    log_info(f"Refitting from the reflected solution in {names}")
    result = do_safe_fit(minimiser_config, function_config, seeded, pdf_with_data, constraints,
                         verbosity=verbosity)
    # Pulls refer to the caller's starting values
    for param in result.get_result_parameter_set():
        if param.name in parameters:
            param.original_value = parameters.get_physics_parameter(param.name).get_blinded_value()
    return result


def _lower_minimum(best, alternate):
    if alternate is None or not alternate.is_converged():
        return best
    if not best.is_converged() or alternate.get_minimum_value() < best.get_minimum_value():
        log_info(f"Alternate minimum {alternate.get_minimum_value():.10g} kept")
        return alternate
    return best


def petes_do_safe_fit(minimiser_config, function_config, parameters, pdf_with_data, constraints=(),
                      verbosity=1):
    """
    do_safe_fit, then a refit from the reflected strong phases.

    The result with the lower minimum among converged fits is returned.
    """
    best = do_safe_fit(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                       verbosity=verbosity)
    alternate = _reseeded_fit(minimiser_config, function_config, parameters, pdf_with_data,
                              constraints, verbosity, STRONG_PHASE_REFLECTIONS, best)
    return _lower_minimum(best, alternate)


def robs_do_safe_fit(minimiser_config, function_config, parameters, pdf_with_data, constraints=(),
                     verbosity=1):
    """
    do_safe_fit, then refits from the reflected strong phases, the reflected
    (Phi_s, deltaGamma) solution, and both together.
    """
    first = do_safe_fit(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                        verbosity=verbosity)
    best = first
    for reflections in (STRONG_PHASE_REFLECTIONS, WIDTH_REFLECTIONS,
                        {**STRONG_PHASE_REFLECTIONS, **WIDTH_REFLECTIONS}):
        alternate = _reseeded_fit(minimiser_config, function_config, parameters, pdf_with_data,
                                  constraints, verbosity, reflections, first)
        best = _lower_minimum(best, alternate)
    return best


# Fit strategy registry - maps strategy names to safe fit functions
FIT_STRATEGY_REGISTRY = {
    'Default': do_safe_fit,
    'Petes': petes_do_safe_fit,
    'Robs': robs_do_safe_fit,
}


def get_fit_strategy(name):
    """
    Raises
    ------
    ConfigurationError
        If the strategy is not registered
    """
    if name not in FIT_STRATEGY_REGISTRY:
        raise ConfigurationError(f"Fit strategy '{name}' not found. "
                                 f"Available: {list(FIT_STRATEGY_REGISTRY.keys())}")
    return FIT_STRATEGY_REGISTRY[name]
