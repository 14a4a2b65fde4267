"""
Likelihood scans.

A scan fixes one parameter at each point of a grid and refits the others.
Fits that do not converge are retried, first at the same value and then at
values wiggled around it. The scanned parameter is put back to its original
value and type once the scan ends, whether it finished or raised.
"""

from ..exceptions import ConfigurationError, ScanError
from ..parameters import fixed_parameter
from .assembler import do_safe_fit
from .results import FIT_STATUS_CONVERGED, FitResultVector, format_fit_result
from ...utils import log_info


# Refit attempts for a non-converged scan point, and the wiggle step as a
# fraction of the grid step
MAX_WIGGLE_STEPS = 20
WIGGLE_DIVISIONS = 20


def _safe_point_fit(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                    verbosity, name, value):
    try:
        return do_safe_fit(minimiser_config, function_config, parameters, pdf_with_data,
                           constraints, verbosity=verbosity)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ScanError(f"Fit at {name}={value} raised instead of returning a result") from e


def _retry_until_converged(fit_point, scan_parameter, scan_value, step, result, output):
    retried = False
    wiggle_step_num = 0
    wiggle_step_size = step / WIGGLE_DIVISIONS
    while result.get_fit_status() != FIT_STATUS_CONVERGED:
        if not retried:
            value = scan_value
            retried = True
            log_info(f"Fit status {result.get_fit_status()}, retrying at {scan_parameter.name}={value}")
        else:
            left_right = 1 if wiggle_step_num % 2 == 0 else -1
            value = scan_value + left_right * wiggle_step_size * (wiggle_step_num // 2 + 1)
            wiggle_step_num += 1
            log_info(f"Stepping to {scan_parameter.name}={value}, retrying")
        if wiggle_step_num >= MAX_WIGGLE_STEPS:
            break
        scan_parameter.set_blinded_value(value)
        output.start_stopwatch()
        result = fit_point(value)
    return result


def _finalise_scan_point(result, parameters, name, scan_value):
    results = result.get_result_parameter_set()
    scan_parameter = parameters.get_physics_parameter(name)
    results.force_new_result_parameter(name, scan_value, scan_value, 0.0, scan_value, scan_value,
                                       scan_parameter.get_type(), scan_parameter.get_unit())
    results.get_result_parameter(name).set_scan_status(True)
    for fixed_name in parameters.get_all_fixed_names():
        if fixed_name not in results:
            param = parameters.get_physics_parameter(fixed_name)
            value = param.get_blinded_value()
            results.force_new_result_parameter(fixed_name, value, value, 0.0, value, value,
                                               param.get_type(), param.get_unit())


def do_scan(minimiser_config, function_config, parameters, pdf_with_data, constraints, scan_param,
            output, verbosity=1):
    """
    One-dimensional likelihood scan.

    Parameters
    ----------
    minimiser_config : MinimiserConfiguration
        Minimiser to use
    function_config : FitFunctionConfiguration
        Fit function to use. Its integrator test is switched off.
    parameters : ParameterSet
        Starting values. The scanned parameter is restored on exit.
    pdf_with_data : list of PDFWithData
        Fit components
    constraints : list of ExternalConstraint
        External constraints
    scan_param : ScanParam
        Parameter and grid to scan
    output : FitResultVector
        Receives one result per grid point, in grid order
    verbosity : int
        Passed to every fit

    Raises
    ------
    ConfigurationError
        If the scanned parameter is unknown
    ScanError
        If a fit raises instead of returning a result
    """
    function_config.set_integrator_test(False)
    name = scan_param.get_name()
    grid = scan_param.get_grid()
    step = scan_param.get_step()
    log_info(f"Scanning {name} over {len(grid)} points from {scan_param.get_min()} "
             f"to {scan_param.get_max()}")

    with fixed_parameter(parameters, name) as scan_parameter:
        def fit_point(value):
            return _safe_point_fit(minimiser_config, function_config, parameters, pdf_with_data,
                                   constraints, verbosity, name, value)

        for index, scan_value in enumerate(grid):
            log_info(f"Scan point {index + 1} of {len(grid)}: {name}={scan_value}")
            scan_parameter.set_blinded_value(scan_value)
            output.start_stopwatch()
            result = fit_point(scan_value)
            result = _retry_until_converged(fit_point, scan_parameter, scan_value, step, result,
                                            output)
            _finalise_scan_point(result, parameters, name, scan_value)
            log_info(format_fit_result(result))
            output.add_fit_result(result)
    return output


def do_scan_2d(minimiser_config, function_config, parameters, pdf_with_data, constraints,
               scan_params, output=None, verbosity=1):
    """
    Two-dimensional likelihood scan.

    The outer parameter is fixed at each of its grid values in turn and a
    one-dimensional scan of the inner parameter is run there.

    Parameters
    ----------
    scan_params : (ScanParam, ScanParam)
        Outer and inner scans
    output : list, optional
        Receives one FitResultVector per outer grid value

    Returns
    -------
    list of FitResultVector
    """
    outer, inner = scan_params
    if outer.get_name() == inner.get_name():
        raise ConfigurationError(f"2D scan needs two different parameters, got {outer.get_name()} twice")
    if output is None:
        output = []
    function_config.set_integrator_test(False)
    outer_name = outer.get_name()
    names = parameters.get_all_names()

    with fixed_parameter(parameters, outer_name) as outer_parameter:
        grid = outer.get_grid()
        for index, outer_value in enumerate(grid):
            log_info(f"2D scan outer point {index + 1} of {len(grid)}: {outer_name}={outer_value}")
            outer_parameter.set_blinded_value(outer_value)
            vector = FitResultVector(names)
            do_scan(minimiser_config, function_config, parameters, pdf_with_data, constraints, inner,
                    vector, verbosity)
            for result in vector:
                results = result.get_result_parameter_set()
                results.force_new_result_parameter(outer_name, outer_value, outer_value, 0.0,
                                                   outer_value, outer_value,
                                                   outer_parameter.get_type(),
                                                   outer_parameter.get_unit())
                results.get_result_parameter(outer_name).set_scan_status(True)
            output.append(vector)
    return output


def single_scan(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                output_config, scan_name, verbosity=1):
    """Run the configured 1D scan of `scan_name` into a new FitResultVector."""
    scan_param = output_config.get_scan_param(scan_name)
    vector = FitResultVector(parameters.get_all_names())
    return do_scan(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                   scan_param, vector, verbosity)


def contour_scan(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                 output_config, outer_name, inner_name, verbosity=1):
    """Run the configured 2D scan of (`outer_name`, `inner_name`)."""
    scan_params = output_config.get_2d_scan_params(outer_name, inner_name)
    return do_scan_2d(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                      scan_params, [], verbosity)
