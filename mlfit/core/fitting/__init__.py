"""
Fitting package: bottles, fit functions, minimisers, fit assembly and scans.
"""

from .assembler import (do_fit, do_safe_fit, petes_do_safe_fit, robs_do_safe_fit,
                        check_input_obs, check_input_params, check_parameter_set,
                        generation_parameters, build_bottle, bottle_from_pdf_with_data,
                        fit_bottle, get_fit_strategy, FIT_STRATEGY_REGISTRY)
from .bottle import PhysicsBottle
from .configuration import (MinimiserConfiguration, FitFunctionConfiguration, ScanParam,
                            OutputConfiguration)
from .constraints import ExternalConstraint, ConstraintFunction
from .fit_function import NegativeLogLikelihood, get_fit_function, FIT_FUNCTION_REGISTRY
from .minimiser import (Converged, IntegrationFailure, GenericFailure, get_minimiser,
                        list_minimisers, register_minimiser, MINIMISER_REGISTRY)
from .results import (FitResult, FitResultVector, FunctionContour, format_fit_result,
                      failed_fit_result, FIT_STATUS_CONVERGED, FIT_STATUS_FAILED,
                      LLSCAN_FIT_FAILURE_VALUE)
from .scans import do_scan, do_scan_2d, single_scan, contour_scan
from .statistics import (calculate_statistics, extract_fit_statistics, pull_statistics,
                         profile_likelihood, profile_likelihood_2d, format_statistics)
from .toys import ToyStudy

__all__ = [
    'do_fit',
    'do_safe_fit',
    'petes_do_safe_fit',
    'robs_do_safe_fit',
    'check_input_obs',
    'check_input_params',
    'check_parameter_set',
    'generation_parameters',
    'build_bottle',
    'bottle_from_pdf_with_data',
    'fit_bottle',
    'get_fit_strategy',
    'FIT_STRATEGY_REGISTRY',
    'PhysicsBottle',
    'MinimiserConfiguration',
    'FitFunctionConfiguration',
    'ScanParam',
    'OutputConfiguration',
    'ExternalConstraint',
    'ConstraintFunction',
    'NegativeLogLikelihood',
    'get_fit_function',
    'FIT_FUNCTION_REGISTRY',
    'Converged',
    'IntegrationFailure',
    'GenericFailure',
    'get_minimiser',
    'list_minimisers',
    'register_minimiser',
    'MINIMISER_REGISTRY',
    'FitResult',
    'FitResultVector',
    'FunctionContour',
    'format_fit_result',
    'failed_fit_result',
    'FIT_STATUS_CONVERGED',
    'FIT_STATUS_FAILED',
    'LLSCAN_FIT_FAILURE_VALUE',
    'do_scan',
    'do_scan_2d',
    'single_scan',
    'contour_scan',
    'calculate_statistics',
    'extract_fit_statistics',
    'pull_statistics',
    'profile_likelihood',
    'profile_likelihood_2d',
    'format_statistics',
    'ToyStudy',
]
