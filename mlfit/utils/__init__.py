"""Utilities package. """

from .logger import (get_logger, log_error, log_critical, log_warning, log_info, log_debug,
                     setup_logger, set_output_level, restore_output_level)

__all__ = [
    'get_logger',
    'log_error',
    'log_critical',
    'log_warning', 
    'log_info',
    'log_debug',
    'setup_logger',
    'set_output_level',
    'restore_output_level',
]
