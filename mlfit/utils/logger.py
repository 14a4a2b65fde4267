"""
Logging utility for the fitting framework.
"""

import logging
import os
from datetime import datetime


# Fit verbosity -> logger level
OUTPUT_LEVELS = {
    -1: logging.CRITICAL,
    0: logging.WARNING,
    1: logging.INFO,
}


def setup_logger(log_dir='logs', log_level=logging.INFO):
    """
    Set up the framework logger that writes to both file and console.
    
    Parameters
    ----------
    log_dir : str or None
        Directory to store log files. If None, no log file is written.
    log_level : int
        Logging level (logging.DEBUG, INFO, WARNING, ERROR, CRITICAL)
    
    Returns
    -------
    logger : logging.Logger
        Configured logger instance
    """
    logger = logging.getLogger('MLFit')
    logger.setLevel(log_level)
    
    # Remove existing handlers to avoid duplicates
    logger.handlers = []
    
    log_file = None
    if log_dir is not None:
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = os.path.join(log_dir, f'mlfit_{timestamp}.log')
        
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)
    
    # Console handler (only warnings and errors)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_formatter = logging.Formatter('%(levelname)s: %(message)s')
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)
    
    logger.info("=" * 60)
    logger.info("MLFit Started")
    if log_file:
        logger.info(f"Log file: {log_file}")
    logger.info("=" * 60)
    
    global _logger
    _logger = logger
    return logger


# Global logger instance
_logger = None


def get_logger():
    """Get or create the global logger instance."""
    global _logger
    if _logger is None:
        _logger = setup_logger(log_dir=None)
    return _logger


def set_output_level(verbosity):
    """
    Map a fit verbosity onto the logger level.
    
    Parameters
    ----------
    verbosity : int
        -1 silent, 0 warnings only, 1 fit summaries, 2 or more everything
    
    Returns
    -------
    int
        The previous logger level, so callers can put it back
    """
    logger = get_logger()
    previous = logger.level
    if verbosity >= 2:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(OUTPUT_LEVELS.get(verbosity, logging.CRITICAL))
    return previous


def restore_output_level(level):
    """Put back a logger level returned by set_output_level."""
    get_logger().setLevel(level)


def log_error(message, exception=None):
    """
    Log an error message with optional exception details.
    
    Parameters
    ----------
    message : str
        Error message
    exception : Exception, optional
        Exception object to log
    """
    logger = get_logger()
    if exception:
        logger.error(f"{message}: {str(exception)}", exc_info=True)
    else:
        logger.error(message)


def log_critical(message, exception=None):
    """Log a critical message, with traceback when an exception is given."""
    logger = get_logger()
    if exception:
        logger.critical(f"{message}: {str(exception)}", exc_info=True)
    else:
        logger.critical(message)


def log_warning(message):
    """Log a warning message."""
    get_logger().warning(message)


def log_info(message):
    """Log an info message."""
    get_logger().info(message)


def log_debug(message):
    """Log a debug message."""
    get_logger().debug(message)
