"""
Exception formatting and logging helpers that never raise themselves.
"""

import logging


def _safe_str(obj) -> str:
    """
    Convert an object to string, falling back to repr and finally the type name
    when __str__ or __repr__ are broken.
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def format_exception_message(exception: Exception) -> str:
    """
    Message reported to callers for a failed upstream call.

    Transport errors from httpx frequently carry an empty message (for example a
    bare ``ReadTimeout``); the exception class name is used in that case so the
    logged ``error`` field is never blank.

    Args:
        exception: The exception to describe

    Returns:
        A non-empty, human readable description
    """
    if exception is None:
        return "None"
    message = _safe_str(exception).strip()
    if message:
        return message
    return type(exception).__name__


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its type and, for chained exceptions, the cause.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        message = f"{prefix} {type(exception).__name__}: {format_exception_message(exception)}"
        cause = getattr(exception, "__cause__", None)
        if cause is not None:
            message += f" (caused by {type(cause).__name__}: {format_exception_message(cause)})"
        logger.log(level, message, exc_info=exception)
    except Exception:
        try:
            logger.log(level, f"{prefix} Exception (logging failed)")
        except Exception:
            pass
