"""
Exception logging helpers that never raise themselves.

Used on every error path of the proxy: a failure while describing a failure
must not abort the response that is being produced.
"""

import logging


def _safe_str(obj) -> str:
    """
    Safely convert an object to string, handling cases where __str__ or __repr__ might fail.

    Args:
        obj: The object to convert to string

    Returns:
        A string representation of the object, falling back to safe alternatives
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            try:
                return f"<{type(obj).__name__} object (string conversion failed)>"
            except Exception:
                return "<object (all string conversions failed)>"


def _cause_of(exception) -> object:
    """The underlying cause carried by a proxy error, if any."""
    try:
        cause = getattr(exception, "cause", None)
        if cause is None:
            cause = getattr(exception, "__cause__", None)
        return cause
    except Exception:
        return None


def format_exception_message(exception: Exception) -> str:
    """
    Format an exception message including its underlying cause.

    Args:
        exception: The exception to format

    Returns:
        A formatted string describing the exception
    """
    try:
        if exception is None:
            return "None"

        message = _safe_str(exception)
        cause = _cause_of(exception)
        if cause is not None and cause is not exception:
            cause_type = type(cause).__name__
            return f"{message} (caused by {cause_type}: {_safe_str(cause)})"
        return message
    except Exception:
        try:
            return f"<{type(exception).__name__} (formatting failed)>"
        except Exception:
            return "<exception (all formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
    context: str = "",
) -> None:
    """
    Log an exception together with its cause and request context.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]", "[Rewrite]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
        context: Request description appended to the message
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        message = f"{safe_prefix} {type(exception).__name__}: {format_exception_message(exception)}"
        if context:
            message = f"{message} [{_safe_str(context)}]"

        # Full tracebacks only for server-side failures
        exc_info = exception if level >= logging.ERROR and exception is not None else False
        try:
            logger.log(level, message, exc_info=exc_info)
        except Exception:
            try:
                logger.log(level, message)
            except Exception:
                logger.log(level, f"{safe_prefix} Exception (logging failed)")
    except Exception:
        # If anything in the entire function fails, try one last minimal log attempt
        try:
            if logger is not None:
                logger.log(logging.ERROR, "Exception logging failed")
        except Exception:
            # If even this fails, give up completely (don't propagate the exception)
            pass
