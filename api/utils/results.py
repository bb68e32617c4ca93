"""
Result objects returned by the public allocation and group operations.

    {'ok': True,  'error_kind': None,       'message': '...', 'data': {...}}
    {'ok': False, 'error_kind': 'conflict', 'message': '...', 'data': None}

Domain errors (AllocationError) become failed results. Anything else
(database down, programming errors) propagates to the caller.
"""
import functools

import structlog

from api.exceptions import AllocationError

logger = structlog.get_logger(__name__)


def success(data=None, message='OK'):
    return {
        'ok': True,
        'error_kind': None,
        'message': message,
        'data': data if data is not None else {},
    }


def failure(error):
    """Build a failed result from an AllocationError."""
    result = {
        'ok': False,
        'error_kind': error.kind,
        'message': error.message,
        'data': None,
    }
    if error.context:
        result['context'] = error.context
    return result


def operation_result(func):
    """
    Decorator: run a domain operation and wrap its outcome in a result dict.

    The wrapped function returns either a dict (used as `data`) or a
    (data, message) tuple.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            outcome = func(*args, **kwargs)
        except AllocationError as e:
            logger.info(
                "operation_rejected",
                operation=func.__name__,
                error_kind=e.kind,
                reason=e.message,
            )
            return failure(e)

        if isinstance(outcome, tuple):
            data, message = outcome
            return success(data, message)
        return success(outcome)

    return wrapper
