"""
Translation of store-specific errors into the queue error taxonomy.

Only the conditions listed in ``_TRANSLATIONS`` are translated; every other
database error is returned as-is so callers see the original failure.
"""

from collections.abc import Callable

from sqlalchemy.exc import DBAPIError

from pgqueue.constants import TASKS_PKEY
from pgqueue.errors import DuplicateIDError, QueueError

UNIQUE_VIOLATION = "23505"

# (SQLSTATE, constraint name) -> error factory
_TRANSLATIONS: dict[tuple[str, str], Callable[[object], QueueError]] = {
    (UNIQUE_VIOLATION, TASKS_PKEY): DuplicateIDError,
}


def sqlstate(error: DBAPIError) -> str | None:
    """Extract the SQLSTATE code from a wrapped driver error."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is None and orig is not None:
        # asyncpg errors are chained behind the DBAPI adapter
        code = getattr(orig.__cause__, "sqlstate", None)
    return code


def constraint_name(error: DBAPIError) -> str | None:
    """Extract the violated constraint name from a wrapped driver error."""
    orig = error.orig
    name = getattr(orig, "constraint_name", None)
    if name is None and orig is not None:
        name = getattr(orig.__cause__, "constraint_name", None)
    if name is None:
        diag = getattr(orig, "diag", None)
        name = getattr(diag, "constraint_name", None)
    return name


def translate(error: DBAPIError, subject: object = None) -> Exception:
    """
    Map a database error onto the queue taxonomy.

    Args:
        error: The SQLAlchemy-wrapped driver error.
        subject: The value the error refers to (e.g. the task id).

    Returns:
        The translated queue error, or the original error if unmapped.
    """
    factory = _TRANSLATIONS.get((sqlstate(error) or "", constraint_name(error) or ""))
    if factory is None:
        return error
    return factory(subject)
