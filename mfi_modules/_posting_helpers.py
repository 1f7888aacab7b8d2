"""
Shared helpers for module services.

Module services own the transaction boundary; ``unit_of_work`` is how they
draw it.  Imports only from ``mfi_kernel``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mfi_kernel.exceptions import MfiKernelError, PersistenceFailureError
from mfi_kernel.logging_config import get_logger

logger = get_logger("modules.unit_of_work")


@contextmanager
def unit_of_work(session: Session, operation: str, **log_fields: Any) -> Iterator[Session]:
    """
    Run the body as one transaction.

    Commits when the body completes.  On any error the session is rolled
    back; a ``SQLAlchemyError`` is re-raised as ``PersistenceFailureError``
    with the driver error chained, everything else is re-raised unchanged.
    """
    try:
        yield session
        session.commit()
    except MfiKernelError as exc:
        session.rollback()
        logger.info(
            f"{operation}_rejected",
            extra={**log_fields, "error_code": exc.code},
        )
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"{operation}_persistence_failure", extra=log_fields, exc_info=True)
        raise PersistenceFailureError(operation, str(exc).split("\n", 1)[0]) from exc
    except Exception:
        session.rollback()
        raise
    else:
        logger.info(f"{operation}_committed", extra=log_fields)
