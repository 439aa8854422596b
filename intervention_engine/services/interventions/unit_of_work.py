"""
Transaction helpers.

Mutations commit together or not at all. SQLAlchemy failures are translated
into the intervention error taxonomy on the way out.
"""
import logging
from contextlib import contextmanager
from functools import wraps

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .errors import InterventionError, ConflictError, UpstreamError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, operation: str):
    """
    Run one atomic read-modify-write.

    Commits on success. Rolls back on any error: a lost optimistic lock
    becomes ConflictError and other store failures become UpstreamError.
    Any other exception is re-raised unchanged.
    """
    try:
        yield
        db.commit()
    except InterventionError:
        db.rollback()
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"{operation}: concurrent update detected, rolled back")
        raise ConflictError(f"{operation} lost a concurrent update; reload and retry") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{operation}: store failure: {e}")
        raise UpstreamError(f"{operation} failed: {e}") from e
    except Exception:
        db.rollback()
        raise


def store_read(operation: str):
    """Decorator for read paths: store failures become UpstreamError."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"{operation}: store read failed: {e}")
                raise UpstreamError(f"{operation} failed: {e}") from e
        return wrapper
    return decorator
