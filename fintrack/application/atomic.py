"""
Single commit boundary for multi-row operations (transfer, goal funding).

The unit of work runs, then the session commits once. Any failure rolls the
whole unit back. Transient connection failures are retried: nothing of a
failed attempt survives the rollback, and an attempt whose commit did land
is recognised on retry through its idempotency key.
"""
import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError, DBAPIError
from sqlalchemy.orm import Session

from fintrack.application.errors import FinTrackError, TransportError
from fintrack.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_atomic(db: Session, unit: Callable[[], T], label: str, attempts: int | None = None) -> T:
    """
    Run `unit` and commit, retrying transient database failures.

    Args:
        db: SQLAlchemy session
        unit: Callable doing the writes (must not commit itself)
        label: Operation name for logs
        attempts: Max attempts (default: ATOMIC_RETRY_ATTEMPTS)

    Returns:
        Whatever `unit` returned

    Raises:
        FinTrackError subclasses raised by `unit` (after rollback)
        TransportError: still failing after the last attempt
    """
    if attempts is None:
        attempts = get_settings().ATOMIC_RETRY_ATTEMPTS
    attempts = max(attempts, 1)

    for attempt in range(1, attempts + 1):
        try:
            result = unit()
            db.commit()
            return result
        except FinTrackError:
            db.rollback()
            raise
        except OperationalError as exc:
            db.rollback()
            if attempt == attempts:
                logger.error("%s failed after %d attempts: %s", label, attempts, exc)
                raise TransportError(f"{label} failed: database unavailable") from exc
            logger.warning("%s attempt %d/%d failed, retrying: %s", label, attempt, attempts, exc)
        except DBAPIError as exc:
            db.rollback()
            if not exc.connection_invalidated:
                raise
            if attempt == attempts:
                raise TransportError(f"{label} failed: connection lost") from exc
            logger.warning("%s attempt %d/%d lost its connection, retrying", label, attempt, attempts)
        except Exception:
            db.rollback()
            raise

    # not reached: the loop either returns or raises
    raise TransportError(f"{label} failed")
