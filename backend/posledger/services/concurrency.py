# Overview: Serialization helpers for the checkout and refund read-modify-write sequences.

from __future__ import annotations

import threading
import time
from functools import wraps

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Checkout and refund both check-then-mutate product stock and transaction
# refund totals; one lock per process serializes them.
LEDGER_LOCK = threading.RLock()


def serialized(func):
    """Run `func` while holding LEDGER_LOCK."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        with LEDGER_LOCK:
            return func(*args, **kwargs)
    return wrapper


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locked database) and StaleDataError
    (version_id conflicts). Any other exception rolls the session back and
    propagates unchanged.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
