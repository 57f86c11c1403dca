# Overview: Service-layer operations for concurrency; transaction scope and row locking.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, PosError, TransactionFailure
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the product version counter catches concurrent writers instead.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work():
    """
    Scope one engine call to a single database transaction.

    Commits when the block exits normally. Any exception rolls back every
    write made in the block before it propagates, so callers never observe
    partial stock changes. Database errors are translated:

    - IntegrityError (unique/check constraint) -> ConflictError
    - OperationalError, StaleDataError (locks, deadlocks, version conflicts)
      -> TransactionFailure

    No retries happen here; a TransactionFailure is safe for the caller to
    resubmit because nothing was persisted.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except PosError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError("Write conflicts with existing data", detail=str(exc.orig)) from exc
    except (OperationalError, StaleDataError) as exc:
        session.rollback()
        raise TransactionFailure("Transaction aborted; no changes were saved") from exc
    except Exception:
        session.rollback()
        raise
