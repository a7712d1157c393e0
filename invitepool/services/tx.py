# invitepool/services/tx.py
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from invitepool.core.exceptions import InvitePoolError, TransactionFailure

logger = logging.getLogger("invitepool.tx")
logger.setLevel(logging.INFO)


@contextmanager
def atomic(db: Session, action: str):
    """
    Commit the block as one unit.
    Typed errors roll back and propagate unchanged; store errors roll back and
    surface as TransactionFailure.
    """
    try:
        yield
        db.commit()
    except InvitePoolError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{action} failed, rolled back: {e}", exc_info=True)
        raise TransactionFailure() from e
