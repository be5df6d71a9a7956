"""
Expiring per-identity state records (chat login steps and device codes)
kept in the account store.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from seedsync.core.clock import utcnow
from seedsync.core.config import settings
from seedsync.models.identity import Identity
from seedsync.models.pending_state import PendingState

logger = logging.getLogger(__name__)

LOGIN_KEY = "login"
DEVICE_KEY = "device"


def get_state(db: Session, identity: Identity, key: str) -> Optional[Dict[str, Any]]:
    row = db.query(PendingState).filter(
        PendingState.identity_id == identity.id,
        PendingState.key == key,
    ).first()
    if row is None:
        return None
    if row.expires_at <= utcnow():
        db.delete(row)
        db.commit()
        return None
    return dict(row.payload or {})


def set_state(
    db: Session,
    identity: Identity,
    key: str,
    payload: Dict[str, Any],
    ttl_seconds: Optional[int] = None,
) -> None:
    ttl = ttl_seconds if ttl_seconds is not None else settings.LOGIN_STATE_TTL_SECONDS
    row = db.query(PendingState).filter(
        PendingState.identity_id == identity.id,
        PendingState.key == key,
    ).first()
    if row is None:
        row = PendingState(identity_id=identity.id, key=key)
        db.add(row)
    row.payload = dict(payload)
    row.expires_at = utcnow() + timedelta(seconds=ttl)
    db.commit()


def clear_state(db: Session, identity: Identity, key: str) -> None:
    db.query(PendingState).filter(
        PendingState.identity_id == identity.id,
        PendingState.key == key,
    ).delete()
    db.commit()


def purge_expired(db: Session) -> int:
    count = db.query(PendingState).filter(PendingState.expires_at <= utcnow()).delete()
    db.commit()
    return count


def reset_all(db: Session) -> int:
    """Drop every pending record, e.g. to unstick half-finished logins."""
    count = db.query(PendingState).delete()
    db.commit()
    logger.info(f"Cleared {count} pending state records")
    return count
