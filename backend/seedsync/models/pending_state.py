"""
Per-identity pending interaction state (chat login steps and device codes)
with an explicit expiry.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.sql import func
from seedsync.db.base_class import Base


class PendingState(Base):
    __tablename__ = "pending_states"
    __table_args__ = (UniqueConstraint("identity_id", "key", name="uq_pending_state_identity_key"),)

    id = Column(Integer, primary_key=True, index=True)
    identity_id = Column(Integer, ForeignKey("identities.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String, nullable=False)  # "login" or "device"
    payload = Column(JSON, nullable=False, default=dict)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
