from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from seedsync.db.base_class import Base
import enum


class IdentityKind(str, enum.Enum):
    CHAT = "chat"
    WEB = "web"


class Identity(Base):
    """
    Application-level principal owning Seedr accounts.

    @description A chat user (external_id is the chat user id) or a web
    dashboard session (external_id is the ``session_...`` id sent in X-Session-ID).
    """
    __tablename__ = "identities"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String, unique=True, index=True, nullable=False)
    kind = Column(SQLEnum(IdentityKind), nullable=False, default=IdentityKind.CHAT)
    created_at = Column(DateTime, server_default=func.now())

    accounts = relationship("ProviderAccount", back_populates="identity")

    @property
    def is_web(self) -> bool:
        return self.kind == IdentityKind.WEB
