from typing import Optional
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from seedsync.core.config import settings
from seedsync.core.exceptions import (
    AccountNotFoundError,
    DeviceAuthTimeoutError,
    NoContentError,
    ProviderAuthError,
    ProviderRequestError,
    PublishError,
    SeedSyncError,
    UnauthorizedError,
    ValidationError,
)
from seedsync.db.session import get_db
from seedsync.models.identity import Identity
from seedsync.services import accounts as account_store
from seedsync.services.github import GitHubPublisher
from seedsync.services.playlist import PlaylistAssembler
from seedsync.services.seedr import SeedrClient


def get_seedr_client() -> SeedrClient:
    return SeedrClient()


def get_publisher() -> GitHubPublisher:
    return GitHubPublisher()


def get_assembler(client: SeedrClient = Depends(get_seedr_client)) -> PlaylistAssembler:
    return PlaylistAssembler(client)


def get_current_identity(
    x_session_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Identity:
    """Web dashboard identity from the X-Session-ID header."""
    if not x_session_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    identity = account_store.get_identity(db, x_session_id)
    if not identity:
        raise HTTPException(status_code=404, detail="User not found")
    return identity


def require_chat_key(x_chat_key: Optional[str] = Header(None)) -> None:
    if not settings.CHAT_API_KEY:
        raise HTTPException(status_code=503, detail="Chat transport is not configured")
    if x_chat_key != settings.CHAT_API_KEY:
        raise HTTPException(status_code=401, detail="Unauthorized")


def http_error(exc: SeedSyncError) -> HTTPException:
    """Map domain errors to API responses, keeping the underlying message."""
    if isinstance(exc, (ValidationError, NoContentError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, UnauthorizedError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, AccountNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ProviderAuthError):
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, DeviceAuthTimeoutError):
        return HTTPException(status_code=408, detail=str(exc))
    if isinstance(exc, (ProviderRequestError, PublishError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
