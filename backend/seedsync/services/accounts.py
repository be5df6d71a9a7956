"""
Account store access: identities, their Seedr accounts, and the playlist
filename conventions tied to each kind of identity.
"""
import logging
import secrets
import string
import time
from typing import List, Optional

from sqlalchemy.orm import Session

from seedsync.core.exceptions import AccountNotFoundError, UnauthorizedError
from seedsync.models.account import ProviderAccount
from seedsync.models.identity import Identity, IdentityKind
from seedsync.services.seedr import TokenSet

logger = logging.getLogger(__name__)

WEB_SESSION_PREFIX = "session_"


def new_session_id() -> str:
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"{WEB_SESSION_PREFIX}{int(time.time() * 1000)}_{suffix}"


def personal_playlist_filename(identity: Identity) -> str:
    # Existing published links depend on these names
    if identity.is_web:
        return f"{identity.external_id}-personal.m3u8"
    return f"user-{identity.external_id}.m3u8"


def folder_playlist_filename(identity: Identity, folder_id: int) -> str:
    return f"{identity.external_id}-{folder_id}.m3u8"


def get_identity(db: Session, external_id: str) -> Optional[Identity]:
    return db.query(Identity).filter(Identity.external_id == external_id).first()


def create_identity(db: Session, external_id: str, kind: Optional[IdentityKind] = None) -> Identity:
    if kind is None:
        kind = IdentityKind.WEB if external_id.startswith(WEB_SESSION_PREFIX) else IdentityKind.CHAT
    identity = Identity(external_id=external_id, kind=kind)
    db.add(identity)
    db.commit()
    db.refresh(identity)
    logger.info(f"Created {kind.value} identity {identity.id}")
    return identity


def get_or_create_identity(db: Session, external_id: str, kind: Optional[IdentityKind] = None) -> Identity:
    return get_identity(db, external_id) or create_identity(db, external_id, kind)


def add_account(db: Session, identity: Identity, tokens: TokenSet, email: Optional[str] = None) -> ProviderAccount:
    if not tokens.access_token:
        raise ValueError("access token is required")
    account = ProviderAccount(
        identity_id=identity.id,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        account_email=email,
        is_active=True,
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    logger.info(f"Added Seedr account {account.id} for identity {identity.id}")
    return account


def list_active_accounts(db: Session, identity: Identity) -> List[ProviderAccount]:
    """Active accounts, most recently created first. Empty list when none."""
    return (
        db.query(ProviderAccount)
        .filter(ProviderAccount.identity_id == identity.id, ProviderAccount.is_active == True)  # noqa: E712
        .order_by(ProviderAccount.created_at.desc(), ProviderAccount.id.desc())
        .all()
    )


def get_account(db: Session, account_id: int) -> Optional[ProviderAccount]:
    return db.query(ProviderAccount).filter(ProviderAccount.id == account_id).first()


def get_owned_account(db: Session, identity: Identity, account_id: int) -> ProviderAccount:
    """
    Load an account and check it belongs to ``identity``.

    @raises AccountNotFoundError if no such account
    @raises UnauthorizedError if it belongs to another identity
    """
    account = get_account(db, account_id)
    if account is None:
        raise AccountNotFoundError(f"Account {account_id} not found")
    if account.identity_id != identity.id:
        logger.warning(f"Identity {identity.id} tried to use account {account_id} it does not own")
        raise UnauthorizedError("Account not found or unauthorized")
    return account


def deactivate_account(db: Session, account: ProviderAccount) -> None:
    account.is_active = False
    db.commit()
    logger.info(f"Deactivated Seedr account {account.id}")


def update_tokens(db: Session, account: ProviderAccount, tokens: TokenSet) -> ProviderAccount:
    account.access_token = tokens.access_token
    if tokens.refresh_token:
        account.refresh_token = tokens.refresh_token
    db.commit()
    db.refresh(account)
    return account


def identities_with_active_accounts(db: Session) -> List[Identity]:
    return (
        db.query(Identity)
        .join(ProviderAccount, ProviderAccount.identity_id == Identity.id)
        .filter(ProviderAccount.is_active == True)  # noqa: E712
        .distinct()
        .order_by(Identity.id)
        .all()
    )
