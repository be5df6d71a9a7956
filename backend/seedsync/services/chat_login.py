"""
Two-step password login for chat identities (email, then password).

The step reached is stored as a pending state record so it survives restarts
and expires on its own if the user walks away.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from seedsync.core.exceptions import ProviderRequestError
from seedsync.models.account import ProviderAccount
from seedsync.models.identity import Identity
from seedsync.services import accounts as account_store
from seedsync.services import pending_state
from seedsync.services.seedr import SeedrClient

logger = logging.getLogger(__name__)

AWAITING_EMAIL = "awaiting_email"
AWAITING_PASSWORD = "awaiting_password"


@dataclass
class ChatLoginReply:
    step: str  # awaiting_email, awaiting_password, completed, failed, idle
    message: str
    account: Optional[ProviderAccount] = None


def start_login(db: Session, identity: Identity) -> ChatLoginReply:
    pending_state.set_state(db, identity, pending_state.LOGIN_KEY, {"state": AWAITING_EMAIL})
    return ChatLoginReply(step=AWAITING_EMAIL, message="Please send your Seedr email address")


async def handle_message(db: Session, identity: Identity, text: str, client: SeedrClient) -> ChatLoginReply:
    state = pending_state.get_state(db, identity, pending_state.LOGIN_KEY)
    if state is None:
        return ChatLoginReply(step="idle", message="No login in progress")

    if state.get("state") == AWAITING_EMAIL:
        if "@" not in text:
            return ChatLoginReply(step=AWAITING_EMAIL, message="Invalid email format. Please send a valid email address")
        pending_state.set_state(
            db, identity, pending_state.LOGIN_KEY, {"state": AWAITING_PASSWORD, "email": text.strip()}
        )
        return ChatLoginReply(step=AWAITING_PASSWORD, message="Email received. Now please send your Seedr password")

    email = state.get("email")
    pending_state.clear_state(db, identity, pending_state.LOGIN_KEY)
    try:
        tokens = await client.login_with_password(email, text)
    except ProviderRequestError as e:
        logger.info(f"Chat login failed for identity {identity.id}: {e}")
        return ChatLoginReply(step="failed", message=f"Login failed: {e}")

    account = account_store.add_account(db, identity, tokens, email)
    return ChatLoginReply(step="completed", message=f"Successfully added Seedr account {email}", account=account)
