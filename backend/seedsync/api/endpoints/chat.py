"""
Chat bot transport endpoints.

The bot process owns command parsing and message rendering; it forwards the
chat user id and raw text here and relays the replies. Requests must carry
the shared X-Chat-Key.
"""
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from seedsync.api import deps
from seedsync.core.exceptions import SeedSyncError
from seedsync.db.session import get_db
from seedsync.models.identity import Identity, IdentityKind
from seedsync.models.playlist_run import RunStatus
from seedsync.schemas import (
    ChatLoginResponse,
    ChatMessageRequest,
    DeviceCheckResponse,
    DeviceCodeResponse,
    PlaylistResponse,
    StatusResponse,
)
from seedsync.services import accounts as account_store
from seedsync.services import chat_login, pending_state
from seedsync.services.device_auth import DeviceAuthorization
from seedsync.services.github import GitHubPublisher
from seedsync.services.playlist import PlaylistAssembler
from seedsync.services.seedr import DeviceCode, SeedrClient
from seedsync.tasks.playlist_sync import generate_personal_playlist

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(deps.require_chat_key)])


def _chat_identity(external_id: str, db: Session) -> Identity:
    return account_store.get_or_create_identity(db, external_id, IdentityKind.CHAT)


def _login_reply(reply: chat_login.ChatLoginReply) -> ChatLoginResponse:
    return ChatLoginResponse(
        step=reply.step,
        message=reply.message,
        account_id=reply.account.id if reply.account else None,
    )


@router.post("/{external_id}/start", response_model=StatusResponse)
def start(external_id: str, db: Session = Depends(get_db)):
    identity = _chat_identity(external_id, db)
    count = len(account_store.list_active_accounts(db, identity))
    return StatusResponse(connected=count > 0, account_count=count)


@router.post("/{external_id}/login", response_model=ChatLoginResponse)
def begin_password_login(external_id: str, db: Session = Depends(get_db)):
    identity = _chat_identity(external_id, db)
    return _login_reply(chat_login.start_login(db, identity))


@router.post("/{external_id}/message", response_model=ChatLoginResponse)
async def login_message(
    external_id: str,
    body: ChatMessageRequest,
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    identity = _chat_identity(external_id, db)
    reply = await chat_login.handle_message(db, identity, body.text, client)
    return _login_reply(reply)


@router.post("/{external_id}/device", response_model=DeviceCodeResponse)
async def begin_device_login(
    external_id: str,
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    identity = _chat_identity(external_id, db)
    flow = DeviceAuthorization(client)
    try:
        code = await flow.request_code()
    except SeedSyncError as e:
        raise deps.http_error(e)
    pending_state.set_state(db, identity, pending_state.DEVICE_KEY, asdict(code), ttl_seconds=code.expires_in)
    return DeviceCodeResponse(**asdict(code))


@router.post("/{external_id}/device/poll", response_model=DeviceCheckResponse)
async def poll_device_login(
    external_id: str,
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    identity = _chat_identity(external_id, db)
    state = pending_state.get_state(db, identity, pending_state.DEVICE_KEY)
    if state is None:
        raise HTTPException(status_code=400, detail="No device authorization in progress or it expired")

    flow = DeviceAuthorization(client, DeviceCode(**state))
    try:
        tokens = await flow.poll_once()
    except SeedSyncError as e:
        pending_state.clear_state(db, identity, pending_state.DEVICE_KEY)
        raise deps.http_error(e)
    if tokens is None:
        return DeviceCheckResponse(success=False, pending=True)

    pending_state.clear_state(db, identity, pending_state.DEVICE_KEY)
    account_store.add_account(db, identity, tokens)
    return DeviceCheckResponse(success=True, sessionId=identity.external_id)


@router.post("/{external_id}/m3u", response_model=PlaylistResponse)
async def generate_m3u(
    external_id: str,
    db: Session = Depends(get_db),
    assembler: PlaylistAssembler = Depends(deps.get_assembler),
    publisher: GitHubPublisher = Depends(deps.get_publisher),
):
    identity = _chat_identity(external_id, db)
    result = await generate_personal_playlist(db, identity, assembler, publisher)
    if result.ok:
        return PlaylistResponse(url=result.url, videoCount=result.video_count)
    status_code = 502 if result.status == RunStatus.FAILED else 400
    raise HTTPException(status_code=status_code, detail=result.message)
