"""
Dashboard API: Seedr account management, file browsing and playlist generation.

@description Every route except the two login flows authenticates the web
session through the X-Session-ID header. Account-scoped routes check that the
account belongs to the session before touching Seedr.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from seedsync.api import deps
from seedsync.core.config import settings
from seedsync.core.exceptions import (
    AuthorizationPendingError,
    ProviderRequestError,
    SeedSyncError,
    ValidationError,
)
from seedsync.db.session import get_db
from seedsync.models.identity import Identity, IdentityKind
from seedsync.models.playlist_run import RunStatus
from seedsync.schemas import (
    AccountListResponse,
    AccountResponse,
    AccountUsageResponse,
    DeviceCheckRequest,
    DeviceCheckResponse,
    DeviceCodeResponse,
    FileLink,
    FileLinksResponse,
    FileListResponse,
    FolderEntry,
    FolderPlaylistRequest,
    FolderSummary,
    LoginRequest,
    LoginResponse,
    MagnetRequest,
    MagnetResponse,
    PlaylistResponse,
    StatusResponse,
    SuccessResponse,
)
from seedsync.services import accounts as account_store
from seedsync.services.github import GitHubPublisher
from seedsync.services.playlist import PlaylistAssembler
from seedsync.services.seedr import SeedrClient, TokenSet, is_magnet_link
from seedsync.tasks.playlist_sync import generate_folder_playlist, generate_personal_playlist

logger = logging.getLogger(__name__)

router = APIRouter()


def _bind_tokens(db: Session, x_session_id: Optional[str], tokens: TokenSet, email: Optional[str]) -> Identity:
    """Attach new tokens to the calling session, or to a fresh web session."""
    identity = account_store.get_identity(db, x_session_id) if x_session_id else None
    if identity is None:
        identity = account_store.create_identity(db, account_store.new_session_id(), IdentityKind.WEB)
    account_store.add_account(db, identity, tokens, email)
    return identity


@router.get("/device-code", response_model=DeviceCodeResponse)
async def get_device_code(client: SeedrClient = Depends(deps.get_seedr_client)):
    try:
        code = await client.request_device_code()
    except SeedSyncError as e:
        raise deps.http_error(e)
    return DeviceCodeResponse(
        device_code=code.device_code,
        user_code=code.user_code,
        verification_url=code.verification_url,
        expires_in=code.expires_in,
        interval=code.interval,
    )


@router.post("/check-auth", response_model=DeviceCheckResponse)
async def check_device_auth(
    body: DeviceCheckRequest,
    x_session_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    """Single poll of the device token endpoint; the dashboard calls this repeatedly."""
    try:
        tokens = await client.poll_device_token(body.device_code)
    except AuthorizationPendingError:
        return DeviceCheckResponse(success=False, pending=True)
    except SeedSyncError as e:
        raise deps.http_error(e)

    identity = _bind_tokens(db, x_session_id, tokens, None)
    return DeviceCheckResponse(success=True, sessionId=identity.external_id)


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    x_session_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    try:
        tokens = await client.login_with_password(body.email, body.password)
    except SeedSyncError as e:
        raise deps.http_error(e)

    identity = _bind_tokens(db, x_session_id, tokens, body.email)
    return LoginResponse(sessionId=identity.external_id)


@router.get("/status", response_model=StatusResponse)
def get_status(identity: Identity = Depends(deps.get_current_identity), db: Session = Depends(get_db)):
    count = len(account_store.list_active_accounts(db, identity))
    return StatusResponse(connected=count > 0, account_count=count)


@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts(
    usage: bool = Query(False),
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    results = []
    for account in account_store.list_active_accounts(db, identity):
        item = AccountResponse.model_validate(account)
        if usage:
            try:
                info = await client.get_account_info(account.access_token)
                item.usage = AccountUsageResponse(space_max=info.space_max, space_used=info.space_used)
            except ProviderRequestError as e:
                logger.warning(f"Failed to get usage for account {account.id}: {e}")
        results.append(item)
    return AccountListResponse(accounts=results)


@router.delete("/accounts/{account_id}", response_model=SuccessResponse)
def remove_account(
    account_id: int,
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        account = account_store.get_owned_account(db, identity, account_id)
    except SeedSyncError as e:
        raise deps.http_error(e)
    account_store.deactivate_account(db, account)
    return SuccessResponse(message=f"Removed {account.label}")


@router.post("/accounts/{account_id}/refresh", response_model=SuccessResponse)
async def refresh_account(
    account_id: int,
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    try:
        account = account_store.get_owned_account(db, identity, account_id)
        if not account.refresh_token:
            raise ValidationError("Account has no refresh token")
        tokens = await client.refresh_access_token(account.refresh_token)
    except SeedSyncError as e:
        raise deps.http_error(e)
    account_store.update_tokens(db, account, tokens)
    return SuccessResponse(message="Access token refreshed")


@router.post("/magnet", response_model=MagnetResponse)
async def add_magnet(
    body: MagnetRequest,
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    if not is_magnet_link(body.magnetLink):
        raise HTTPException(status_code=400, detail="Invalid magnet link")

    accounts = account_store.list_active_accounts(db, identity)
    if not accounts:
        raise HTTPException(status_code=400, detail="No Seedr accounts connected")
    account = accounts[0]

    try:
        folder_id = await client.submit_magnet(account.access_token, body.magnetLink)
        if not folder_id:
            return MagnetResponse(folder=None)
        await asyncio.sleep(settings.MAGNET_SETTLE_SECONDS)
        folders = await client.list_folders(account.access_token)
    except SeedSyncError as e:
        raise deps.http_error(e)

    folder = next((f for f in folders if f.id == folder_id), None)
    if folder is None:
        return MagnetResponse(folder=None)
    return MagnetResponse(folder=FolderSummary(id=folder.id, name=folder.name, size=folder.size))


@router.get("/files", response_model=FileListResponse)
async def list_files(
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    entries = []
    for account in account_store.list_active_accounts(db, identity):
        try:
            folders = await client.list_folders(account.access_token)
        except ProviderRequestError as e:
            logger.error(f"Failed to get files for account {account.id}: {e}")
            continue
        entries.extend(
            FolderEntry(
                id=f.id,
                name=f.name,
                type=f.type,
                size=f.size,
                accountId=account.id,
                accountEmail=account.account_email,
            )
            for f in folders
        )
    return FileListResponse(files=entries)


@router.get("/files/{folder_id}/links", response_model=FileLinksResponse)
async def get_folder_links(
    folder_id: int,
    accountId: int = Query(...),
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    links = []
    try:
        account = account_store.get_owned_account(db, identity, accountId)
        files = await client.list_files(account.access_token, folder_id)
        for file in files[:settings.FOLDER_LINKS_LIMIT]:
            url = await client.resolve_file_url(account.access_token, file.folder_file_id)
            if url:
                links.append(FileLink(name=file.name, url=url))
    except SeedSyncError as e:
        raise deps.http_error(e)
    return FileLinksResponse(links=links)


@router.delete("/files/{folder_id}", response_model=SuccessResponse)
async def delete_folder(
    folder_id: int,
    accountId: int = Query(...),
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    client: SeedrClient = Depends(deps.get_seedr_client),
):
    try:
        account = account_store.get_owned_account(db, identity, accountId)
        await client.delete_folder(account.access_token, folder_id)
    except SeedSyncError as e:
        raise deps.http_error(e)
    return SuccessResponse(message="Deleted")


@router.post("/files/{folder_id}/m3u", response_model=PlaylistResponse)
async def generate_folder_m3u(
    folder_id: int,
    body: FolderPlaylistRequest,
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    assembler: PlaylistAssembler = Depends(deps.get_assembler),
    publisher: GitHubPublisher = Depends(deps.get_publisher),
):
    try:
        result = await generate_folder_playlist(db, identity, body.accountId, folder_id, assembler, publisher)
    except SeedSyncError as e:
        raise deps.http_error(e)
    return PlaylistResponse(url=result.url, videoCount=result.video_count)


@router.post("/m3u/generate", response_model=PlaylistResponse)
async def generate_personal_m3u(
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
    assembler: PlaylistAssembler = Depends(deps.get_assembler),
    publisher: GitHubPublisher = Depends(deps.get_publisher),
):
    result = await generate_personal_playlist(db, identity, assembler, publisher)
    if result.ok:
        return PlaylistResponse(url=result.url, videoCount=result.video_count)
    status_code = 502 if result.status == RunStatus.FAILED else 400
    raise HTTPException(status_code=status_code, detail=result.message)
