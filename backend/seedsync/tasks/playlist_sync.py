"""
Playlist synchronisation: resolve accounts, assemble the M3U8, publish it.

Used by the API for on-demand generation and by Celery beat for the daily
refresh of every identity holding an active account.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from seedsync.core.celery_app import celery_app
from seedsync.core.clock import utcnow
from seedsync.core.exceptions import NoContentError
from seedsync.db.session import SessionLocal
from seedsync.models.identity import Identity
from seedsync.models.playlist_run import PlaylistRun, RunStatus, RunTrigger
from seedsync.services import accounts as account_store
from seedsync.services import pending_state
from seedsync.services.github import GitHubPublisher
from seedsync.services.playlist import PlaylistAssembler

logger = logging.getLogger(__name__)

NOT_CONNECTED_MESSAGE = "No Seedr accounts connected"
NO_VIDEOS_MESSAGE = "No video files found"


@dataclass
class SyncResult:
    status: RunStatus
    message: str
    url: Optional[str] = None
    video_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.COMPLETED


def _start_run(db: Session, identity: Identity, trigger: RunTrigger, filename: str) -> PlaylistRun:
    run = PlaylistRun(identity_id=identity.id, trigger=trigger, filename=filename, status=RunStatus.RUNNING)
    db.add(run)
    db.commit()
    return run


def _finish_run(db: Session, run: PlaylistRun, result: SyncResult) -> SyncResult:
    run.status = result.status
    run.video_count = result.video_count
    run.url = result.url
    if result.status == RunStatus.FAILED:
        run.error_message = result.message
    run.completed_at = utcnow()
    db.commit()
    return result


async def generate_personal_playlist(
    db: Session,
    identity: Identity,
    assembler: Optional[PlaylistAssembler] = None,
    publisher: Optional[GitHubPublisher] = None,
    trigger: RunTrigger = RunTrigger.MANUAL,
) -> SyncResult:
    """
    Run the full pipeline for one identity.

    Never raises for provider or publish failures: the outcome is reported in
    the returned SyncResult (completed, no_content or failed).
    """
    assembler = assembler or PlaylistAssembler()
    publisher = publisher or GitHubPublisher()
    filename = account_store.personal_playlist_filename(identity)

    accounts = account_store.list_active_accounts(db, identity)
    if not accounts:
        return SyncResult(status=RunStatus.NO_CONTENT, message=NOT_CONNECTED_MESSAGE)

    run = _start_run(db, identity, trigger, filename)
    logger.info(f"Generating playlist for identity {identity.id} from {len(accounts)} account(s)")
    try:
        playlist = await assembler.assemble(accounts)
        if playlist.video_count == 0:
            return _finish_run(db, run, SyncResult(status=RunStatus.NO_CONTENT, message=NO_VIDEOS_MESSAGE))

        url = await publisher.publish(playlist.content, filename)
    except Exception as e:
        logger.exception(f"Playlist generation failed for identity {identity.id}")
        return _finish_run(db, run, SyncResult(status=RunStatus.FAILED, message=str(e)))

    return _finish_run(db, run, SyncResult(
        status=RunStatus.COMPLETED,
        message=f"Playlist published with {playlist.video_count} videos",
        url=url,
        video_count=playlist.video_count,
    ))


async def generate_folder_playlist(
    db: Session,
    identity: Identity,
    account_id: int,
    folder_id: int,
    assembler: Optional[PlaylistAssembler] = None,
    publisher: Optional[GitHubPublisher] = None,
) -> SyncResult:
    """
    Playlist for one folder of one owned account.

    @raises UnauthorizedError, AccountNotFoundError before any provider call
    @raises NoContentError when the folder holds no playable video
    """
    account = account_store.get_owned_account(db, identity, account_id)
    assembler = assembler or PlaylistAssembler()
    publisher = publisher or GitHubPublisher()
    filename = account_store.folder_playlist_filename(identity, folder_id)

    run = _start_run(db, identity, RunTrigger.FOLDER, filename)
    try:
        playlist = await assembler.assemble_folder(account, folder_id)
        url = await publisher.publish(playlist.content, filename)
    except NoContentError as e:
        _finish_run(db, run, SyncResult(status=RunStatus.NO_CONTENT, message=str(e)))
        raise
    except Exception as e:
        _finish_run(db, run, SyncResult(status=RunStatus.FAILED, message=str(e)))
        raise

    return _finish_run(db, run, SyncResult(
        status=RunStatus.COMPLETED,
        message=f"Folder playlist published with {playlist.video_count} videos",
        url=url,
        video_count=playlist.video_count,
    ))


async def refresh_all_playlists(
    db: Session,
    assembler: Optional[PlaylistAssembler] = None,
    publisher: Optional[GitHubPublisher] = None,
) -> Dict[str, int]:
    """Scheduled sweep. One identity failing never stops the others."""
    assembler = assembler or PlaylistAssembler()
    publisher = publisher or GitHubPublisher()
    summary = {status.value: 0 for status in RunStatus if status != RunStatus.RUNNING}

    identities = account_store.identities_with_active_accounts(db)
    if not identities:
        logger.info("No identities with active accounts found")
        return summary

    logger.info(f"Updating playlists for {len(identities)} identities")
    for identity in identities:
        try:
            result = await generate_personal_playlist(
                db, identity, assembler, publisher, trigger=RunTrigger.SCHEDULED
            )
        except Exception:
            logger.exception(f"Error updating playlist for identity {identity.id}")
            db.rollback()
            summary[RunStatus.FAILED.value] += 1
            continue

        summary[result.status.value] += 1
        if result.ok:
            logger.info(f"Identity {identity.id}: {result.video_count} videos published to {result.url}")
        else:
            logger.info(f"Identity {identity.id}: {result.status.value} ({result.message})")

    logger.info(f"Daily playlist update completed: {summary}")
    return summary


@celery_app.task
def sync_identity_task(identity_id: int) -> Dict[str, Any]:
    db = SessionLocal()
    try:
        identity = db.query(Identity).filter(Identity.id == identity_id).first()
        if not identity:
            logger.error(f"Identity {identity_id} not found")
            return {"status": RunStatus.FAILED.value, "message": "Identity not found"}

        result = asyncio.run(generate_personal_playlist(db, identity))
        return {
            "status": result.status.value,
            "message": result.message,
            "url": result.url,
            "video_count": result.video_count,
        }
    finally:
        db.close()


@celery_app.task
def refresh_all_playlists_task() -> str:
    db = SessionLocal()
    try:
        summary = asyncio.run(refresh_all_playlists(db))
        return f"Playlists refreshed: {summary}"
    except Exception as e:
        logger.exception("Error in scheduled playlist refresh")
        return f"Error: {e}"
    finally:
        db.close()


@celery_app.task
def purge_expired_state_task() -> int:
    db = SessionLocal()
    try:
        return pending_state.purge_expired(db)
    finally:
        db.close()
