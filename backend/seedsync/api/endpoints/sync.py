from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from seedsync.api import deps
from seedsync.db.session import get_db
from seedsync.models.identity import Identity
from seedsync.models.playlist_run import PlaylistRun
from seedsync.schemas import PlaylistRunResponse, SyncTriggerResponse
from seedsync.tasks.playlist_sync import sync_identity_task

router = APIRouter()


@router.get("/runs", response_model=List[PlaylistRunResponse])
def list_runs(
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(deps.get_current_identity),
    db: Session = Depends(get_db),
):
    """Recent playlist generations for the current session, newest first"""
    return db.query(PlaylistRun).filter(
        PlaylistRun.identity_id == identity.id
    ).order_by(PlaylistRun.id.desc()).limit(limit).all()


@router.post("/personal/async", response_model=SyncTriggerResponse)
def trigger_personal_sync(identity: Identity = Depends(deps.get_current_identity)):
    task = sync_identity_task.delay(identity.id)
    return SyncTriggerResponse(message="Playlist sync started", task_id=task.id)
