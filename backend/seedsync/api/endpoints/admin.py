from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from seedsync.api import deps
from seedsync.db.session import get_db
from seedsync.schemas import ResetResponse
from seedsync.services import pending_state

router = APIRouter(dependencies=[Depends(deps.require_chat_key)])


@router.post("/reset", response_model=ResetResponse)
def reset_pending_state(db: Session = Depends(get_db)):
    """Clear stuck logins and device codes for every identity"""
    cleared = pending_state.reset_all(db)
    return ResetResponse(
        message="Reset successfully. All pending logins cleared.",
        cleared=cleared,
    )
