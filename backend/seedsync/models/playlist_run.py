from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from seedsync.db.base_class import Base
import enum

class RunStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    NO_CONTENT = "no_content"
    FAILED = "failed"

class RunTrigger(str, enum.Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    FOLDER = "folder"

class PlaylistRun(Base):
    __tablename__ = "playlist_runs"

    id = Column(Integer, primary_key=True, index=True)
    identity_id = Column(Integer, ForeignKey("identities.id"), nullable=False, index=True)
    trigger = Column(SQLEnum(RunTrigger), nullable=False, default=RunTrigger.MANUAL)
    filename = Column(String, nullable=True)
    started_at = Column(DateTime, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)
    status = Column(SQLEnum(RunStatus), nullable=False, default=RunStatus.RUNNING)
    video_count = Column(Integer, default=0)
    url = Column(String, nullable=True)
    error_message = Column(Text, nullable=True)
