from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from seedsync.models.playlist_run import RunStatus, RunTrigger


class DeviceCodeResponse(BaseModel):
    success: bool = True
    device_code: str
    user_code: str
    verification_url: str
    expires_in: int
    interval: int

class DeviceCheckRequest(BaseModel):
    device_code: str

class DeviceCheckResponse(BaseModel):
    success: bool
    pending: bool = False
    sessionId: Optional[str] = None

class LoginRequest(BaseModel):
    email: str
    password: str

class LoginResponse(BaseModel):
    success: bool = True
    sessionId: str

class AccountUsageResponse(BaseModel):
    space_max: int
    space_used: int

class AccountResponse(BaseModel):
    id: int
    label: str
    account_email: Optional[str] = None
    created_at: Optional[datetime] = None
    usage: Optional[AccountUsageResponse] = None

    class Config:
        from_attributes = True

class AccountListResponse(BaseModel):
    success: bool = True
    accounts: List[AccountResponse]

class StatusResponse(BaseModel):
    connected: bool
    account_count: int

class MagnetRequest(BaseModel):
    magnetLink: str

class FolderSummary(BaseModel):
    id: int
    name: str
    size: Optional[int] = None

class MagnetResponse(BaseModel):
    success: bool = True
    folder: Optional[FolderSummary] = None

class FolderEntry(BaseModel):
    id: int
    name: str
    type: Optional[str] = None
    size: Optional[int] = None
    accountId: int
    accountEmail: Optional[str] = None

class FileListResponse(BaseModel):
    success: bool = True
    files: List[FolderEntry]

class FileLink(BaseModel):
    name: str
    url: str

class FileLinksResponse(BaseModel):
    success: bool = True
    links: List[FileLink]

class FolderPlaylistRequest(BaseModel):
    accountId: int

class PlaylistResponse(BaseModel):
    success: bool = True
    url: str
    videoCount: int

class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None

class SyncTriggerResponse(BaseModel):
    message: str
    task_id: str

class PlaylistRunResponse(BaseModel):
    id: int
    trigger: RunTrigger
    filename: Optional[str] = None
    status: RunStatus
    video_count: int = 0
    url: Optional[str] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ChatMessageRequest(BaseModel):
    text: str = Field(..., min_length=1)

class ChatLoginResponse(BaseModel):
    step: str
    message: str
    account_id: Optional[int] = None

class ResetResponse(BaseModel):
    success: bool = True
    message: str
    cleared: int
