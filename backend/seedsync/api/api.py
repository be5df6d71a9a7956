from fastapi import APIRouter
from seedsync.api.endpoints import seedr, sync, chat, admin

api_router = APIRouter()
api_router.include_router(seedr.router, prefix="/seedr", tags=["seedr"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
