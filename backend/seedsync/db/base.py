# Import Base class
from seedsync.db.base_class import Base

# Import all models here so that Base has them registered
# This is needed for Base.metadata.create_all()
from seedsync.models.identity import Identity
from seedsync.models.account import ProviderAccount
from seedsync.models.pending_state import PendingState
from seedsync.models.playlist_run import PlaylistRun
