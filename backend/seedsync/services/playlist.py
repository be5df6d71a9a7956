"""
M3U8 playlist assembly across one or more Seedr accounts.

Failures are isolated to the smallest unit: a broken account or folder is
logged and skipped so the rest of the playlist still gets built.
"""
import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from seedsync.core.exceptions import NoContentError, ProviderRequestError
from seedsync.models.account import ProviderAccount
from seedsync.services.seedr import SeedrClient, SeedrFile

logger = logging.getLogger(__name__)

M3U_HEADER = "#EXTM3U\n"
VIDEO_EXTENSIONS = {"mp4", "mkv", "avi", "mov"}


@dataclass
class PlaylistEntry:
    title: str
    url: str

    def render(self) -> str:
        return f"#EXTINF:-1,{self.title}\n{self.url}\n"


@dataclass
class Playlist:
    entries: List[PlaylistEntry]

    @property
    def content(self) -> str:
        return M3U_HEADER + "".join(entry.render() for entry in self.entries)

    @property
    def video_count(self) -> int:
        return len(self.entries)


def is_eligible(file: SeedrFile) -> bool:
    """Playable according to Seedr and a known video extension (case-insensitive)."""
    if not file.play_video:
        return False
    extension = os.path.splitext(file.name)[1].lstrip(".").lower()
    return extension in VIDEO_EXTENSIONS


class PlaylistAssembler:
    def __init__(self, client: Optional[SeedrClient] = None):
        self.client = client or SeedrClient()

    async def _collect(self, access_token: str, files: Iterable[SeedrFile], entries: List[PlaylistEntry]) -> None:
        for file in files:
            if not is_eligible(file):
                continue
            url = await self.client.resolve_file_url(access_token, file.folder_file_id)
            if not url:
                logger.debug(f"No direct link for file {file.folder_file_id}, skipping")
                continue
            entries.append(PlaylistEntry(title=file.name, url=url))

    async def assemble(self, accounts: Iterable[ProviderAccount]) -> Playlist:
        """
        Build the aggregate playlist for the given accounts, in account order,
        then folder listing order, then file listing order.
        """
        entries: List[PlaylistEntry] = []
        for account in accounts:
            try:
                folders = await self.client.list_folders(account.access_token)
            except ProviderRequestError as e:
                logger.error(f"Failed to get folders for account {account.id}: {e}")
                continue
            logger.info(f"Account {account.id} has {len(folders)} folders")

            for folder in folders:
                try:
                    files = await self.client.list_files(account.access_token, folder.id)
                    await self._collect(account.access_token, files, entries)
                except ProviderRequestError as e:
                    logger.error(f"Failed to process folder {folder.id} of account {account.id}: {e}")
                    continue

        return Playlist(entries=entries)

    async def assemble_folder(self, account: ProviderAccount, folder_id: int) -> Playlist:
        """
        Playlist for a single folder. Errors propagate, and an empty result is
        a NoContentError rather than an empty playlist.
        """
        files = await self.client.list_files(account.access_token, folder_id)
        if not any(is_eligible(f) for f in files):
            raise NoContentError("No video files found")
        playlist = Playlist(entries=[])
        await self._collect(account.access_token, files, playlist.entries)
        if playlist.video_count == 0:
            raise NoContentError("No video files found")
        return playlist
