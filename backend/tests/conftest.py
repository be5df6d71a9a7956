"""Shared fixtures: in-memory account store, fake Seedr client, in-memory GitHub."""
import base64
import json
import os
from typing import Dict, List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from seedsync.core.exceptions import ProviderRequestError
from seedsync.db.base import Base
from seedsync.models.identity import IdentityKind
from seedsync.services import accounts as account_store
from seedsync.services.github import GitHubPublisher
from seedsync.services.seedr import SeedrFile, SeedrFolder, TokenSet


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def make_identity(db):
    def _make(external_id: str = "1001", kind: Optional[IdentityKind] = None):
        return account_store.create_identity(db, external_id, kind)
    return _make


@pytest.fixture
def make_account(db):
    def _make(identity, token: str = "token", email: Optional[str] = None, refresh: Optional[str] = None):
        return account_store.add_account(db, identity, TokenSet(access_token=token, refresh_token=refresh), email)
    return _make


class FakeSeedrClient:
    """
    In-memory stand-in for SeedrClient keyed by access token.

    folders: {token: [SeedrFolder]}, files: {folder_id: [SeedrFile]},
    urls: {file_id: url}. Tokens in ``broken_tokens`` and folders in
    ``broken_folders`` raise ProviderRequestError.
    """

    def __init__(self):
        self.folders: Dict[str, List[SeedrFolder]] = {}
        self.files: Dict[int, List[SeedrFile]] = {}
        self.urls: Dict[int, str] = {}
        self.broken_tokens = set()
        self.broken_folders = set()
        self.resolved: List[int] = []
        self.deleted: List[int] = []
        self.submitted: List[str] = []
        self.next_folder_id = 0

    def add_folder(self, token: str, folder_id: int, name: str, files=()):
        self.folders.setdefault(token, []).append(SeedrFolder(id=folder_id, name=name, size=1024))
        self.files[folder_id] = list(files)

    async def list_folders(self, access_token, parent_folder_id=0):
        if access_token in self.broken_tokens:
            raise ProviderRequestError("Failed to get folder contents: 500", 500, "boom")
        return list(self.folders.get(access_token, []))

    async def list_files(self, access_token, folder_id):
        if folder_id in self.broken_folders:
            raise ProviderRequestError("Failed to get files: 500", 500, "boom")
        return list(self.files.get(folder_id, []))

    async def resolve_file_url(self, access_token, file_id):
        self.resolved.append(file_id)
        return self.urls.get(file_id, "")

    async def delete_folder(self, access_token, folder_id):
        self.deleted.append(folder_id)

    async def submit_magnet(self, access_token, magnet_link):
        self.submitted.append(magnet_link)
        return self.next_folder_id


def video(file_id: int, name: str, playable=True, size: int = 100) -> SeedrFile:
    return SeedrFile(folder_file_id=file_id, name=name, size=size, play_video=playable)


@pytest.fixture
def seedr():
    return FakeSeedrClient()


class InMemoryGitHub:
    """httpx handler emulating the contents API for one repository."""

    def __init__(self):
        self.files: Dict[str, dict] = {}
        self.requests: List[httpx.Request] = []
        self.fail_status: Optional[int] = None
        self._version = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"message": "Server Error"})
        path = request.url.path.split("/contents/", 1)[1]
        if request.method == "GET":
            if path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"sha": self.files[path]["sha"], "path": path})
        if request.method == "PUT":
            body = json.loads(request.content)
            existing = self.files.get(path)
            if existing and body.get("sha") != existing["sha"]:
                return httpx.Response(409, json={"message": "sha mismatch"})
            if not existing and "sha" in body:
                return httpx.Response(422, json={"message": "sha not expected"})
            self._version += 1
            self.files[path] = {
                "sha": f"sha{self._version}",
                "content": base64.b64decode(body["content"]).decode("utf-8"),
                "message": body["message"],
            }
            return httpx.Response(201 if not existing else 200, json={"content": {"sha": f"sha{self._version}"}})
        return httpx.Response(405)


@pytest.fixture
def github():
    return InMemoryGitHub()


@pytest.fixture
def publisher(github):
    return GitHubPublisher(
        token="gh-token",
        owner="octo",
        repo="playlists",
        branch="main",
        transport=httpx.MockTransport(github),
    )
