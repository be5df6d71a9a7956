"""
GitHub contents API client used to publish playlists at permanent raw URLs.
"""
import base64
import logging
from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from seedsync.core.config import settings
from seedsync.core.exceptions import PublishError

logger = logging.getLogger(__name__)


class GitHubPublisher:
    """Idempotent upsert of text files into one repository branch."""

    def __init__(
        self,
        token: Optional[str] = None,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        branch: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token or settings.GITHUB_TOKEN
        self.owner = owner or settings.GITHUB_REPO_OWNER
        self.repo = repo or settings.GITHUB_REPO_NAME
        self.branch = branch or settings.GITHUB_BRANCH
        self.transport = transport
        self.api_url = settings.GITHUB_API_URL.rstrip("/")
        self.raw_url = settings.GITHUB_RAW_URL.rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def contents_url(self, filename: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{filename}"

    def public_url(self, filename: str) -> str:
        """Depends only on the filename, so re-publishing keeps the same link."""
        return f"{self.raw_url}/{self.owner}/{self.repo}/{self.branch}/{filename}"

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            return await client.request(method, url, headers=self.headers, **kwargs)

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"GitHub request error: {e}")
            raise PublishError(f"GitHub request failed: {e}") from e

    async def get_sha(self, filename: str) -> Optional[str]:
        """Current blob sha of the file, None when it does not exist yet."""
        response = await self._send("GET", self.contents_url(filename), params={"ref": self.branch})
        if response.status_code == 404:
            return None
        if response.is_error:
            logger.error(f"GitHub HTTP error reading {filename}: {response.status_code}")
            raise PublishError(
                f"Failed to read {filename}: {response.status_code}", response.status_code, response.text
            )
        return response.json().get("sha")

    async def publish(self, content: str, filename: str) -> str:
        """
        Create or overwrite ``filename`` with ``content``.

        @returns The raw.githubusercontent.com URL of the file
        """
        if not (self.token and self.owner and self.repo):
            raise PublishError("GitHub playlist host is not configured")

        sha = await self.get_sha(filename)
        payload = {
            "message": f"Update {filename}" if sha else f"Add {filename}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            payload["sha"] = sha

        response = await self._send("PUT", self.contents_url(filename), json=payload)
        if response.is_error:
            logger.error(f"GitHub HTTP error writing {filename}: {response.status_code}")
            raise PublishError(
                f"Failed to write {filename}: {response.status_code}", response.status_code, response.text
            )

        url = self.public_url(filename)
        logger.info(f"Published {filename} ({'updated' if sha else 'created'}): {url}")
        return url
