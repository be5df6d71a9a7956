"""
Seedr API client covering folder/file listing, magnet submission, direct-link
resolution, deletion and the OAuth password, device-code and refresh grants.

@description Every call opens a short-lived httpx.AsyncClient. Transport-level
failures are retried with tenacity, HTTP and provider-embedded errors are not.
Responses are normalised into the dataclasses below instead of raw dicts.

@example
    client = SeedrClient()
    code = await client.request_device_code()
    tokens = await DeviceAuthorization(client).run()
    folders = await client.list_folders(tokens.access_token)
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from seedsync.core.config import settings
from seedsync.core.exceptions import (
    AuthorizationPendingError,
    ProviderAuthError,
    ProviderRequestError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ROOT_FOLDER_ID = 0
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
PENDING_ERRORS = {"authorization_pending", "slow_down"}


@dataclass
class SeedrFolder:
    id: int
    name: str
    size: Optional[int] = None
    type: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "SeedrFolder":
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            size=data.get("size"),
            type=data.get("type"),
        )


@dataclass
class SeedrFile:
    folder_file_id: int
    name: str
    size: int = 0
    play_video: Any = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "SeedrFile":
        return cls(
            folder_file_id=int(data["folder_file_id"]),
            name=data.get("name", ""),
            size=data.get("size") or 0,
            play_video=data.get("play_video"),
        )


@dataclass
class DeviceCode:
    device_code: str
    user_code: str
    verification_url: str
    expires_in: int
    interval: int


@dataclass
class TokenSet:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


@dataclass
class AccountUsage:
    space_max: int = 0
    space_used: int = 0


def is_magnet_link(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("magnet:?")


class SeedrClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.SEEDR_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.SEEDR_TIMEOUT
        self.transport = transport
        self.resource_url = f"{self.base_url}/oauth_test/resource.php"
        self.password_token_url = f"{self.base_url}/oauth_test/token.php"
        self.device_code_url = f"{self.base_url}/oauth/device/code"
        self.device_token_url = f"{self.base_url}/oauth/device/token"

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        ) as client:
            return await client.request(method, url, **kwargs)

    async def _request(self, method: str, url: str, action: str, **kwargs) -> httpx.Response:
        try:
            return await self._send(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Seedr {action} failed: {e}")
            raise ProviderRequestError(f"Seedr {action} failed: {e}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def _checked(self, response: httpx.Response, action: str) -> Dict[str, Any]:
        """Raise for non-2xx, non-JSON or provider-embedded errors on resource calls."""
        body = response.text
        if response.status_code == 401:
            raise ProviderAuthError(f"Seedr rejected the access token ({action})", 401, body)
        if response.is_error:
            logger.error(f"Seedr HTTP error for {action}: {response.status_code}")
            raise ProviderRequestError(
                f"Failed to {action}: {response.status_code} {body}", response.status_code, body
            )
        data = self._decode(response)
        if not isinstance(data, dict):
            raise ProviderRequestError(f"Invalid response from {action}", response.status_code, body)
        if data.get("error"):
            raise ProviderRequestError(str(data["error"]), response.status_code, body)
        return data

    async def _resource(self, access_token: str, func: str, action: str, **fields) -> Dict[str, Any]:
        form = {"access_token": access_token, "func": func}
        form.update(fields)
        response = await self._request("POST", self.resource_url, action, data=form)
        return self._checked(response, action)

    async def _folder(self, access_token: str, folder_id: int, action: str) -> Dict[str, Any]:
        url = f"{self.base_url}/api/folder"
        if folder_id != ROOT_FOLDER_ID:
            url = f"{url}/{folder_id}"
        response = await self._request("GET", url, action, params={"access_token": access_token})
        return self._checked(response, action)

    # Storage operations

    async def submit_magnet(self, access_token: str, magnet_link: str) -> int:
        """
        Add a magnet link to the account.

        @returns The new folder id, or 0 when Seedr accepted the torrent without
        reporting an id (the folder shows up on a later listing).
        """
        if not is_magnet_link(magnet_link):
            raise ValidationError("Invalid magnet link")
        data = await self._resource(
            access_token, "add_torrent", "add magnet", torrent_magnet=magnet_link
        )
        folder_id = int(data.get("user_torrent_id") or data.get("id") or 0)
        if folder_id == 0 and not data.get("result"):
            raise ProviderRequestError("Invalid response from add magnet", body=json.dumps(data))
        if folder_id == 0:
            logger.warning("Seedr accepted magnet without returning a folder id")
        return folder_id

    async def list_folders(self, access_token: str, parent_folder_id: int = ROOT_FOLDER_ID) -> List[SeedrFolder]:
        data = await self._folder(access_token, parent_folder_id, "get folder contents")
        try:
            return [SeedrFolder.from_api(f) for f in data.get("folders") or []]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed folder listing from Seedr: {e!r}")
            raise ProviderRequestError(
                f"Invalid folder listing response: {e!r}", body=json.dumps(data)
            ) from e

    async def list_files(self, access_token: str, folder_id: int) -> List[SeedrFile]:
        data = await self._folder(access_token, folder_id, "get files")
        try:
            return [SeedrFile.from_api(f) for f in data.get("files") or []]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed file listing for folder {folder_id}: {e!r}")
            raise ProviderRequestError(
                f"Invalid file listing response: {e!r}", body=json.dumps(data)
            ) from e

    async def resolve_file_url(self, access_token: str, file_id: int) -> str:
        """Empty string means Seedr has no direct link for this file right now."""
        data = await self._resource(
            access_token, "fetch_file", "get file URL", folder_file_id=str(file_id)
        )
        return data.get("url") or ""

    async def delete_folder(self, access_token: str, folder_id: int) -> None:
        await self._resource(
            access_token,
            "delete",
            "delete folder",
            delete_arr=json.dumps([{"type": "folder", "id": folder_id}]),
        )

    async def get_account_info(self, access_token: str) -> AccountUsage:
        response = await self._request(
            "GET", f"{self.base_url}/api/settings", "get account info",
            params={"access_token": access_token},
        )
        data = self._checked(response, "get account info")
        account = data.get("account") or {}
        return AccountUsage(
            space_max=account.get("space_max") or 0,
            space_used=account.get("space_used") or 0,
        )

    # OAuth

    def _tokens(self, data: Dict[str, Any], response: httpx.Response, action: str) -> TokenSet:
        if not data.get("access_token"):
            raise ProviderRequestError(f"Invalid {action} response", response.status_code, response.text)
        return TokenSet(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
        )

    async def login_with_password(self, username: str, password: str) -> TokenSet:
        form = {
            "grant_type": "password",
            "client_id": settings.SEEDR_PASSWORD_CLIENT_ID,
            "type": "login",
            "username": username,
            "password": password,
        }
        response = await self._request("POST", self.password_token_url, "login", data=form)
        data = self._decode(response)
        if isinstance(data, dict) and data.get("error"):
            raise ProviderAuthError(str(data["error"]), response.status_code, response.text)
        if response.is_error:
            raise ProviderAuthError(
                f"Failed to login: {response.status_code} {response.text}",
                response.status_code,
                response.text,
            )
        if not isinstance(data, dict) or not data.get("access_token"):
            raise ProviderAuthError("Invalid login response", response.status_code, response.text)
        return self._tokens(data, response, "login")

    async def request_device_code(self) -> DeviceCode:
        form = {
            "client_id": settings.SEEDR_DEVICE_CLIENT_ID,
            "grant_type": DEVICE_GRANT_TYPE,
        }
        response = await self._request("POST", self.device_code_url, "get device code", data=form)
        data = self._checked(response, "get device code")
        try:
            return DeviceCode(
                device_code=data["device_code"],
                user_code=data["user_code"],
                verification_url=data["verification_url"],
                expires_in=int(data["expires_in"]),
                interval=max(int(data["interval"]), 1),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderRequestError(
                f"Invalid device code response: {e}", response.status_code, response.text
            ) from e

    async def poll_device_token(self, device_code: str) -> TokenSet:
        """
        Single poll of the device token endpoint. Safe to call repeatedly.

        @raises AuthorizationPendingError while the user has not approved yet
        """
        form = {
            "device_code": device_code,
            "client_id": settings.SEEDR_DEVICE_CLIENT_ID,
            "grant_type": DEVICE_GRANT_TYPE,
        }
        response = await self._request("POST", self.device_token_url, "authorize device", data=form)
        data = self._decode(response)
        error = data.get("error") if isinstance(data, dict) else None
        if error in PENDING_ERRORS:
            raise AuthorizationPendingError(error)
        if error:
            raise ProviderAuthError(str(error), response.status_code, response.text)
        if response.is_error:
            raise ProviderRequestError(
                f"Failed to authorize device: {response.status_code} {response.text}",
                response.status_code,
                response.text,
            )
        return self._tokens(data or {}, response, "token")

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        form = {
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "client_id": settings.SEEDR_DEVICE_CLIENT_ID,
        }
        response = await self._request("POST", self.device_token_url, "refresh token", data=form)
        data = self._decode(response)
        if isinstance(data, dict) and data.get("error"):
            raise ProviderAuthError(str(data["error"]), response.status_code, response.text)
        if response.is_error:
            raise ProviderAuthError(
                f"Failed to refresh token: {response.status_code}", response.status_code, response.text
            )
        return self._tokens(data or {}, response, "refresh")
