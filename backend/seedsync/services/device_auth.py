"""
Seedr device-code authorization as an explicit state machine.

Interactive callers (the dashboard) request a code and call ``poll_once`` on
each of their own requests. Background callers use ``run`` which polls at the
provider interval until authorized, failed or expired.
"""
import asyncio
import enum
import logging
import math
from typing import Awaitable, Callable, Optional

from seedsync.core.exceptions import (
    AuthorizationPendingError,
    DeviceAuthTimeoutError,
    SeedSyncError,
)
from seedsync.services.seedr import DeviceCode, SeedrClient, TokenSet

logger = logging.getLogger(__name__)


class DeviceAuthState(str, enum.Enum):
    IDLE = "idle"
    CODE_REQUESTED = "code_requested"
    POLLING = "polling"
    AUTHORIZED = "authorized"
    EXPIRED = "expired"
    FAILED = "failed"


def max_poll_attempts(expires_in: int, interval: int) -> int:
    return math.ceil(expires_in / max(interval, 1)) + 1


class DeviceAuthorization:
    def __init__(
        self,
        client: SeedrClient,
        code: Optional[DeviceCode] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.code = code
        self.tokens: Optional[TokenSet] = None
        self.error: Optional[Exception] = None
        self.attempts = 0
        self._sleep = sleep
        self.state = DeviceAuthState.CODE_REQUESTED if code else DeviceAuthState.IDLE

    @property
    def finished(self) -> bool:
        return self.state in (DeviceAuthState.AUTHORIZED, DeviceAuthState.EXPIRED, DeviceAuthState.FAILED)

    async def request_code(self) -> DeviceCode:
        if self.state != DeviceAuthState.IDLE:
            raise RuntimeError(f"Cannot request a device code in state {self.state.value}")
        try:
            self.code = await self.client.request_device_code()
        except SeedSyncError as e:
            self.state = DeviceAuthState.FAILED
            self.error = e
            raise
        self.state = DeviceAuthState.CODE_REQUESTED
        return self.code

    async def poll_once(self) -> Optional[TokenSet]:
        """
        One poll of the token endpoint.

        @returns tokens when authorized, None while still pending
        """
        if self.code is None:
            raise RuntimeError("No device code requested")
        if self.finished:
            raise RuntimeError(f"Device authorization already {self.state.value}")

        self.state = DeviceAuthState.POLLING
        self.attempts += 1
        try:
            self.tokens = await self.client.poll_device_token(self.code.device_code)
        except AuthorizationPendingError:
            return None
        except Exception as e:
            self.state = DeviceAuthState.FAILED
            self.error = e
            raise
        self.state = DeviceAuthState.AUTHORIZED
        return self.tokens

    async def run(self) -> TokenSet:
        if self.state == DeviceAuthState.IDLE:
            await self.request_code()

        limit = max_poll_attempts(self.code.expires_in, self.code.interval)
        while self.attempts < limit:
            tokens = await self.poll_once()
            if tokens is not None:
                logger.info("Seedr device authorization completed")
                return tokens
            logger.debug(f"Authorization pending (attempt {self.attempts}/{limit})")
            if self.attempts < limit:
                await self._sleep(max(self.code.interval, 1))

        self.state = DeviceAuthState.EXPIRED
        self.error = DeviceAuthTimeoutError("Login timeout: device was not authorized in time")
        raise self.error
