"""Per-caller generation cooldown backed by caller-held tokens.

The server keeps no per-user state between requests.  Instead every caller
carries two opaque values and presents them on each ``POST /api/generate``:

``X-Client-Token``
    Identity of the caller.  Minted here on first contact and returned so the
    caller can send it back.
``X-Last-Generate-At``
    Epoch milliseconds of the caller's last admitted generation.  Returned on
    every admitted attempt.

State machine per identity::

    no record ──admit──▶ record(t) ──within cooldown──▶ rejected (wait hint)
                             ▲                               │
                             └──────cooldown elapsed─────────┘

The wait hint is ``ceil((cooldown_ms - elapsed_ms) / 1000)`` seconds.

Known limitation
----------------
Both values are trusted as presented.  A caller that drops its identity or
rewinds its timestamp bypasses the cooldown; nothing here attempts to detect
that.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

IDENTITY_HEADER = "X-Client-Token"
LAST_REQUEST_HEADER = "X-Last-Generate-At"


class CooldownActive(Exception):
    """Raised when a caller asks to generate again before the cooldown ends."""

    def __init__(self, identity: str, wait_seconds: int, last_request_ms: int):
        self.identity = identity
        self.wait_seconds = wait_seconds
        self.last_request_ms = last_request_ms
        super().__init__(f"Cooldown active for {wait_seconds} more seconds")

    @property
    def headers(self) -> dict[str, str]:
        """Tokens handed back unchanged with the rejection."""
        return {
            IDENTITY_HEADER: self.identity,
            LAST_REQUEST_HEADER: str(self.last_request_ms),
            "Retry-After": str(self.wait_seconds),
        }


@dataclass(frozen=True)
class CooldownTicket:
    """Proof that a generation attempt was admitted."""

    identity: str
    requested_at_ms: int
    minted: bool = False

    @property
    def headers(self) -> dict[str, str]:
        """Tokens the caller must present on its next attempt."""
        return {
            IDENTITY_HEADER: self.identity,
            LAST_REQUEST_HEADER: str(self.requested_at_ms),
        }


def parse_timestamp_token(raw: str | None) -> int | None:
    """Parse an ``X-Last-Generate-At`` value; garbage counts as absent."""
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    if value < 0:
        return None
    return value


def remaining_wait_seconds(last_request_ms: int, now_ms: int, cooldown_ms: int) -> int:
    """Seconds left in the cooldown window, 0 when a new attempt is allowed.

    A timestamp from the future counts as "just now", so the result never
    exceeds the cooldown itself.
    """
    elapsed = max(now_ms - last_request_ms, 0)
    if elapsed >= cooldown_ms:
        return 0
    return math.ceil((cooldown_ms - elapsed) / 1000)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class GenerationCooldown:
    """Decide whether a caller may generate, given the tokens it presented.

    Args:
        cooldown_ms: Length of the cooldown window in milliseconds
        clock: Callable returning the current epoch time in milliseconds
    """

    def __init__(self, cooldown_ms: int, clock: Callable[[], int] = _epoch_ms) -> None:
        self.cooldown_ms = cooldown_ms
        self._clock = clock

    def admit(self, identity: str | None, last_request: str | None) -> CooldownTicket:
        """Admit or reject a generation attempt.

        Args:
            identity: Presented identity token, if any
            last_request: Presented last-request timestamp token, if any

        Returns:
            A ticket carrying the tokens to return to the caller

        Raises:
            CooldownActive: If the caller is still inside its cooldown window
        """
        now_ms = self._clock()
        identity = (identity or "").strip()

        if not identity:
            # A fresh identity has no record yet, whatever timestamp it sent.
            identity = uuid.uuid4().hex
            logger.debug(f"Minted client token {identity}")
            return CooldownTicket(identity=identity, requested_at_ms=now_ms, minted=True)

        last_request_ms = parse_timestamp_token(last_request)
        if last_request_ms is not None:
            wait = remaining_wait_seconds(last_request_ms, now_ms, self.cooldown_ms)
            if wait > 0:
                logger.info(f"Generation rejected for {identity}: {wait}s of cooldown left")
                raise CooldownActive(identity, wait, last_request_ms)

        return CooldownTicket(identity=identity, requested_at_ms=now_ms)
