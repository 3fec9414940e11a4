"""
Invite Relay - Delivery Client
==============================

Posts canonical payloads to the automation webhook.

DESIGN:
    One call to deliver() is exactly one POST: no retry, no batching, no
    queue. The outcome is returned as a value and the orchestrator decides
    what to log. Delivery is best-effort, at most once.

    - 2xx                              -> Delivered(status)
    - any other status                 -> RejectedByServer(status, body)
    - timeout / connection / DNS error -> TransportFailure(cause)

    The aiohttp session is created in start() and reused for every post;
    a session passed to the constructor is borrowed and never closed here.

Author: Invite Relay maintainers
Project: invite-relay
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

import aiohttp

from src.core.constants import DELIVERY_TIMEOUT, LOG_TRUNCATE_BODY
from src.core.errors import DeliveryRejected, DeliveryTransportFailure
from src.core.payloads import CanonicalPayload


# =============================================================================
# Outcomes
# =============================================================================

@dataclass(frozen=True)
class Delivered:
    status: int

    @property
    def ok(self) -> bool:
        return True

    def as_error(self) -> None:
        return None


@dataclass(frozen=True)
class RejectedByServer:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return False

    def as_error(self) -> DeliveryRejected:
        return DeliveryRejected(self.status, self.body)


@dataclass(frozen=True)
class TransportFailure:
    cause: BaseException

    @property
    def ok(self) -> bool:
        return False

    def as_error(self) -> DeliveryTransportFailure:
        return DeliveryTransportFailure(self.cause)


DeliveryOutcome = Union[Delivered, RejectedByServer, TransportFailure]


# =============================================================================
# Delivery Client
# =============================================================================

class DeliveryClient:
    """
    Single-shot JSON poster for the webhook sink.

    Attributes:
        webhook_url: Sink URL (may embed its own auth token).
        timeout: Total seconds allowed per POST.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = DELIVERY_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def deliver(self, payload: CanonicalPayload) -> DeliveryOutcome:
        """
        POST payload as JSON and classify the result.

        Never raises for network or HTTP problems; those come back as
        TransportFailure or RejectedByServer.
        """
        if self._session is None or self._session.closed:
            await self.start()

        try:
            async with self._session.post(
                self.webhook_url,
                json=payload.to_json_dict(),
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if 200 <= resp.status < 300:
                    return Delivered(resp.status)
                body = await resp.text(errors="replace")
                return RejectedByServer(resp.status, body[:LOG_TRUNCATE_BODY])
        except asyncio.TimeoutError as e:
            return TransportFailure(e)
        except aiohttp.ClientError as e:
            return TransportFailure(e)
        except OSError as e:
            return TransportFailure(e)


__all__ = [
    "Delivered",
    "RejectedByServer",
    "TransportFailure",
    "DeliveryOutcome",
    "DeliveryClient",
]
