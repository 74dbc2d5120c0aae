"""Gateway to the external user-account service.

Moderators suspend and reinstate users; the account service owns user state,
so this side only asks. ``HttpAccountGateway`` talks to the service over
HTTP, ``InMemoryAccountGateway`` records calls for development and tests.
"""

from abc import ABC, abstractmethod
from uuid import UUID

import httpx
import structlog


logger = structlog.get_logger(__name__)


class AccountServiceError(Exception):
    """Raised when the user-account service rejects or fails a request."""


class AccountGateway(ABC):
    """Account-state operations requested by moderation."""

    @abstractmethod
    async def suspend(self, user_id: UUID, reason: str | None = None) -> None:
        """Suspend a user account."""

    @abstractmethod
    async def activate(self, user_id: UUID) -> None:
        """Reinstate a suspended user account."""

    async def close(self) -> None:
        """Release resources held by the gateway."""


class HttpAccountGateway(AccountGateway):
    """Calls the user-account service REST API with httpx."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize gateway.

        Args:
            base_url: Account service base URL
            api_key: Sent as X-API-Key when set
            timeout: Request timeout in seconds
            client: Preconfigured client (tests use httpx.MockTransport)
        """
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    async def suspend(self, user_id: UUID, reason: str | None = None) -> None:
        await self._post(f"/v1/users/{user_id}/suspend", {"reason": reason})

    async def activate(self, user_id: UUID) -> None:
        await self._post(f"/v1/users/{user_id}/activate", {})

    async def _post(self, path: str, payload: dict) -> None:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.TimeoutException as e:
            logger.error("account_service_timeout", path=path, error=str(e))
            raise AccountServiceError("Account service timeout") from e
        except httpx.RequestError as e:
            logger.error("account_service_request_error", path=path, error=str(e))
            raise AccountServiceError(f"Account service request error: {e}") from e

        if response.status_code >= httpx.codes.BAD_REQUEST:
            logger.error(
                "account_service_request_failed",
                path=path,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise AccountServiceError(
                f"Account service error: {response.status_code}"
            )

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryAccountGateway(AccountGateway):
    """Keeps the set of suspended users in memory."""

    def __init__(self) -> None:
        self.suspended: set[UUID] = set()
        self.calls: list[tuple[str, UUID]] = []

    async def suspend(self, user_id: UUID, reason: str | None = None) -> None:
        self.calls.append(("suspend", user_id))
        self.suspended.add(user_id)
        logger.info("account_suspended", user_id=str(user_id), reason=reason)

    async def activate(self, user_id: UUID) -> None:
        self.calls.append(("activate", user_id))
        self.suspended.discard(user_id)
        logger.info("account_activated", user_id=str(user_id))
