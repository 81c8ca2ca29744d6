"""
Outline
resolve_token()
"""

from typing import Optional

import httpx

from app.core.config import settings
from app.core.exceptions import GatewayError
from app.core.logging import get_logger

logger = get_logger(__name__)


class ActorGatewayClient:
    """
    Client for the external Actor Gateway.
    Resolves portal and admin session tokens to a verified actor.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the actor gateway client.

        Args:
            base_url: Base URL of the identity / session service
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def resolve_token(self, token: str) -> Optional[dict]:
        """
        Resolve a bearer token to an actor.

        Returns:
            Actor payload ({"type", "id", "name", "childIds"}) if the token is
            valid, None if the gateway rejects it

        Raises:
            GatewayError: if the gateway cannot be reached
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.get(
                    f"{self.base_url}/api/v1/sessions/actor",
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.RequestError as e:
            logger.error(f"Actor gateway unreachable: {str(e)}")
            raise GatewayError("Actor gateway is unavailable") from e

        if response.status_code == 200:
            actor = response.json()
            logger.info(
                f"Resolved session to {actor.get('type')} {actor.get('id')}"
            )
            return actor
        if response.status_code in (401, 403, 404):
            logger.warning(
                f"Actor gateway rejected session (status: {response.status_code})"
            )
            return None

        logger.error(
            f"Unexpected actor gateway response (status: {response.status_code})"
        )
        raise GatewayError(
            f"Actor gateway returned status {response.status_code}"
        )


# Create a singleton instance
# URL should be set via environment variable: ACTOR_GATEWAY_URL
actor_gateway = ActorGatewayClient(
    base_url=settings.ACTOR_GATEWAY_URL,
    timeout=settings.ACTOR_GATEWAY_TIMEOUT,
)
