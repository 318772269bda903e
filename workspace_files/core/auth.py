"""
Caller identity

Every public operation receives an explicit ``Caller`` instead of reading the
acting agent or API key from process environment. On the server the caller is
built from request headers; on the client it is passed in by the presentation
layer.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from workspace_files.config import Settings, get_settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"
AGENT_NAME_HEADER = "X-Agent-Name"


@dataclass(frozen=True)
class Caller:
    """
    The acting identity for a request.

    Attributes:
        agent_name: Recorded as ``created_by`` on files and attachments
        api_key: Credential presented to the transport (never persisted)
    """

    agent_name: str
    api_key: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Caller":
        """Build a caller from WORKSPACE_AGENT_NAME / WORKSPACE_API_KEY."""
        settings = settings or get_settings()
        if not settings.agent_name:
            raise ValueError("WORKSPACE_AGENT_NAME is not set")
        return cls(agent_name=settings.agent_name, api_key=settings.api_key)

    def headers(self) -> dict[str, str]:
        """HTTP headers that carry this caller to the API."""
        headers = {AGENT_NAME_HEADER: self.agent_name}
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        return headers


def _key_accepted(api_key: str | None, accepted: list[str]) -> bool:
    if not accepted:
        return True
    if not api_key:
        return False
    return any(secrets.compare_digest(api_key, key) for key in accepted)


async def get_caller(
    x_agent_name: Annotated[str | None, Header(alias=AGENT_NAME_HEADER)] = None,
    x_api_key: Annotated[str | None, Header(alias=API_KEY_HEADER)] = None,
) -> Caller:
    """
    FastAPI dependency resolving the caller from request headers.

    Raises:
        HTTPException: 401 if the agent name is missing or the API key is not accepted
    """
    settings = get_settings()

    if not _key_accepted(x_api_key, settings.api_keys_list):
        logger.warning("Rejected request with unknown API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )

    if not x_agent_name or not x_agent_name.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {AGENT_NAME_HEADER} header",
        )

    return Caller(agent_name=x_agent_name.strip(), api_key=x_api_key)


CurrentCaller = Annotated[Caller, Depends(get_caller)]
