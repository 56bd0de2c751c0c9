from __future__ import annotations

import asyncio
import logging

from google.auth.transport.requests import Request
from google.oauth2 import id_token

from todu.domain.accounts.ports import GoogleIdentity, GoogleIdentityVerifier
from todu.domain.common.errors import AuthenticationError

logger = logging.getLogger(__name__)


class GoogleIdTokenVerifier(GoogleIdentityVerifier):
    """Checks a Google Sign-In ID token against our OAuth client id."""

    def __init__(self, client_id: str) -> None:
        self._client_id = client_id

    def _verify_sync(self, credential: str) -> dict:
        return id_token.verify_oauth2_token(credential, Request(), self._client_id)

    async def verify(self, credential: str) -> GoogleIdentity:
        try:
            payload = await asyncio.to_thread(self._verify_sync, credential)
        except ValueError as e:
            logger.info("Google credential rejected: %s", e)
            raise AuthenticationError("Invalid Google credential")
        if not payload or not payload.get("sub"):
            raise AuthenticationError("Invalid Google credential")
        return GoogleIdentity(
            google_id=str(payload["sub"]),
            email=str(payload.get("email") or "").lower(),
            name=payload.get("name"),
            picture=payload.get("picture"),
        )
