from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt

from todu.domain.accounts.ports import TokenClaims, TokenIssuer
from todu.domain.common.errors import AuthenticationError
from todu.domain.common.ports import Clock

JWT_ALG = "HS256"


class JwtTokenIssuer(TokenIssuer):
    """HS256 bearer tokens carrying ``userId``, ``email`` and ``exp``."""

    def __init__(self, secret: str, expires_in: timedelta, clock: Clock) -> None:
        self._secret = secret
        self._expires_in = expires_in
        self._clock = clock

    def issue(self, user_id: str, email: str) -> str:
        now = self._clock.now()
        claims = {
            "userId": user_id,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._expires_in).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=JWT_ALG)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[JWT_ALG])
        except JWTError:
            raise AuthenticationError("Invalid or expired token")
        user_id = payload.get("userId")
        if not user_id:
            raise AuthenticationError("Invalid token")
        return TokenClaims(user_id=str(user_id), email=str(payload.get("email") or ""))
