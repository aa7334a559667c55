from __future__ import annotations

import jwt

from pickup_chat.application.dto.principal import Principal


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        return Principal(
            user_id=str(payload["sub"]),
            email=payload.get("email"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            profile_image_url=payload.get("picture"),
        )

    def issue(self, principal: Principal) -> str:
        """Sign a token for ``principal`` (development and tests)."""
        claims = {
            "sub": principal.user_id,
            "email": principal.email,
            "first_name": principal.first_name,
            "last_name": principal.last_name,
            "picture": principal.profile_image_url,
        }
        return jwt.encode(
            {k: v for k, v in claims.items() if v is not None},
            self._secret,
            algorithm=self._algorithm,
        )
