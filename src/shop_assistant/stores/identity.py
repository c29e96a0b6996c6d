"""Bearer credential verification."""

from __future__ import annotations

import jwt

from shop_assistant.errors import IdentityError
from shop_assistant.types import Identity


class JwtIdentityVerifier:
    """Verifies HS256 tokens carrying ``userId`` and ``role`` claims."""

    def __init__(self, secret: str, *, algorithms: tuple[str, ...] = ("HS256",)) -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._algorithms = list(algorithms)

    def verify(self, token: str) -> Identity:
        try:
            claims = jwt.decode(token, self._secret, algorithms=self._algorithms)
        except jwt.PyJWTError as exc:
            raise IdentityError(f"invalid credential: {type(exc).__name__}") from exc

        user_id = claims.get("userId")
        try:
            return Identity(user_id=int(user_id), role=claims.get("role"))
        except (TypeError, ValueError) as exc:
            raise IdentityError("credential has no usable userId claim") from exc

    def issue(self, user_id: int, role: str = "customer") -> str:
        """Sign a token for `user_id`; used by local tooling and tests."""
        return jwt.encode({"userId": user_id, "role": role}, self._secret, algorithm=self._algorithms[0])
