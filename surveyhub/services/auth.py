from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from surveyhub.services.errors import Unauthorized

ALGORITHM = "HS256"
ROLES = ("admin", "viewer")


@dataclass(frozen=True, slots=True)
class AuthUser:
    id: int
    username: str
    role: str  # "admin" | "viewer"


class AuthService:
    """
    Verifies admin bearer tokens. Issuing is only used by scripts and tests;
    login and password handling live elsewhere.
    """

    def __init__(self, secret: str) -> None:
        self.secret = secret

    def issue(
        self,
        *,
        user_id: int,
        username: str,
        role: str = "admin",
        expires_in: timedelta = timedelta(hours=24),
    ) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {
            "id": user_id,
            "username": username,
            "role": role,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> AuthUser:
        try:
            claims = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except jwt.PyJWTError as e:
            raise Unauthorized("Invalid or expired token") from e

        try:
            return AuthUser(
                id=int(claims["id"]),
                username=str(claims["username"]),
                role=str(claims["role"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise Unauthorized("Invalid or expired token") from e

    def authenticate_header(self, header: str | None) -> AuthUser:
        if not header:
            raise Unauthorized("Access token required")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise Unauthorized("Access token required")
        return self.verify(token.strip())
