"""JWT session token generation and validation."""

import time

import jwt

from modelforge.auth.types import TokenClaims


class JWTError(Exception):
    """Base exception for JWT-related errors."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid or malformed."""

    pass


class JWTService:
    """Issues and decodes session tokens.

    Uses HS256 with a shared secret key. Tokens carry identity only; roles
    are resolved per request, never embedded.
    """

    SESSION_TOKEN_TTL = 60 * 60  # 1 hour

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        """Initialize the JWT service.

        Args:
            secret_key: Secret key for signing tokens (should be at least 32 chars)
            algorithm: JWT algorithm (default HS256)
        """
        self._secret_key = secret_key
        self._algorithm = algorithm

    def generate_session_token(
        self,
        identity_id: str,
        email: str | None = None,
        ttl: int | None = None,
    ) -> str:
        """Generate a signed session token for an identity.

        Args:
            identity_id: The identity's ID (becomes the ``sub`` claim)
            email: Optional email claim
            ttl: Lifetime in seconds (defaults to SESSION_TOKEN_TTL)
        """
        now = int(time.time())
        claims = {
            "sub": identity_id,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.SESSION_TOKEN_TTL),
            "type": "access",
        }
        if email:
            claims["email"] = email

        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenClaims:
        """Decode and validate a JWT token.

        Raises:
            TokenExpiredError: If the token has expired
            InvalidTokenError: If the token is invalid or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        identity_id = payload.get("sub")
        if not identity_id:
            raise InvalidTokenError("Token has no subject")

        return TokenClaims(
            identity_id=identity_id,
            email=payload.get("email"),
            exp=payload.get("exp", 0),
            iat=payload.get("iat", 0),
            type=payload.get("type", "access"),
        )
