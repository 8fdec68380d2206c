"""
Infrastructure adapter: Supabase-issued JWT (HS256) → ITokenVerifier.

Verifies the signature with the project's JWT secret, then checks expiry and
the "authenticated" audience. Used when SUPABASE_JWT_SECRET is configured; it
avoids a network round trip per request while still verifying every call.
"""

from jose import JWTError, jwt

from reimburse.domain.entities.compilation import Identity
from reimburse.domain.ports.token_verifier_port import ITokenVerifier


class SupabaseJwtVerifier(ITokenVerifier):
    """Validates Supabase access tokens locally against the shared secret."""

    def __init__(self, jwt_secret: str, audience: str = "authenticated") -> None:
        self._secret = jwt_secret
        self._audience = audience

    async def verify(self, token: str) -> Identity:
        """Decode and validate a Supabase access token.

        Raises:
            ValueError: on any validation failure (bad signature, expiry,
                        wrong audience, missing subject).
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=["HS256"],
                audience=self._audience,
            )
        except JWTError as exc:
            raise ValueError(f"Token validation failed: {exc}") from exc

        subject = claims.get("sub")
        if not subject:
            raise ValueError("Token has no subject claim")
        return Identity(user_id=subject, email=claims.get("email"))
