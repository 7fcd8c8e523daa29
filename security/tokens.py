"""Issuing and verifying signed admin access tokens."""

import time

from datetime import timedelta
from typing import Callable, Optional, Union

from jose import JWTError, jwt
from pydantic import ValidationError

from models.security import TokenPayload

from .errors import ConfigurationError, MalformedToken, TokenExpired


DEFAULT_ALGORITHM = "HS256"


class TokenService:
    """Issues and verifies HMAC-signed JWTs.

    The service holds no mutable state: the signing key and clock are fixed at
    construction, so one instance can be shared by concurrent requests.
    A token is valid up to and including the second given by its `exp` claim.
    """

    def __init__(
        self,
        signing_key: Optional[str],
        clock: Callable[[], float] = time.time,
        algorithm: str = DEFAULT_ALGORITHM,
    ):
        self._signing_key = signing_key
        self._clock = clock
        self.algorithm = algorithm

    def _require_key(self) -> str:
        if not self._signing_key:
            raise ConfigurationError("JWT signing key is not configured")
        return self._signing_key

    def issue(self, identity: str, role: str, lifetime: Union[timedelta, int]) -> str:
        """Creates a new access token.

        Args:
            identity (str): The email of the admin.
            role (str): The role embedded in the token.
            lifetime (timedelta | int): Token lifetime, in seconds when given as an int.

        Raises:
            ConfigurationError: Raised when no signing key is configured.

        Returns:
            str: The encoded JWT.
        """
        key = self._require_key()

        if isinstance(lifetime, timedelta):
            lifetime = int(lifetime.total_seconds())

        issued_at = int(self._clock())
        payload = TokenPayload(
            email=identity, role=role, iat=issued_at, exp=issued_at + lifetime
        )

        return jwt.encode(payload.model_dump(), key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenPayload:
        """Decodes a token and checks its signature and expiry.

        Args:
            token (str): The encoded JWT.

        Raises:
            ConfigurationError: Raised when no signing key is configured.
            MalformedToken: Raised when the token cannot be decoded or its claims are invalid.
            TokenExpired: Raised when the current time is past the `exp` claim.

        Returns:
            TokenPayload: The claims exactly as embedded at issuance.
        """
        key = self._require_key()

        try:
            #* Expiry is checked below against the injected clock
            claims = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
            payload = TokenPayload.model_validate(claims)
        except (JWTError, ValidationError) as e:
            raise MalformedToken(str(e)) from e

        if int(self._clock()) > payload.exp:
            raise TokenExpired(payload.exp)

        return payload
