"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (separate secrets for access and refresh tokens)
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
import math
from typing import Any, Callable, Dict, Mapping

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from utils.exceptions import TokenExpired, TokenMalformed, TokenSignatureInvalid
from utils.timeutils import parse_duration, utcnow

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"

DEFAULT_ACCESS_TTL = timedelta(minutes=30)
DEFAULT_REFRESH_TTL = timedelta(days=30)

_dummy_hash: str | None = None


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2.
    Mismatches and unparsable hashes are both just False.
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def burn_password_check(password: str) -> None:
    """Spend one argon2 verify so an unknown email costs as much as a wrong password."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = ph.hash("not-a-real-password")
    verify_password(password, _dummy_hash)


def _timestamp(moment: datetime) -> float:
    return moment.replace(tzinfo=timezone.utc).timestamp()


def _epoch(moment: datetime) -> int:
    return int(_timestamp(moment))


def _whole_seconds(ttl: timedelta) -> int:
    # exp is an integer NumericDate, so sub-second lifetimes round up
    return math.ceil(ttl.total_seconds())


class TokenSigner:
    """
    Signs and verifies access/refresh JWTs.

    Claims passed in are the minimal identity payload ({"sub", "email"}); the
    signer adds iat, exp, type and iss. No random jti is added, so the same
    claims signed at the same instant give the same token.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta | None = None,
        refresh_ttl: timedelta | None = None,
        algorithm: str = "HS256",
        issuer: str = "auth-token-service",
        clock: Callable[[], datetime] = utcnow,
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("access and refresh secrets are required")
        if access_secret == refresh_secret:
            raise ValueError("access and refresh secrets must differ")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {
            ACCESS: access_ttl if access_ttl is not None else DEFAULT_ACCESS_TTL,
            REFRESH: refresh_ttl if refresh_ttl is not None else DEFAULT_REFRESH_TTL,
        }
        self.algorithm = algorithm
        self.issuer = issuer
        self.clock = clock

    @classmethod
    def from_config(cls, config: Mapping[str, Any], clock: Callable[[], datetime] = utcnow) -> "TokenSigner":
        return cls(
            access_secret=config["ACCESS_TOKEN_SECRET"],
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            access_ttl=parse_duration(config.get("ACCESS_TOKEN_EXPIRES", DEFAULT_ACCESS_TTL)),
            refresh_ttl=parse_duration(config.get("REFRESH_TOKEN_EXPIRES", DEFAULT_REFRESH_TTL)),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "auth-token-service"),
            clock=clock,
        )

    def ttl(self, kind: str) -> timedelta:
        return self._ttls[kind]

    def ttl_seconds(self, kind: str) -> int:
        return _whole_seconds(self._ttls[kind])

    def expires_at(self, kind: str, now: datetime) -> datetime:
        """The instant written into a token's exp claim, as naive UTC."""
        exp = _epoch(now) + self.ttl_seconds(kind)
        return datetime.fromtimestamp(exp, timezone.utc).replace(tzinfo=None)

    def encode(self, claims: Mapping[str, Any], secret: str, ttl: timedelta,
               token_type: str, now: datetime | None = None) -> str:
        moment = now or self.clock()
        payload = dict(claims)
        payload.update(
            {
                "iss": self.issuer,
                # microsecond iat keeps tokens minted in the same second distinct
                "iat": round(_timestamp(moment), 6),
                "exp": _epoch(moment) + _whole_seconds(ttl),
                "type": token_type,
            }
        )
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def decode(self, token: str, secret: str, token_type: str,
               check_expiry: bool = True) -> Dict[str, Any]:
        """
        Decode and validate a JWT against the signer's clock.
        Raises TokenMalformed, TokenSignatureInvalid or TokenExpired.
        """
        try:
            decoded = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "iat", "exp", "type"],
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise TokenSignatureInvalid("Invalid token signature") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenMalformed(f"Invalid token: {exc}") from exc

        if decoded.get("type") != token_type:
            raise TokenMalformed("Wrong token type")
        if not isinstance(decoded.get("exp"), int):
            raise TokenMalformed("Invalid token: exp must be an integer")
        if isinstance(decoded.get("iat"), bool) or not isinstance(decoded.get("iat"), (int, float)):
            raise TokenMalformed("Invalid token: iat must be a number")
        if check_expiry and decoded["exp"] <= _epoch(self.clock()):
            raise TokenExpired("Token expired")
        return decoded

    def sign(self, claims: Mapping[str, Any], kind: str, now: datetime | None = None) -> str:
        return self.encode(claims, self._secrets[kind], self._ttls[kind], kind, now=now)

    def verify(self, token: str, kind: str, check_expiry: bool = True) -> Dict[str, Any]:
        return self.decode(token, self._secrets[kind], kind, check_expiry=check_expiry)

    @staticmethod
    def issued_at(claims: Mapping[str, Any]) -> datetime:
        """The iat claim of a decoded token, as naive UTC."""
        return datetime.fromtimestamp(claims["iat"], timezone.utc).replace(tzinfo=None)


def build_claims(user) -> Dict[str, str]:
    """Identity payload embedded in both tokens; never the password or its hash."""
    return {"sub": str(user.id), "email": user.email}
