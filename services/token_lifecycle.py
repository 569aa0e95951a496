"""
Token lifecycle: issuing token pairs and rotating refresh tokens.

A refresh token is Issued (row written), then Active until it is either
Rotated (row consumed by rotate(), successor pair issued) or Expired (row
removed by the sweeper). There is no revoked state.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Optional

from models.identity_store import IdentityStore
from models.token_store import TokenStore
from utils.exceptions import InvalidToken, RecordNotFound, TokenError
from utils.security import ACCESS, REFRESH, TokenSigner, build_claims

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    user_id: str
    access_token: str
    refresh_token: str
    expires_in: int


class TokenLifecycleManager:
    def __init__(self, signer: TokenSigner, tokens: TokenStore, identities: IdentityStore):
        self.signer = signer
        self.tokens = tokens
        self.identities = identities

    def issue(self, user, now: Optional[datetime] = None) -> TokenPair:
        """Sign an access/refresh pair for user and persist the refresh token."""
        claims = build_claims(user)
        now = now or self.signer.clock()
        access_token = self.signer.sign(claims, ACCESS, now=now)
        refresh_token = self.signer.sign(claims, REFRESH, now=now)
        self.tokens.upsert(refresh_token, str(user.id), self.signer.expires_at(REFRESH, now))
        logger.debug("Issued token pair for user %s", user.id)
        return TokenPair(
            user_id=str(user.id),
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.signer.ttl_seconds(ACCESS),
        )

    def rotate(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair. The old row is consumed before
        the new pair is minted, so a crash in between leaves neither usable.
        Every failure is the same InvalidToken.
        """
        try:
            # Expiry is judged by the stored row below, not by exp here
            claims = self.signer.verify(refresh_token, REFRESH, check_expiry=False)
        except TokenError as exc:
            logger.info("Rejected refresh: %s", exc.__class__.__name__)
            raise InvalidToken() from exc

        try:
            record = self.tokens.delete_by_token(refresh_token)
        except RecordNotFound:
            logger.info("Rejected refresh: no live record")
            raise InvalidToken() from None

        if record.expires_at <= self.signer.clock():
            logger.info("Rejected refresh: record for user %s expired", record.user_id)
            raise InvalidToken()
        if claims.get("sub") != record.user_id:
            logger.warning("Rejected refresh: token subject does not match record owner %s", record.user_id)
            raise InvalidToken()

        user = self.identities.find_by_id(record.user_id)
        if user is None:
            logger.info("Rejected refresh: owner %s no longer exists", record.user_id)
            raise InvalidToken()

        # Successor is signed strictly after the consumed token's iat
        now = max(self.signer.clock(), self.signer.issued_at(claims) + timedelta(microseconds=1))
        pair = self.issue(user, now=now)
        logger.info("Rotated refresh token for user %s", user.id)
        return pair
