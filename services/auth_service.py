from __future__ import annotations

import logging

from models.identity_store import IdentityStore
from services.token_lifecycle import TokenLifecycleManager, TokenPair
from utils.exceptions import EmailTaken, InvalidCredentials
from utils.security import burn_password_check, hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """
    signup / login / refresh as seen by the HTTP layer.
    Inputs are expected to have passed the request schemas already.
    """

    def __init__(self, identities: IdentityStore, lifecycle: TokenLifecycleManager):
        self.identities = identities
        self.lifecycle = lifecycle

    def signup(self, name: str, email: str, password: str) -> TokenPair:
        if self.identities.find_by_email(email) is not None:
            raise EmailTaken()
        # create() raises EmailTaken too if a concurrent signup wins the race
        user = self.identities.create(name, email, hash_password(password))
        logger.info("Created user %s", user.id)
        return self.lifecycle.issue(user)

    def login(self, email: str, password: str) -> TokenPair:
        user = self.identities.find_by_email(email)
        if user is None:
            burn_password_check(password)
            logger.info("Failed login: unknown email")
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            raise InvalidCredentials()
        return self.lifecycle.issue(user)

    def refresh(self, refresh_token: str) -> TokenPair:
        return self.lifecycle.rotate(refresh_token)
