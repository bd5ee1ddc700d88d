"""Auth guard deciding whether a protected page renders or redirects."""

from __future__ import annotations

import dataclasses
import logging

from powercrm.client.routes import LOGIN_PATH
from powercrm.client.store import AuthStore

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Loading:
    pass


@dataclasses.dataclass(frozen=True)
class Render:
    pass


@dataclasses.dataclass(frozen=True)
class Redirect:
    location: str


GuardDecision = Loading | Render | Redirect


class AuthGuard:
    def __init__(self, store: AuthStore) -> None:
        self.store = store
        self.initialized = False
        self._redirected = False

    @property
    def authenticated(self) -> bool:
        return self.store.is_authenticated

    def initialize(self) -> None:
        try:
            if self.store.token and not self.store.user:
                self.store.fetch_profile()
        except Exception:
            logger.exception("Auth initialization failed; clearing credentials")
            self.store.logout()
        finally:
            self.initialized = True

    def check(self, path: str) -> GuardDecision:
        if not self.initialized:
            return Loading()
        if self.authenticated:
            return Render()
        if self._redirected:
            return Loading()
        self._redirected = True
        logger.info("Redirecting unauthenticated visit to %s", path)
        return Redirect(LOGIN_PATH)
