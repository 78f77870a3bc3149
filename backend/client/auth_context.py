"""
Auth context - the signed-in user shared across pages

Holds ``{user, is_loading}`` and notifies subscribers on every change.
``is_loading`` stays True until the identity provider reports its first state.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog

from api.schemas import AuthUser
from core.exceptions import AuthenticationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthState:
    user: Optional[AuthUser]
    is_loading: bool

    @property
    def is_signed_in(self) -> bool:
        return self.user is not None


Subscriber = Callable[[AuthState], None]


class AuthContext:
    def __init__(self):
        self._state = AuthState(user=None, is_loading=True)
        self._subscribers: List[Subscriber] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def user(self) -> Optional[AuthUser]:
        return self._state.user

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register ``callback`` and call it with the current state right away.

        Returns a function that unsubscribes it.
        """
        self._subscribers.append(callback)
        callback(self._state)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_user(self, user: Optional[AuthUser]) -> None:
        """Called by the identity provider whenever auth state changes."""
        self._state = AuthState(user=user, is_loading=False)
        logger.info("Auth state changed", signed_in=user is not None)
        for callback in list(self._subscribers):
            callback(self._state)

    def sign_out(self) -> None:
        self.set_user(None)

    def require_user(self) -> AuthUser:
        """Return the signed-in user; pages redirect to login on AuthenticationError."""
        if self._state.user is None:
            raise AuthenticationError("Not signed in")
        return self._state.user
