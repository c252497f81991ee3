"""
Per-request session state.

A SessionContext is created for each request from the bearer token and
passed to every component that needs to know who is asking. While it is
open it listens on the session channel:

- SIGNED_OUT for its own token (or all of the user's tokens) turns it
  anonymous for the rest of the request
- ROLES_CHANGED for its user drops the role set to empty until the next
  request reloads roles from the store
"""
import logging
from datetime import datetime
from typing import Optional

from licensing.domain.entities import AccessDenied, AuthenticationRequired
from licensing.domain.principal import Principal
from licensing.services.session_channel import SessionChannel, SessionEvent, SessionEventType

logger = logging.getLogger(__name__)


class SessionContext:
    """Holds the current principal; updated in place by session events"""

    def __init__(
        self,
        principal: Optional[Principal] = None,
        token_id: Optional[str] = None,
        email: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        channel: Optional[SessionChannel] = None,
    ):
        self._principal = principal or Principal.anonymous()
        self.token_id = token_id
        self.email = email
        self.expires_at = expires_at
        self._channel = channel
        self._subscribed = False

        if channel is not None and self._principal.is_authenticated:
            channel.subscribe(self.handle)
            self._subscribed = True

    @classmethod
    def anonymous(cls) -> "SessionContext":
        return cls()

    @classmethod
    def system(cls) -> "SessionContext":
        """Context for the CLI and other trusted internal callers"""
        return cls(principal=Principal.system())

    @property
    def principal(self) -> Principal:
        return self._principal

    @property
    def user_id(self) -> Optional[str]:
        return self._principal.user_id

    @property
    def is_authenticated(self) -> bool:
        return self._principal.is_authenticated

    def require(self) -> Principal:
        """
        Current principal, which must be signed in.

        Raises:
            AuthenticationRequired: If the context is anonymous (or was signed out)
        """
        if self._principal.is_system:
            return self._principal
        if not self._principal.is_authenticated:
            raise AuthenticationRequired()
        return self._principal

    def require_admin(self) -> Principal:
        principal = self.require()
        if not (principal.is_admin or principal.is_system):
            raise AccessDenied("user_roles", "ADMIN", "admin role required")
        return principal

    def handle(self, event: SessionEvent) -> None:
        user_id = self._principal.user_id
        if user_id is None or event.user_id != user_id:
            return

        if event.type == SessionEventType.SIGNED_OUT:
            if event.token_id is None or event.token_id == self.token_id:
                logger.info(f"Session for user {user_id} signed out mid-request")
                self._principal = Principal.anonymous()
                self.close()
        elif event.type == SessionEventType.ROLES_CHANGED:
            logger.info(f"Roles changed for user {user_id}; dropping cached roles")
            self._principal = Principal.user(user_id, roles=())

    def close(self) -> None:
        if self._subscribed and self._channel is not None:
            self._channel.unsubscribe(self.handle)
            self._subscribed = False

    def __repr__(self) -> str:
        return f"SessionContext({self._principal!r})"
