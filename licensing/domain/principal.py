"""
Principal - who is asking.

Every data-access path is authorized against a Principal: anonymous,
an authenticated user with a role set, or the internal system principal
that stands in for the store's own provisioning hook.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .value_objects import AppRole


@dataclass(frozen=True)
class Principal:
    """Immutable identity + role set used by the policy engine"""

    user_id: Optional[str] = None
    roles: FrozenSet[AppRole] = field(default_factory=frozenset)
    is_system: bool = False

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()

    @classmethod
    def system(cls) -> "Principal":
        return cls(is_system=True)

    @classmethod
    def user(cls, user_id: str, roles=()) -> "Principal":
        if not user_id:
            raise ValueError("Authenticated principal requires a user_id")
        return cls(user_id=user_id, roles=frozenset(AppRole(r) for r in roles))

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None and not self.is_system

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return AppRole.ADMIN in self.roles

    def owns(self, owner_id: Optional[str]) -> bool:
        """True when the principal is the (non-null) owner"""
        return self.user_id is not None and owner_id is not None and self.user_id == owner_id

    def __repr__(self) -> str:
        if self.is_system:
            return "Principal(system)"
        if self.is_anonymous:
            return "Principal(anonymous)"
        roles = ",".join(sorted(r.value for r in self.roles)) or "-"
        return f"Principal(user={self.user_id}, roles={roles})"
