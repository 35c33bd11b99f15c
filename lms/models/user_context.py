from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class UserContext:
    """Authenticated identity extracted from a validated JWT.

    Built once by the auth dependency (or the chat hub handshake) and
    passed explicitly into every service call.  Services never look up
    the caller from request-scoped or global state.

        user_id: `sub` claim, parsed as a UUID
        roles:   platform roles (student, instructor, admin)
    """

    user_id: UUID
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles
