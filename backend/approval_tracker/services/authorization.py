"""Capability guard consulted by every mutation path of the store.

Store functions check the principal themselves; routers only resolve it.
"""
import enum
import logging
import uuid
from dataclasses import dataclass

from approval_tracker.errors import AuthorizationError
from approval_tracker.models.profile import Role

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    employee = "employee"
    approver = "approver"
    admin = "admin"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.employee: frozenset({Capability.employee}),
    Role.approver: frozenset({Capability.employee, Capability.approver}),
    Role.admin: frozenset({Capability.employee, Capability.approver, Capability.admin}),
}

DECIDE_CAPABILITIES = (Capability.approver, Capability.admin)


@dataclass(frozen=True)
class Principal:
    """An authenticated caller as supplied by the identity provider."""

    user_id: uuid.UUID
    capabilities: frozenset[Capability]

    @classmethod
    def from_role(cls, user_id: uuid.UUID, role: Role) -> "Principal":
        return cls(user_id=user_id, capabilities=ROLE_CAPABILITIES[Role(role)])

    def has_any(self, *capabilities: Capability) -> bool:
        return any(c in self.capabilities for c in capabilities)


def require(principal: Principal, *capabilities: Capability, action: str) -> None:
    """Raise AuthorizationError unless ``principal`` holds one of ``capabilities``."""
    if principal is None or not principal.has_any(*capabilities):
        who = principal.user_id if principal is not None else "anonymous"
        logger.warning("Denied %s for %s (needs one of %s)", action, who, [c.value for c in capabilities])
        raise AuthorizationError(f"Not permitted to {action}")


def require_decider(principal: Principal) -> None:
    require(principal, *DECIDE_CAPABILITIES, action="decide approval requests")


def require_admin(principal: Principal, action: str) -> None:
    require(principal, Capability.admin, action=action)
