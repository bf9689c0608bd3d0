from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


# Enums
class UserRole(str, Enum):
    guest = "guest"
    investor = "investor"
    project_admin = "project_admin"
    admin = "admin"
    super_admin = "super_admin"


class VisibilityLevel(str, Enum):
    full = "full"
    admin = "admin"
    anonymous = "anonymous"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# Roles that see investor identities regardless of anonymity settings
ADMIN_TIER_ROLES = frozenset({
    UserRole.project_admin.value,
    UserRole.admin.value,
    UserRole.super_admin.value,
})


# Models
class Viewer(BaseModel):
    """
    Identity of the requester, built fresh for every request from verified
    token claims. `role` is kept as a plain string so unknown roles fail
    closed in the resolver instead of failing validation.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_admin_tier(self) -> bool:
        return self.role in ADMIN_TIER_ROLES


@dataclass(frozen=True)
class RouteRequirement:
    """
    Roles and permissions declared for a route at registration time.
    An empty tuple means the route is unrestricted on that axis.
    """
    required_roles: Tuple[str, ...] = ()
    required_permissions: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists / enum members, store plain string tuples
        object.__setattr__(self, "required_roles", tuple(_value(r) for r in self.required_roles))
        object.__setattr__(self, "required_permissions", tuple(_value(p) for p in self.required_permissions))


def _value(item) -> str:
    return item.value if isinstance(item, Enum) else str(item)
