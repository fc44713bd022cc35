# hrms_notify/core/roles.py
"""
Role hierarchy.

One table (role name -> tier) is the only source of truth. Both ways of
expressing a requirement are compiled from it:
  - RoleRequirement.at_least("Admin")         -> tier(role) >= 2
  - RoleRequirement.one_of("Admin", "SuperAdmin") -> role in {...}
Unknown role names resolve to tier 0.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

EMPLOYEE = "Employee"
ADMIN = "Admin"
SUPER_ADMIN = "SuperAdmin"

ROLE_TIERS: Dict[str, int] = {
    EMPLOYEE: 1,
    ADMIN: 2,
    SUPER_ADMIN: 3,
}

LOWEST_TIER = 0
TOP_TIER = max(ROLE_TIERS.values())


def tier(role: Optional[str]) -> int:
    return ROLE_TIERS.get(role or "", LOWEST_TIER)


def is_known_role(role: Optional[str]) -> bool:
    return (role or "") in ROLE_TIERS


def is_top_tier(role: Optional[str]) -> bool:
    return tier(role) == TOP_TIER


@dataclass(frozen=True)
class RoleRequirement:
    """Either a minimum tier or an explicit allow-set, never both."""

    minimum_tier: int = LOWEST_TIER
    allowed: Optional[FrozenSet[str]] = None

    @classmethod
    def at_least(cls, role: str) -> "RoleRequirement":
        if not is_known_role(role):
            raise ValueError(f"Unknown role in requirement: {role!r}")
        return cls(minimum_tier=tier(role))

    @classmethod
    def one_of(cls, *roles: str) -> "RoleRequirement":
        unknown = [r for r in roles if not is_known_role(r)]
        if unknown or not roles:
            raise ValueError(f"Unknown roles in requirement: {unknown!r}")
        return cls(allowed=frozenset(roles))

    def allows(self, role: Optional[str]) -> bool:
        if self.allowed is not None:
            return (role or "") in self.allowed
        return tier(role) >= self.minimum_tier

    def describe(self) -> str:
        if self.allowed is not None:
            return "one of: " + ", ".join(sorted(self.allowed, key=tier))
        names = [name for name, level in ROLE_TIERS.items() if level == self.minimum_tier]
        return f"at least: {names[0] if names else self.minimum_tier}"


def can_grant(caller_role: Optional[str], target_role: str) -> bool:
    """
    Only a top-tier caller may hand out the top tier. Below that, a caller
    must be at least Admin and cannot grant above their own tier.
    """
    if is_top_tier(target_role):
        return is_top_tier(caller_role)
    return tier(caller_role) >= tier(ADMIN) and tier(caller_role) >= tier(target_role)
