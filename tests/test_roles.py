# tests/test_roles.py
import pytest

from hrms_notify.core.roles import (
    ADMIN,
    EMPLOYEE,
    ROLE_TIERS,
    SUPER_ADMIN,
    TOP_TIER,
    RoleRequirement,
    can_grant,
    tier,
)

ALL_ROLES = [EMPLOYEE, ADMIN, SUPER_ADMIN, "Intern", "", None]


class TestTier:

    def test_known_roles_are_ordered(self):
        assert tier(EMPLOYEE) < tier(ADMIN) < tier(SUPER_ADMIN) == TOP_TIER

    @pytest.mark.parametrize("role", ["Intern", "superadmin", "", None, "Admin "])
    def test_unknown_roles_resolve_to_lowest_tier(self, role):
        assert tier(role) == 0


class TestRoleRequirement:

    def test_at_least_admits_equal_and_higher(self):
        requirement = RoleRequirement.at_least(ADMIN)
        assert requirement.allows(ADMIN)
        assert requirement.allows(SUPER_ADMIN)
        assert not requirement.allows(EMPLOYEE)

    def test_unknown_role_never_passes_a_tiered_check(self):
        requirement = RoleRequirement.at_least(EMPLOYEE)
        assert not requirement.allows("Contractor")
        assert not requirement.allows(None)

    def test_tier_zero_requirement_admits_unknown_roles(self):
        assert RoleRequirement(minimum_tier=0).allows("Contractor")

    def test_one_of_is_exact_membership(self):
        requirement = RoleRequirement.one_of(EMPLOYEE, SUPER_ADMIN)
        assert requirement.allows(EMPLOYEE)
        assert requirement.allows(SUPER_ADMIN)
        # membership, not hierarchy: Admin is between them but not listed
        assert not requirement.allows(ADMIN)
        assert not requirement.allows("Contractor")

    def test_requirements_are_compiled_from_the_tier_table(self):
        with pytest.raises(ValueError):
            RoleRequirement.at_least("Manager")
        with pytest.raises(ValueError):
            RoleRequirement.one_of(ADMIN, "Manager")
        with pytest.raises(ValueError):
            RoleRequirement.one_of()

    def test_describe(self):
        assert RoleRequirement.at_least(ADMIN).describe() == "at least: Admin"
        assert RoleRequirement.one_of(SUPER_ADMIN, ADMIN).describe() == "one of: Admin, SuperAdmin"


class TestGrant:

    @pytest.mark.parametrize("caller", ALL_ROLES)
    def test_only_top_tier_grants_top_tier(self, caller):
        assert can_grant(caller, SUPER_ADMIN) is (caller == SUPER_ADMIN)

    @pytest.mark.parametrize(
        "caller,target,allowed",
        [
            (SUPER_ADMIN, ADMIN, True),
            (SUPER_ADMIN, EMPLOYEE, True),
            (ADMIN, ADMIN, True),
            (ADMIN, EMPLOYEE, True),
            (EMPLOYEE, EMPLOYEE, False),
            (EMPLOYEE, ADMIN, False),
            ("Intern", EMPLOYEE, False),
        ],
    )
    def test_lower_tiers(self, caller, target, allowed):
        assert can_grant(caller, target) is allowed

    def test_every_role_in_table_has_positive_tier(self):
        assert all(level > 0 for level in ROLE_TIERS.values())
