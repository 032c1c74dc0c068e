import itertools

import pytest

from taskspace.workspace.errors import Forbidden
from taskspace.workspace.permissions import (
    PermissionMatrix,
    PermissionRule,
    is_allowed,
)
from taskspace.workspace.schema.enums import PermissionAction, ResourceKind, WorkspaceRole

OWNER, ADMIN, MEMBER = WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.MEMBER
ALL = {OWNER, ADMIN, MEMBER}
MANAGERS = {OWNER, ADMIN}

PLAIN_KINDS = (ResourceKind.SECTION, ResourceKind.TASK, ResourceKind.PROJECT)

# (action, resource kind, target role) -> roles allowed
EXPECTED = {
    **{(PermissionAction.CREATE, kind, None): ALL for kind in PLAIN_KINDS},
    **{(PermissionAction.UPDATE, kind, None): ALL for kind in PLAIN_KINDS},
    **{(PermissionAction.DELETE, kind, None): MANAGERS for kind in PLAIN_KINDS},
    (PermissionAction.ADD_MEMBER, ResourceKind.MEMBER, MEMBER): MANAGERS,
    (PermissionAction.ADD_MEMBER, ResourceKind.MEMBER, ADMIN): {OWNER},
    (PermissionAction.ADD_MEMBER, ResourceKind.MEMBER, OWNER): set(),
    (PermissionAction.REMOVE_MEMBER, ResourceKind.MEMBER, MEMBER): MANAGERS,
    (PermissionAction.REMOVE_MEMBER, ResourceKind.MEMBER, ADMIN): MANAGERS,
    (PermissionAction.CHANGE_ROLE, ResourceKind.MEMBER, MEMBER): {OWNER},
    (PermissionAction.CHANGE_ROLE, ResourceKind.MEMBER, ADMIN): {OWNER},
    # Privileged, workspace-scoped kinds
    (PermissionAction.CREATE, ResourceKind.WORKSPACE_GOAL, None): MANAGERS,
    (PermissionAction.UPDATE, ResourceKind.WORKSPACE_GOAL, None): MANAGERS,
    (PermissionAction.DELETE, ResourceKind.WORKSPACE_GOAL, None): MANAGERS,
    (PermissionAction.CREATE, ResourceKind.PORTFOLIO, None): MANAGERS,
    (PermissionAction.UPDATE, ResourceKind.PORTFOLIO, None): MANAGERS,
    (PermissionAction.DELETE, ResourceKind.PORTFOLIO, None): MANAGERS,
    (PermissionAction.CREATE, ResourceKind.WORKSPACE, None): MANAGERS,
    (PermissionAction.UPDATE, ResourceKind.WORKSPACE, None): MANAGERS,
    (PermissionAction.DELETE, ResourceKind.WORKSPACE, None): {OWNER},
    # Personal kinds
    (PermissionAction.CREATE, ResourceKind.PERSONAL_GOAL, None): ALL,
    (PermissionAction.UPDATE, ResourceKind.PERSONAL_GOAL, None): ALL,
    (PermissionAction.DELETE, ResourceKind.PERSONAL_GOAL, None): ALL,
    # Member records are never edited as plain resources
    (PermissionAction.CREATE, ResourceKind.MEMBER, None): set(),
    (PermissionAction.UPDATE, ResourceKind.MEMBER, None): set(),
    (PermissionAction.DELETE, ResourceKind.MEMBER, None): set(),
}


@pytest.mark.parametrize(
    ("key", "role"),
    [(key, role) for key in EXPECTED for role in WorkspaceRole],
    ids=lambda value: getattr(value, "value", None) or "-".join(
        getattr(part, "value", "any") for part in value
    ),
)
def test_default_matrix_table(key, role):
    action, kind, target_role = key
    assert is_allowed(role, action, kind, target_role) is (role in EXPECTED[key])


def test_matrix_is_total_over_enum_inputs():
    matrix = PermissionMatrix()
    targets = [None, *WorkspaceRole]
    for role, action, kind, target in itertools.product(
        WorkspaceRole, PermissionAction, ResourceKind, targets
    ):
        assert isinstance(matrix.is_allowed(role, action, kind, target), bool)


def test_admin_adding_admin_is_denied_while_adding_member_is_allowed():
    assert is_allowed("admin", "add_member", "member", "member") is True
    assert is_allowed("admin", "add_member", "member", "admin") is False


@pytest.mark.parametrize(
    "args",
    [
        ("guest", "create", "section"),
        ("owner", "fly", "section"),
        ("owner", "create", "spaceship"),
        ("owner", "add_member", "member", "superuser"),
    ],
)
def test_unknown_values_are_denied(args):
    assert is_allowed(*args) is False


def test_empty_rule_table_denies_everything():
    matrix = PermissionMatrix(rules=())
    assert matrix.is_allowed(OWNER, PermissionAction.CREATE, ResourceKind.SECTION) is False


def test_most_specific_rule_wins():
    matrix = PermissionMatrix(
        rules=(
            PermissionRule(PermissionAction.CREATE, frozenset()),
            PermissionRule(PermissionAction.CREATE, frozenset({MEMBER}), resource_kind=ResourceKind.TASK),
        )
    )
    assert matrix.is_allowed(MEMBER, PermissionAction.CREATE, ResourceKind.TASK) is True
    assert matrix.is_allowed(MEMBER, PermissionAction.CREATE, ResourceKind.SECTION) is False


def test_equally_specific_rules_are_intersected():
    matrix = PermissionMatrix(
        rules=(
            PermissionRule(PermissionAction.UPDATE, frozenset(ALL), resource_kind=ResourceKind.TASK),
            PermissionRule(PermissionAction.UPDATE, frozenset({OWNER}), resource_kind=ResourceKind.TASK),
        )
    )
    decision = matrix.explain(ADMIN, PermissionAction.UPDATE, ResourceKind.TASK)

    assert decision.allowed is False
    assert decision.allowed_roles == frozenset({OWNER})
    assert len(decision.rules) == 2


def test_require_raises_forbidden_with_allowed_roles_in_message():
    matrix = PermissionMatrix()
    matrix.require(OWNER, PermissionAction.CHANGE_ROLE, ResourceKind.MEMBER, ADMIN)

    with pytest.raises(Forbidden, match="Only workspace owners may change_role member"):
        matrix.require(ADMIN, PermissionAction.CHANGE_ROLE, ResourceKind.MEMBER, MEMBER)

    with pytest.raises(Forbidden, match="No workspace role may"):
        matrix.require(OWNER, PermissionAction.DELETE, ResourceKind.MEMBER)


def test_require_with_unknown_strings_raises_forbidden():
    with pytest.raises(Forbidden, match="fly"):
        PermissionMatrix().require("owner", "fly", "section")


def test_role_rank_orders_roles():
    assert OWNER.outranks(ADMIN)
    assert ADMIN.outranks(MEMBER)
    assert not MEMBER.outranks(OWNER)
