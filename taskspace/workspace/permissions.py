"""Declarative permission matrix for workspace roles.

The matrix is a table of :class:`PermissionRule` entries. A rule applies to an
action and may be narrowed to a resource kind and, for membership actions, to
the role being granted. Among the rules matching a request the most specific
ones decide; when several rules are equally specific their allowed roles are
intersected, so the restrictive rule wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import Forbidden
from .schema.enums import PermissionAction, ResourceKind, WorkspaceRole

__all__ = [
    "PermissionRule",
    "PermissionDecision",
    "PermissionMatrix",
    "DEFAULT_RULES",
    "PRIVILEGED_KINDS",
    "PERSONAL_KINDS",
    "is_allowed",
]

Action = PermissionAction
Kind = ResourceKind
Role = WorkspaceRole

EVERYONE = frozenset(Role)
MANAGERS = frozenset({Role.OWNER, Role.ADMIN})
OWNER_ONLY = frozenset({Role.OWNER})
NOBODY: frozenset[WorkspaceRole] = frozenset()

RESOURCE_ACTIONS = (Action.CREATE, Action.UPDATE, Action.DELETE)

# Workspace-scoped objects; classified by the caller before the lookup.
PRIVILEGED_KINDS = (Kind.WORKSPACE, Kind.WORKSPACE_GOAL, Kind.PORTFOLIO)
PERSONAL_KINDS = (Kind.PERSONAL_GOAL,)


@dataclass(frozen=True)
class PermissionRule:
    """One row of the matrix."""

    action: PermissionAction
    allowed: frozenset[WorkspaceRole]
    resource_kind: Optional[ResourceKind] = None
    target_role: Optional[WorkspaceRole] = None

    @property
    def specificity(self) -> int:
        return int(self.resource_kind is not None) + int(self.target_role is not None)

    def matches(
        self,
        action: PermissionAction,
        resource_kind: ResourceKind,
        target_role: Optional[WorkspaceRole],
    ) -> bool:
        if self.action is not action:
            return False
        if self.resource_kind is not None and self.resource_kind is not resource_kind:
            return False
        if self.target_role is not None and self.target_role is not target_role:
            return False
        return True


DEFAULT_RULES: tuple[PermissionRule, ...] = (
    # Plain resources (sections, tasks, projects)
    PermissionRule(Action.CREATE, EVERYONE),
    PermissionRule(Action.UPDATE, EVERYONE),
    PermissionRule(Action.DELETE, MANAGERS),
    *(
        PermissionRule(action, MANAGERS, resource_kind=kind)
        for action in RESOURCE_ACTIONS
        for kind in PRIVILEGED_KINDS
    ),
    # Ties with the privileged DELETE row above; intersection leaves owner.
    PermissionRule(Action.DELETE, OWNER_ONLY, resource_kind=Kind.WORKSPACE),
    *(
        PermissionRule(action, EVERYONE, resource_kind=kind)
        for action in RESOURCE_ACTIONS
        for kind in PERSONAL_KINDS
    ),
    # Member records only change through the membership actions.
    *(
        PermissionRule(action, NOBODY, resource_kind=Kind.MEMBER)
        for action in RESOURCE_ACTIONS
    ),
    # Membership
    PermissionRule(Action.ADD_MEMBER, MANAGERS),
    PermissionRule(Action.ADD_MEMBER, MANAGERS, target_role=Role.MEMBER),
    PermissionRule(Action.ADD_MEMBER, OWNER_ONLY, target_role=Role.ADMIN),
    PermissionRule(Action.ADD_MEMBER, NOBODY, target_role=Role.OWNER),
    PermissionRule(Action.REMOVE_MEMBER, MANAGERS),
    PermissionRule(Action.CHANGE_ROLE, OWNER_ONLY),
)


@dataclass(frozen=True)
class PermissionDecision:
    """Outcome of a matrix lookup together with the rules that decided it."""

    allowed: bool
    allowed_roles: frozenset[WorkspaceRole]
    rules: tuple[PermissionRule, ...]


class PermissionMatrix:
    """Pure lookup over a rule table; no I/O and no state besides the rules."""

    def __init__(self, rules: tuple[PermissionRule, ...] = DEFAULT_RULES) -> None:
        self.rules = rules

    def explain(
        self,
        role: WorkspaceRole | str,
        action: PermissionAction | str,
        resource_kind: ResourceKind | str,
        target_role: WorkspaceRole | str | None = None,
    ) -> PermissionDecision:
        try:
            role = Role(role)
            action = Action(action)
            resource_kind = Kind(resource_kind)
            target_role = Role(target_role) if target_role is not None else None
        except ValueError:
            return PermissionDecision(False, NOBODY, ())

        matching = [
            rule for rule in self.rules if rule.matches(action, resource_kind, target_role)
        ]
        if not matching:
            return PermissionDecision(False, NOBODY, ())

        top = max(rule.specificity for rule in matching)
        deciding = tuple(rule for rule in matching if rule.specificity == top)
        allowed_roles = frozenset.intersection(*(rule.allowed for rule in deciding))
        return PermissionDecision(role in allowed_roles, allowed_roles, deciding)

    def is_allowed(
        self,
        role: WorkspaceRole | str,
        action: PermissionAction | str,
        resource_kind: ResourceKind | str,
        target_role: WorkspaceRole | str | None = None,
    ) -> bool:
        return self.explain(role, action, resource_kind, target_role).allowed

    def require(
        self,
        role: WorkspaceRole | str,
        action: PermissionAction | str,
        resource_kind: ResourceKind | str,
        target_role: WorkspaceRole | str | None = None,
    ) -> None:
        """Raise :class:`Forbidden` unless *role* may perform the action."""

        decision = self.explain(role, action, resource_kind, target_role)
        if decision.allowed:
            return
        raise Forbidden(_denial_message(decision, action, resource_kind, target_role))


def _denial_message(
    decision: PermissionDecision,
    action: PermissionAction | str,
    resource_kind: ResourceKind | str,
    target_role: WorkspaceRole | str | None,
) -> str:
    what = f"{_label(action)} {_label(resource_kind)}"
    if target_role is not None:
        what += f" with role {_label(target_role)}"
    if not decision.allowed_roles:
        return f"No workspace role may {what}"
    ordered = sorted(decision.allowed_roles, key=lambda r: r.rank, reverse=True)
    holders = " and ".join(f"{r.value}s" for r in ordered)
    return f"Only workspace {holders} may {what}"


def _label(value: object) -> str:
    return str(getattr(value, "value", value))


_DEFAULT_MATRIX = PermissionMatrix()


def is_allowed(
    role: WorkspaceRole | str,
    action: PermissionAction | str,
    resource_kind: ResourceKind | str,
    target_role: WorkspaceRole | str | None = None,
) -> bool:
    """Check *role* against the default matrix."""

    return _DEFAULT_MATRIX.is_allowed(role, action, resource_kind, target_role)
