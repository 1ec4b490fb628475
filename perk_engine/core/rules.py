"""Mutual-exclusion rules between perks of the same role.

A role's mutex tags mark effects that should not stack in one build
(e.g. two exhaustion perks). Two perks conflict only when they *share* a
mutex tag; holding two different mutex tags is not a conflict.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from perk_engine.catalog import Perk, Role
from perk_engine.core.names import normalize_all

DEFAULT_MUTEX_TAGS: dict[Role, frozenset[str]] = {
    Role.SURVIVOR: frozenset({"exhaustion"}),
    Role.KILLER: frozenset({"scourge_hook"}),
}


@dataclass(frozen=True)
class MutexModel:
    """Static role -> mutex tag mapping with a conflict predicate."""

    tags_by_role: Mapping[Role, frozenset[str]] = field(
        default_factory=lambda: dict(DEFAULT_MUTEX_TAGS)
    )

    @classmethod
    def from_config(cls, section: Mapping[str, Any]) -> MutexModel:
        """Build from a ``{role: [tag, ...]}`` config section.

        Roles missing from ``section`` keep their default tags.
        """
        tags_by_role = dict(DEFAULT_MUTEX_TAGS)
        for raw_role, tags in section.items():
            role = Role.parse(raw_role)
            if tags is None:
                tags = []
            if isinstance(tags, str) or not isinstance(tags, (list, tuple, set)):
                raise ValueError(
                    f"mutex.{raw_role} must be a list of tags, got {type(tags).__name__}"
                )
            tags_by_role[role] = frozenset(str(t) for t in tags)
        return cls(tags_by_role=tags_by_role)

    def tags_for(self, role: Role) -> frozenset[str]:
        """Normalized mutex tags for ``role``."""
        return normalize_all(self.tags_by_role.get(role, frozenset()))

    def shared_tags(self, a: Perk, b: Perk) -> frozenset[str]:
        """Mutex tags held by both perks (empty across roles)."""
        if a.role != b.role:
            return frozenset()
        mutex = self.tags_for(a.role)
        if not mutex:
            return frozenset()
        return normalize_all(a.tags) & normalize_all(b.tags) & mutex

    def conflicts(self, a: Perk, b: Perk) -> bool:
        return bool(self.shared_tags(a, b))

    def conflicts_with_any(self, candidate: Perk, build: Iterable[Perk]) -> bool:
        """True when ``candidate`` conflicts with at least one build member."""
        return any(self.conflicts(candidate, member) for member in build)


DEFAULT_MUTEX = MutexModel()


def conflicts(a: Perk, b: Perk, mutex: MutexModel = DEFAULT_MUTEX) -> bool:
    """True iff ``a`` and ``b`` share a role and a mutex tag of that role."""
    return mutex.conflicts(a, b)
