"""
Role rank policy.

Lower rank means more senior. Unknown roles rank lowest. A user may assign
work to users whose rank is the same as or below their own.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from sheetdesk.config import DEFAULT_ROLE_RANKS
from sheetdesk.domain.models import Role, User

UNKNOWN_RANK = 99


def _normalise(role: Optional[str]) -> str:
    return (role or "").strip().lower()


class RoleHierarchy:
    def __init__(self, ranks: Optional[Mapping[str, int]] = None, unknown_rank: int = UNKNOWN_RANK):
        source = DEFAULT_ROLE_RANKS if ranks is None else ranks
        self.ranks = {_normalise(name): int(rank) for name, rank in source.items()}
        self.unknown_rank = unknown_rank

    def rank(self, role: Optional[str]) -> int:
        return self.ranks.get(_normalise(role), self.unknown_rank)

    def can_assign(self, actor_role: Optional[str], target_role: Optional[str]) -> bool:
        return self.rank(target_role) >= self.rank(actor_role)

    def assignable(self, users: Iterable[User], actor_role: Optional[str]) -> List[User]:
        """Users the actor may assign work to."""
        return [u for u in users if self.can_assign(actor_role, u.role)]


def group_roles_by_level(roles: Iterable[Role], levels: Iterable[int] = range(1, 6)) -> dict[int, List[Role]]:
    """Roles bucketed by level, for the role overview."""
    pool = list(roles)
    return {level: [r for r in pool if r.level == level] for level in levels}


__all__ = ["RoleHierarchy", "UNKNOWN_RANK", "group_roles_by_level"]
