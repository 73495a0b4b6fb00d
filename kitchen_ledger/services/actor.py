from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Actor:
    """The caller of a workflow operation, as vouched for by the auth layer."""
    user_id: int
    role: str

    def is_privileged(self, privileged_roles: Iterable[str]) -> bool:
        return (self.role or '').upper() in {r.upper() for r in privileged_roles}
