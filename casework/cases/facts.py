"""Fact store: global flags, skill levels and a few player-profile facts.

Pure storage. Reads are total and default to the absent value (False, 0).
Writes that should drive case progression go through ``CaseEngine``,
which stores the fact here and then re-evaluates every case.
"""

from __future__ import annotations
from typing import Dict, Mapping, Optional, Set

from config import get_default_skills

POLICE_REPUTATION_MIN = -1.0
POLICE_REPUTATION_MAX = 1.0


class FactStore:
    """Global facts owned by the case engine."""

    def __init__(self, skills: Optional[Mapping[str, int]] = None):
        self.global_flags: Dict[str, bool] = {}
        self.skills: Dict[str, int] = dict(get_default_skills() if skills is None else skills)
        self.visited_nodes: Set[str] = set()
        self.police_reputation: float = 0.0

    # --- Global flags ---
    def get_global_flag(self, flag_id: str) -> bool:
        return self.global_flags.get(flag_id, False)

    def set_global_flag(self, flag_id: str, value: bool) -> bool:
        """Store a flag. Returns True if the stored value changed."""
        value = bool(value)
        changed = self.get_global_flag(flag_id) != value
        self.global_flags[flag_id] = value
        return changed

    # --- Skills ---
    def get_skill_level(self, name: str) -> int:
        return self.skills.get(name, 0)

    def set_skill_level(self, name: str, level: int) -> None:
        self.skills[name] = level

    def modify_skill_level(self, name: str, delta: int) -> int:
        self.skills[name] = self.get_skill_level(name) + delta
        return self.skills[name]

    def passes_skill_check(self, name: str, difficulty: int) -> bool:
        """Skill checks succeed when the level reaches the difficulty class."""
        return self.get_skill_level(name) >= difficulty

    # --- Dialogue history ---
    def add_visited_node(self, node_id: str) -> None:
        self.visited_nodes.add(node_id)

    def has_visited_node(self, node_id: str) -> bool:
        return node_id in self.visited_nodes

    # --- Police reputation ---
    def update_police_reputation(self, change: float) -> float:
        value = self.police_reputation + change
        self.police_reputation = max(POLICE_REPUTATION_MIN, min(POLICE_REPUTATION_MAX, value))
        return self.police_reputation
