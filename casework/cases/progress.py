"""Per-case dynamic state.

A ``ProgressEntry`` is created lazily the first time a case is referenced
and lives for the rest of the session. ``ProgressTable`` is the only place
statuses are written, and it refuses any write that would move a status
backwards or out of a terminal state.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from .model import CaseDefinition, CaseOverallStatus, ObjectiveStatus, can_advance

logger = logging.getLogger(__name__)


@dataclass
class ProgressEntry:
    """Where one case currently stands."""
    case_id: str
    status: CaseOverallStatus = CaseOverallStatus.UNAVAILABLE
    objectives: Dict[str, ObjectiveStatus] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)

    def objective_status(self, objective_id: str) -> ObjectiveStatus:
        return self.objectives.get(objective_id, ObjectiveStatus.INACTIVE)

    def flag(self, name: str) -> bool:
        return self.flags.get(name, False)


class ProgressTable:
    """Owns every ProgressEntry, keyed by case id."""

    def __init__(self):
        self._entries: Dict[str, ProgressEntry] = {}

    def entry(self, definition: CaseDefinition) -> ProgressEntry:
        """Get the entry for a case, creating it with default statuses if needed."""
        entry = self._entries.get(definition.case_id)
        if entry is None:
            entry = ProgressEntry(case_id=definition.case_id)
            for objective in definition.objectives:
                entry.objectives[objective.objective_id] = ObjectiveStatus.INACTIVE
            self._entries[definition.case_id] = entry
        return entry

    def __contains__(self, case_id: str) -> bool:
        return case_id in self._entries

    def __iter__(self) -> Iterator[ProgressEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    # --- Queries (total, never create entries) ---
    def case_status(self, case_id: str) -> CaseOverallStatus:
        entry = self._entries.get(case_id)
        return entry.status if entry else CaseOverallStatus.UNAVAILABLE

    def objective_status(self, case_id: str, objective_id: str) -> ObjectiveStatus:
        entry = self._entries.get(case_id)
        return entry.objective_status(objective_id) if entry else ObjectiveStatus.INACTIVE

    def case_flag(self, case_id: str, name: str) -> bool:
        entry = self._entries.get(case_id)
        return entry.flag(name) if entry else False

    # --- Mutation ---
    def set_case_status(self, definition: CaseDefinition,
                        new_status: CaseOverallStatus) -> Optional[CaseOverallStatus]:
        """Move a case forward. Returns the old status, or None if nothing changed."""
        entry = self.entry(definition)
        old_status = entry.status
        if old_status is new_status:
            return None
        if not can_advance(old_status, new_status):
            logger.warning("Refusing case '%s' transition %s -> %s",
                           definition.case_id, old_status.name, new_status.name)
            return None
        entry.status = new_status
        return old_status

    def set_objective_status(self, definition: CaseDefinition, objective_id: str,
                             new_status: ObjectiveStatus) -> Optional[ObjectiveStatus]:
        """Move an objective forward. Returns the old status, or None if nothing changed."""
        entry = self.entry(definition)
        old_status = entry.objective_status(objective_id)
        if old_status is new_status:
            return None
        if not can_advance(old_status, new_status):
            logger.warning("Refusing objective '%s' in case '%s' transition %s -> %s",
                           objective_id, definition.case_id, old_status.name, new_status.name)
            return None
        entry.objectives[objective_id] = new_status
        return old_status

    def set_case_flag(self, definition: CaseDefinition, name: str, value: bool) -> bool:
        """Store a case-local flag. Returns True if the stored value changed."""
        entry = self.entry(definition)
        value = bool(value)
        changed = entry.flag(name) != value
        entry.flags[name] = value
        return changed
