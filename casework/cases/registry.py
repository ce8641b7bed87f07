"""Runtime registry of loaded case definitions.

In-memory index from case id to its immutable definition, built once at
startup. Registration order is kept so every evaluation pass visits the
cases in the same order.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Dict, Iterable, Iterator, Optional

from .model import CaseDefinition, ObjectiveDefinition

logger = logging.getLogger(__name__)


class CaseRegistry:
    def __init__(self, definitions: Iterable[CaseDefinition] = ()):
        self._cases: Dict[str, CaseDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: CaseDefinition) -> bool:
        """Add a definition. Empty and duplicate ids are skipped (first one wins)."""
        case_id = (definition.case_id or "").strip()
        if not case_id:
            logger.warning("Skipping case definition with empty id (name: %r)", definition.name)
            return False
        if case_id in self._cases:
            logger.warning("Duplicate case id '%s' (%r); keeping the first registered (%r)",
                           case_id, definition.name, self._cases[case_id].name)
            return False
        if definition.case_id != case_id:
            definition = replace(definition, case_id=case_id)
        self._cases[case_id] = definition
        return True

    def get(self, case_id: Optional[str]) -> Optional[CaseDefinition]:
        if not case_id:
            return None
        return self._cases.get(case_id.strip())

    def get_objective_definition(self, case_id: str, objective_id: str) -> Optional[ObjectiveDefinition]:
        definition = self.get(case_id)
        if definition is None:
            logger.warning("Objective lookup for unknown case '%s'", case_id)
            return None
        objective = definition.get_objective(objective_id)
        if objective is None:
            logger.warning("Objective '%s' not found in case '%s'", objective_id, case_id)
        return objective

    def __contains__(self, case_id: object) -> bool:
        return isinstance(case_id, str) and case_id.strip() in self._cases

    def __iter__(self) -> Iterator[CaseDefinition]:
        return iter(list(self._cases.values()))

    def __len__(self) -> int:
        return len(self._cases)

    def ids(self):
        return list(self._cases)
