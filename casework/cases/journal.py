"""Case journal: which log entries the player can currently read.

A log entry is shown when its case is in one of the entry's display
statuses and the entry's own conditions hold in that case's context.
"""

from __future__ import annotations
from typing import List

from .dsl import check_all
from .model import CaseDefinition, CaseLogEntry, CaseOverallStatus, ObjectiveStatus

_STATUS_LABELS = {
    CaseOverallStatus.INACTIVE: "Available",
    CaseOverallStatus.IN_PROGRESS: "In progress",
    CaseOverallStatus.SUCCESSFUL: "Solved",
    CaseOverallStatus.FAILED: "Failed",
}

_OBJECTIVE_MARKERS = {
    ObjectiveStatus.ACTIVE: "→",
    ObjectiveStatus.COMPLETED: "✓",
    ObjectiveStatus.FAILED: "✗",
}


def visible_log_entries(engine, case_id: str) -> List[CaseLogEntry]:
    """Log entries of a case that are visible right now, in authored order.

    Args:
        engine: CaseEngine
        case_id: Case to read the log of

    Returns:
        Visible entries (empty for unknown cases)
    """
    definition = engine.registry.get(case_id)
    if definition is None:
        return []
    status = engine.get_case_overall_status(definition.case_id)
    return [
        entry for entry in definition.log
        if status in entry.display_on_status
        and engine.are_conditions_met(entry.trigger_to_show, definition.case_id)
    ]


def journal_lines(engine) -> List[str]:
    """Get formatted journal lines for every case known to the player.

    Returns:
        List of journal lines for display
    """
    lines = []
    known = [d for d in engine.registry
             if engine.get_case_overall_status(d.case_id) is not CaseOverallStatus.UNAVAILABLE]

    if not known:
        lines.append("No cases yet.")
        return lines

    lines.append("=== Case Journal ===")
    for definition in known:
        _add_case_entry(engine, definition, lines)
    return lines


def _add_case_entry(engine, definition: CaseDefinition, lines: List[str]) -> None:
    status = engine.get_case_overall_status(definition.case_id)
    lines.append(f"\n{definition.display_name} [{_STATUS_LABELS[status]}]")

    if definition.provider_npc_id:
        lines.append(f"   Client: {definition.provider_npc_id}")

    if definition.description:
        lines.append(f"   {definition.description}")

    for objective in definition.objectives:
        objective_status = engine.get_objective_status(definition.case_id, objective.objective_id)
        marker = _OBJECTIVE_MARKERS.get(objective_status)
        if marker is None:
            # inactive objectives stay hidden
            continue
        optional = " (optional)" if objective.is_optional else ""
        lines.append(f"   {marker} {objective.text or objective.objective_id}{optional}")

    for entry in visible_log_entries(engine, definition.case_id):
        lines.append(f"   • {entry.text}")
