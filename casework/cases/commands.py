"""Dialogue hooks into the case engine.

Dialogue nodes gate themselves on case progress (prerequisites) and push
progress when they complete (actions). Both are plain data here and are
resolved against a ``CaseEngine``.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .model import ActionResult, CaseOverallStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DialogueAction:
    """An action attached to a dialogue node.

    action_type is one of "CompleteObjective", "SetFlag", "SetCaseFlag",
    "ActivateCase".
    """
    action_type: str
    case_id: Optional[str] = None
    objective_id: Optional[str] = None
    flag_id: Optional[str] = None
    flag_value: bool = True


@dataclass(frozen=True)
class DialoguePrerequisites:
    """Conditions for a dialogue node to be offered."""
    required_nodes: List[str] = field(default_factory=list)
    required_global_flag: Optional[str] = None
    case_statuses: Dict[str, str] = field(default_factory=dict)  # case id -> status name


def apply_dialogue_action(engine, action: DialogueAction) -> ActionResult:
    """Apply one dialogue action to the engine.

    Args:
        engine: CaseEngine
        action: Action to apply

    Returns:
        Result of the underlying engine call
    """
    action_type = (action.action_type or "").strip()

    if action_type == "CompleteObjective":
        return engine.complete_objective_from_external_action(action.case_id, action.objective_id)

    elif action_type == "SetFlag":
        return engine.set_global_flag(action.flag_id, action.flag_value)

    elif action_type == "SetCaseFlag":
        return engine.set_case_flag(action.case_id, action.flag_id, action.flag_value)

    elif action_type == "ActivateCase":
        return engine.activate_case(action.case_id)

    logger.warning("Unknown dialogue action type %r", action.action_type)
    return ActionResult.PRECONDITION_NOT_MET


def apply_dialogue_actions(engine, actions: Iterable[DialogueAction]) -> List[ActionResult]:
    return [apply_dialogue_action(engine, action) for action in actions]


def dialogue_available(engine, prerequisites: Optional[DialoguePrerequisites]) -> bool:
    """Check whether a dialogue node's prerequisites hold.

    Args:
        engine: CaseEngine
        prerequisites: Node prerequisites; None means always available

    Returns:
        True if every visited-node, flag and case-status requirement holds
    """
    if prerequisites is None:
        return True

    for node_id in prerequisites.required_nodes:
        if not engine.facts.has_visited_node(node_id):
            return False

    if prerequisites.required_global_flag and not engine.check_global_flag(prerequisites.required_global_flag):
        return False

    for case_id, status_name in prerequisites.case_statuses.items():
        required = CaseOverallStatus.parse(status_name)
        if required is None:
            logger.warning("Dialogue prerequisite names unknown status %r for case '%s'", status_name, case_id)
            return False
        if engine.get_case_overall_status(case_id) is not required:
            return False

    return True
