"""Declarative condition evaluation for the case engine.

Supported condition types:
- FlagIsSet: compare a global flag with the required value
- ObjectiveCompleted: check whether an objective (of this or another case) is completed
- CaseStatusIs: compare the overall status of this or another case
- PlayerLevel: stub, always holds
- PlayerAcceptsQuestDialogue: event marker, always holds

A list of conditions holds when every condition holds; an empty or absent
list holds vacuously. Malformed conditions never hold.
"""

from __future__ import annotations
import logging
from typing import Iterable, Optional

from .model import (
    CaseStatusIs,
    FlagIsSet,
    ObjectiveCompleted,
    ObjectiveStatus,
    PlayerAcceptsQuestDialogue,
    PlayerLevel,
    TriggerCondition,
)

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


def check(condition: TriggerCondition, state, case_id: Optional[str],
          objective_id: Optional[str] = None) -> bool:
    """Check if a single condition is met.

    Args:
        condition: The condition to evaluate
        state: Object exposing ``facts``, ``progress`` and ``registry``
            (normally the ``CaseEngine``)
        case_id: Case the condition belongs to, used when the condition
            does not name a target case itself
        objective_id: Objective the condition belongs to, if any

    Returns:
        True if condition is satisfied, False otherwise
    """
    context_case = _clean(case_id)

    if isinstance(condition, FlagIsSet):
        flag_id = _clean(condition.flag_id)
        if not flag_id:
            logger.warning("FlagIsSet condition in case '%s' has no flag id", context_case)
            return False
        return state.facts.get_global_flag(flag_id) == condition.required

    elif isinstance(condition, ObjectiveCompleted):
        target_objective = _clean(condition.objective_id)
        if not target_objective:
            logger.warning("ObjectiveCompleted condition in case '%s' has no objective id", context_case)
            return False
        target_case = _clean(condition.case_id) or context_case
        if not target_case:
            logger.warning("ObjectiveCompleted condition for objective '%s' has no case to check",
                           target_objective)
            return False
        if target_case not in state.registry:
            logger.warning("ObjectiveCompleted condition references unknown case '%s'", target_case)
        completed = state.progress.objective_status(target_case, target_objective) is ObjectiveStatus.COMPLETED
        return completed == condition.required

    elif isinstance(condition, CaseStatusIs):
        target_case = _clean(condition.case_id) or context_case
        if not target_case:
            logger.warning("CaseStatusIs condition has no case to check")
            return False
        if condition.status is None:
            logger.warning("CaseStatusIs condition on case '%s' has no valid target status", target_case)
            return False
        if target_case not in state.registry:
            logger.warning("CaseStatusIs condition references unknown case '%s'", target_case)
        return state.progress.case_status(target_case) is condition.status

    elif isinstance(condition, PlayerLevel):
        # No player leveling yet
        logger.debug("PlayerLevel condition (min %d) is not implemented; treating as met",
                     condition.min_level)
        return True

    elif isinstance(condition, PlayerAcceptsQuestDialogue):
        return True

    logger.warning("Unknown trigger condition %r in case '%s'", condition, context_case)
    return False


def check_all(conditions: Optional[Iterable[TriggerCondition]], state, case_id: Optional[str],
              objective_id: Optional[str] = None) -> bool:
    """Check if all conditions in a list are met.

    Args:
        conditions: Conditions to evaluate; None or empty means no gating
        state: Engine state (see ``check``)
        case_id: Context case id
        objective_id: Context objective id, if any

    Returns:
        True if all conditions are satisfied, False otherwise
    """
    if not conditions:
        return True
    return all(check(condition, state, case_id, objective_id) for condition in conditions)
