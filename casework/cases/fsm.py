"""Finite State Machine for case and objective progression.

Case states: UNAVAILABLE -> INACTIVE -> IN_PROGRESS -> SUCCESSFUL | FAILED
Objective states: INACTIVE -> ACTIVE -> COMPLETED

Each function takes a case definition and the engine. Status writes go
through ``engine.transition_case`` / ``engine.transition_objective`` so
that events and rewards follow every change.
"""

from __future__ import annotations
import logging

from .dsl import check_all
from .model import CaseDefinition, CaseOverallStatus, ObjectiveStatus

logger = logging.getLogger(__name__)


def can_make_available(definition: CaseDefinition, engine) -> bool:
    if engine.progress.case_status(definition.case_id) is not CaseOverallStatus.UNAVAILABLE:
        return False
    return check_all(definition.make_available, engine, definition.case_id)


def can_start(definition: CaseDefinition, engine) -> bool:
    """Check if a case can be started.

    Unavailable cases may be started too (explicit activation skips the
    availability gate).
    """
    status = engine.progress.case_status(definition.case_id)
    if status not in (CaseOverallStatus.UNAVAILABLE, CaseOverallStatus.INACTIVE):
        return False
    return check_all(definition.start_case, engine, definition.case_id)


def make_available(definition: CaseDefinition, engine) -> bool:
    if not can_make_available(definition, engine):
        return False
    return engine.transition_case(definition, CaseOverallStatus.INACTIVE)


def start_case(definition: CaseDefinition, engine) -> bool:
    """Start a case whose start conditions are met.

    Objectives whose activation conditions already hold become ACTIVE
    right away, before the case itself moves to IN_PROGRESS.

    Returns:
        True if the case was started
    """
    if not can_start(definition, engine):
        return False

    case_id = definition.case_id
    for objective in definition.objectives:
        if engine.progress.objective_status(case_id, objective.objective_id) is not ObjectiveStatus.INACTIVE:
            continue
        if check_all(objective.activate, engine, case_id, objective.objective_id):
            engine.transition_objective(definition, objective, ObjectiveStatus.ACTIVE)

    return engine.transition_case(definition, CaseOverallStatus.IN_PROGRESS)


def advance_objectives(definition: CaseDefinition, engine) -> bool:
    """Move every objective at most one step forward.

    Returns:
        True if any objective changed status
    """
    changed = False
    case_id = definition.case_id
    for objective in definition.objectives:
        status = engine.progress.objective_status(case_id, objective.objective_id)
        if status is ObjectiveStatus.INACTIVE:
            if check_all(objective.activate, engine, case_id, objective.objective_id):
                changed |= engine.transition_objective(definition, objective, ObjectiveStatus.ACTIVE)
        elif status is ObjectiveStatus.ACTIVE:
            if check_all(objective.complete, engine, case_id, objective.objective_id):
                changed |= engine.transition_objective(definition, objective, ObjectiveStatus.COMPLETED)
    return changed


def primary_objectives_complete(definition: CaseDefinition, engine) -> bool:
    """True when every non-optional objective is COMPLETED (vacuously true without objectives)."""
    for objective in definition.primary_objectives():
        status = engine.progress.objective_status(definition.case_id, objective.objective_id)
        if status is not ObjectiveStatus.COMPLETED:
            logger.debug("Case '%s': primary objective '%s' is %s",
                         definition.case_id, objective.objective_id, status.name)
            return False
    return True


def resolve_outcome(definition: CaseDefinition, engine) -> bool:
    """Decide success or failure of an in-progress case.

    Failure wins over success. Success needs the success conditions
    (vacuous when empty) and every primary objective completed.

    Returns:
        True if the case reached a terminal status
    """
    case_id = definition.case_id
    if engine.progress.case_status(case_id) is not CaseOverallStatus.IN_PROGRESS:
        return False

    if definition.failure and check_all(definition.failure, engine, case_id):
        logger.info("Case '%s': failure conditions met", case_id)
        return engine.transition_case(definition, CaseOverallStatus.FAILED)

    if not check_all(definition.success, engine, case_id):
        return False

    if not definition.objectives:
        logger.debug("Case '%s' has no objectives; success depends on its success conditions only", case_id)

    if primary_objectives_complete(definition, engine):
        return engine.transition_case(definition, CaseOverallStatus.SUCCESSFUL)

    logger.debug("Case '%s' met its success conditions but primary objectives are incomplete", case_id)
    return False


def step(definition: CaseDefinition, engine) -> bool:
    """Apply one stage of the case state machine.

    Only the stage matching the current status runs; later stages are
    picked up by the next pass of the re-evaluation loop.

    Returns:
        True if any status changed
    """
    status = engine.progress.case_status(definition.case_id)

    if status is CaseOverallStatus.UNAVAILABLE:
        return make_available(definition, engine)

    if status is CaseOverallStatus.INACTIVE:
        return start_case(definition, engine)

    if status is CaseOverallStatus.IN_PROGRESS:
        changed = advance_objectives(definition, engine)
        changed |= resolve_outcome(definition, engine)
        return changed

    # SUCCESSFUL / FAILED are terminal
    return False
