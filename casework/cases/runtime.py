"""Case engine runtime.

``CaseEngine`` owns the fact store and the progress table, exposes the
query/mutation API used by the rest of the game, and drives the
re-evaluation loop: after every mutation all registered cases are run
through the state machine, pass after pass, until a pass changes nothing.

Create one engine at startup, pass it to whoever needs it, and call
``close()`` at shutdown.
"""

from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterable, List, Optional

from config import get_max_evaluation_passes
from . import fsm
from .dsl import check_all
from .facts import FactStore
from .model import (
    ActionResult,
    CaseDefinition,
    CaseOverallStatus,
    EvaluationReport,
    ObjectiveDefinition,
    ObjectiveStatus,
    TriggerCondition,
    can_advance,
)
from .progress import ProgressTable
from .registry import CaseRegistry
from .rewards import RewardDispatcher

logger = logging.getLogger(__name__)

CaseListener = Callable[[CaseDefinition, CaseOverallStatus, CaseOverallStatus], None]
ObjectiveListener = Callable[[CaseDefinition, ObjectiveDefinition, ObjectiveStatus, ObjectiveStatus], None]


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


def _merge_results(results: List[ActionResult]) -> ActionResult:
    for refusal in (ActionResult.UNKNOWN_OBJECTIVE, ActionResult.PRECONDITION_NOT_MET):
        if refusal in results:
            return refusal
    return ActionResult.APPLIED if ActionResult.APPLIED in results else ActionResult.NO_CHANGE


class CaseEngine:
    """Tracks case and objective progress against the fact store."""

    def __init__(self, registry: CaseRegistry, facts: Optional[FactStore] = None,
                 rewards: Optional[RewardDispatcher] = None, max_passes: Optional[int] = None):
        """Initialize the engine.

        Args:
            registry: Loaded case definitions (read only)
            facts: Fact store to use; a fresh one with default skills otherwise
            rewards: Reward dispatcher; by default rewards are only logged
                (flags are always applied)
            max_passes: Bound on passes per re-evaluation, from config if
                omitted; 0 derives it from the registered cases
        """
        self.registry = registry
        self.facts = facts if facts is not None else FactStore()
        self.progress = ProgressTable()
        self.rewards = rewards if rewards is not None else RewardDispatcher()
        self.max_passes = max_passes if max_passes is not None else get_max_evaluation_passes()
        self.last_report: Optional[EvaluationReport] = None

        self._case_listeners: List[CaseListener] = []
        self._objective_listeners: List[ObjectiveListener] = []
        self._lock = threading.RLock()
        self._evaluating = False
        self._dirty = False
        self._pass_changes = 0

    # --- Observers ---
    def subscribe_case_status(self, listener: CaseListener) -> None:
        """Call ``listener(definition, old, new)`` on every case status change."""
        with self._lock:
            self._case_listeners.append(listener)

    def subscribe_objective_status(self, listener: ObjectiveListener) -> None:
        """Call ``listener(definition, objective, old, new)`` on every objective status change."""
        with self._lock:
            self._objective_listeners.append(listener)

    def unsubscribe(self, listener) -> None:
        with self._lock:
            if listener in self._case_listeners:
                self._case_listeners.remove(listener)
            if listener in self._objective_listeners:
                self._objective_listeners.remove(listener)

    def close(self) -> None:
        with self._lock:
            self._case_listeners.clear()
            self._objective_listeners.clear()

    # --- Queries ---
    def get_case_overall_status(self, case_id: str) -> CaseOverallStatus:
        with self._lock:
            return self.progress.case_status(_clean(case_id))

    def get_objective_status(self, case_id: str, objective_id: str) -> ObjectiveStatus:
        with self._lock:
            return self.progress.objective_status(_clean(case_id), _clean(objective_id))

    def check_global_flag(self, flag_id: str) -> bool:
        with self._lock:
            return self.facts.get_global_flag(_clean(flag_id))

    def is_case_flag_true(self, case_id: str, flag_name: str) -> bool:
        with self._lock:
            return self.progress.case_flag(_clean(case_id), _clean(flag_name))

    def get_skill_level(self, name: str) -> int:
        with self._lock:
            return self.facts.get_skill_level(_clean(name))

    def are_conditions_met(self, conditions: Optional[Iterable[TriggerCondition]], case_id: Optional[str],
                           objective_id: Optional[str] = None) -> bool:
        with self._lock:
            return check_all(conditions, self, case_id, objective_id)

    # --- Input events ---
    def set_global_flag(self, flag_id: str, value: bool = True) -> ActionResult:
        flag_id = _clean(flag_id)
        if not flag_id:
            logger.warning("set_global_flag called with an empty flag id")
            return ActionResult.PRECONDITION_NOT_MET
        with self._mutation():
            changed = self.facts.set_global_flag(flag_id, value)
            logger.debug("Global flag '%s' set to %s", flag_id, bool(value))
        return ActionResult.APPLIED if changed else ActionResult.NO_CHANGE

    def set_case_flag(self, case_id: str, flag_name: str, value: bool = True) -> ActionResult:
        definition = self._definition(case_id, "set_case_flag")
        if definition is None:
            return ActionResult.UNKNOWN_CASE
        flag_name = _clean(flag_name)
        if not flag_name:
            logger.warning("set_case_flag on case '%s' called with an empty flag name", definition.case_id)
            return ActionResult.PRECONDITION_NOT_MET
        with self._mutation():
            changed = self.progress.set_case_flag(definition, flag_name, value)
            logger.debug("Case '%s' flag '%s' set to %s", definition.case_id, flag_name, bool(value))
        return ActionResult.APPLIED if changed else ActionResult.NO_CHANGE

    def set_skill_level(self, name: str, level: int) -> ActionResult:
        name = _clean(name)
        if not name:
            return ActionResult.PRECONDITION_NOT_MET
        with self._mutation():
            self.facts.set_skill_level(name, level)
        return ActionResult.APPLIED

    def modify_skill_level(self, name: str, delta: int) -> ActionResult:
        name = _clean(name)
        if not name:
            return ActionResult.PRECONDITION_NOT_MET
        with self._mutation():
            self.facts.modify_skill_level(name, delta)
        return ActionResult.APPLIED

    def evaluate(self) -> Optional[EvaluationReport]:
        """External "game state changed" event: re-evaluate every case."""
        with self._mutation():
            pass
        return self.last_report

    def activate_case(self, case_id: str) -> ActionResult:
        """Explicitly start a case (player accepted it).

        Only cases that are INACTIVE (or still UNAVAILABLE) and whose start
        conditions hold can be activated.
        """
        definition = self._definition(case_id, "activate_case")
        if definition is None:
            return ActionResult.UNKNOWN_CASE
        with self._mutation():
            status = self.progress.case_status(definition.case_id)
            if status not in (CaseOverallStatus.INACTIVE, CaseOverallStatus.UNAVAILABLE):
                logger.warning("Cannot activate case '%s': status is %s", definition.case_id, status.name)
                return ActionResult.PRECONDITION_NOT_MET
            if not fsm.start_case(definition, self):
                logger.warning("Case '%s' not started: start conditions not met (status %s)",
                               definition.case_id, status.name)
                return ActionResult.PRECONDITION_NOT_MET
        return ActionResult.APPLIED

    def set_case_overall_status(self, case_id: str, status: CaseOverallStatus) -> ActionResult:
        """Force a case status. Same status is a no-op; backwards moves are refused."""
        definition = self._definition(case_id, "set_case_overall_status")
        if definition is None:
            return ActionResult.UNKNOWN_CASE
        with self._lock:
            current = self.progress.case_status(definition.case_id)
            if current is status:
                return ActionResult.NO_CHANGE
            if not can_advance(current, status):
                logger.warning("Refusing to move case '%s' from %s to %s",
                               definition.case_id, current.name, status.name)
                return ActionResult.PRECONDITION_NOT_MET
            with self._mutation():
                self.transition_case(definition, status)
        return ActionResult.APPLIED

    def set_objective_status(self, case_id: str, objective_id: str, status: ObjectiveStatus) -> ActionResult:
        """Force an objective status. Same status is a no-op; backwards moves are refused."""
        definition = self._definition(case_id, "set_objective_status")
        if definition is None:
            return ActionResult.UNKNOWN_CASE
        objective = definition.get_objective(objective_id)
        if objective is None:
            logger.warning("set_objective_status: objective '%s' not found in case '%s'",
                           objective_id, definition.case_id)
            return ActionResult.UNKNOWN_OBJECTIVE
        with self._lock:
            current = self.progress.objective_status(definition.case_id, objective.objective_id)
            if current is status:
                return ActionResult.NO_CHANGE
            if not can_advance(current, status):
                logger.warning("Refusing to move objective '%s' of case '%s' from %s to %s",
                               objective.objective_id, definition.case_id, current.name, status.name)
                return ActionResult.PRECONDITION_NOT_MET
            with self._mutation():
                self.transition_objective(definition, objective, status)
        return ActionResult.APPLIED

    def complete_objective_from_external_action(self, case_id: str, objective_id: Optional[str],
                                                case_flag_to_set: Optional[str] = None) -> ActionResult:
        """Handle an interaction outside the engine, e.g. picking up a clue.

        Tries to complete the objective (if any), then sets the case flag
        (if any); the cases settle once afterwards. The objective is only
        completed while its case is IN_PROGRESS. The flag is set either way.

        Returns:
            A refusal of the objective attempt if there was one, otherwise
            APPLIED if anything changed, otherwise NO_CHANGE
        """
        definition = self._definition(case_id, "complete_objective_from_external_action")
        if definition is None:
            return ActionResult.UNKNOWN_CASE

        results = []
        flag_name = _clean(case_flag_to_set)
        with self._mutation():
            if _clean(objective_id):
                results.append(self._complete_objective(definition, objective_id))
            if flag_name:
                changed = self.progress.set_case_flag(definition, flag_name, True)
                logger.debug("Case '%s' flag '%s' set by external action", definition.case_id, flag_name)
                results.append(ActionResult.APPLIED if changed else ActionResult.NO_CHANGE)
        return _merge_results(results)

    def _complete_objective(self, definition: CaseDefinition, objective_id: str) -> ActionResult:
        objective = definition.get_objective(objective_id)
        if objective is None:
            logger.warning("External action names unknown objective '%s' in case '%s'",
                           objective_id, definition.case_id)
            return ActionResult.UNKNOWN_OBJECTIVE
        case_status = self.progress.case_status(definition.case_id)
        if case_status is not CaseOverallStatus.IN_PROGRESS:
            logger.warning("Objective '%s' not completed: case '%s' is %s",
                           objective.objective_id, definition.case_id, case_status.name)
            return ActionResult.PRECONDITION_NOT_MET
        if self.progress.objective_status(definition.case_id, objective.objective_id).terminal:
            return ActionResult.NO_CHANGE
        self.transition_objective(definition, objective, ObjectiveStatus.COMPLETED)
        return ActionResult.APPLIED

    # --- Transitions (used by fsm) ---
    def transition_case(self, definition: CaseDefinition, new_status: CaseOverallStatus) -> bool:
        """Write a case status, notify listeners and dispatch terminal rewards."""
        old_status = self.progress.set_case_status(definition, new_status)
        if old_status is None:
            return False
        self._pass_changes += 1
        self._dirty = True
        logger.info("Case '%s' status: %s -> %s", definition.display_name, old_status.name, new_status.name)
        self._notify(self._case_listeners, definition, old_status, new_status)

        if new_status is CaseOverallStatus.SUCCESSFUL:
            self.rewards.dispatch(definition.rewards_on_success, self, f"case {definition.case_id} success")
        elif new_status is CaseOverallStatus.FAILED:
            self.rewards.dispatch(definition.rewards_on_failure, self, f"case {definition.case_id} failure")
        return True

    def transition_objective(self, definition: CaseDefinition, objective: ObjectiveDefinition,
                             new_status: ObjectiveStatus) -> bool:
        """Write an objective status, notify listeners and dispatch its completion reward."""
        old_status = self.progress.set_objective_status(definition, objective.objective_id, new_status)
        if old_status is None:
            return False
        self._pass_changes += 1
        self._dirty = True
        logger.info("Objective '%s' in case '%s' status: %s -> %s",
                    objective.objective_id, definition.case_id, old_status.name, new_status.name)
        self._notify(self._objective_listeners, definition, objective, old_status, new_status)

        if new_status is ObjectiveStatus.COMPLETED:
            rewards = definition.optional_rewards.get(objective.objective_id)
            if rewards is not None:
                self.rewards.dispatch(rewards, self,
                                      f"objective {objective.objective_id} of case {definition.case_id}")
        return True

    # --- Re-evaluation loop ---
    @contextmanager
    def _mutation(self):
        """Run a mutation, then settle all cases.

        Nested mutations (from listeners or reward flags during a pass)
        only mark the engine dirty; the running loop picks them up.
        """
        with self._lock:
            if self._evaluating:
                yield
                self._dirty = True
                return
            self._evaluating = True
            try:
                yield
                self._dirty = True
                self.last_report = self._settle()
            finally:
                self._evaluating = False
                self._dirty = False

    def _settle(self) -> EvaluationReport:
        limit = self.pass_limit()
        passes = 0
        changes = 0
        while self._dirty:
            if passes >= limit:
                logger.error("Case evaluation did not converge after %d passes (%d status changes); "
                             "stopping. Check case data for circular flag/case dependencies.",
                             passes, changes)
                return EvaluationReport(passes=passes, changes=changes, converged=False)
            self._dirty = False
            passes += 1
            changed = self._run_pass()
            logger.debug("Evaluation pass %d: %d status changes", passes, changed)
            changes += changed
        return EvaluationReport(passes=passes, changes=changes, converged=True)

    def pass_limit(self) -> int:
        """Passes allowed per re-evaluation.

        Statuses only move forward, so a loop that keeps changing state for
        more passes than there are possible transitions is not converging.
        """
        if self.max_passes > 0:
            return self.max_passes
        transitions = sum(4 + 2 * len(definition.objectives) for definition in self.registry)
        return transitions + 2

    def _run_pass(self) -> int:
        self._pass_changes = 0
        for definition in self.registry:
            fsm.step(definition, self)
        return self._pass_changes

    def _notify(self, listeners, *args) -> None:
        for listener in list(listeners):
            try:
                listener(*args)
            except Exception:
                logger.exception("Status listener %r failed", listener)

    def _definition(self, case_id: Optional[str], operation: str) -> Optional[CaseDefinition]:
        definition = self.registry.get(case_id)
        if definition is None:
            logger.warning("%s: unknown case '%s'", operation, case_id)
        return definition
