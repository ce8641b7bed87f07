"""Test the case engine condition evaluator."""

import logging
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from casework.cases.dsl import check, check_all
from casework.cases.facts import FactStore
from casework.cases.model import (
    CaseDefinition, CaseOverallStatus, CaseStatusIs, FlagIsSet, ObjectiveCompleted,
    ObjectiveDefinition, ObjectiveStatus, PlayerAcceptsQuestDialogue, PlayerLevel,
)
from casework.cases.progress import ProgressTable
from casework.cases.registry import CaseRegistry


class MockState:
    """Mock engine state for testing."""
    def __init__(self, *definitions):
        self.facts = FactStore(skills={})
        self.progress = ProgressTable()
        self.registry = CaseRegistry(definitions)


def _case_with_objective():
    return CaseDefinition(case_id="C1", objectives=[ObjectiveDefinition(objective_id="O1")])


def test_empty_condition_lists_hold():
    """Empty and absent lists are vacuously true for any context."""
    state = MockState()
    assert check_all([], state, "C1") == True
    assert check_all(None, state, "C1") == True
    assert check_all([], state, None, "O1") == True
    assert check_all(None, state, None) == True


def test_flag_is_set_condition():
    state = MockState()

    # Missing flag defaults to False
    assert check(FlagIsSet("door_open"), state, "C1") == False
    assert check(FlagIsSet("door_open", required=False), state, "C1") == True

    state.facts.set_global_flag("door_open", True)
    assert check(FlagIsSet("door_open"), state, "C1") == True
    assert check(FlagIsSet("door_open", required=False), state, "C1") == False

    # Ids are trimmed
    assert check(FlagIsSet("  door_open "), state, "C1") == True


def test_and_semantics():
    state = MockState()
    state.facts.set_global_flag("a", True)

    assert check_all([FlagIsSet("a"), FlagIsSet("b")], state, "C1") == False
    assert check_all([FlagIsSet("b"), FlagIsSet("a")], state, "C1") == False

    state.facts.set_global_flag("b", True)
    assert check_all([FlagIsSet("a"), FlagIsSet("b")], state, "C1") == True


def test_objective_completed_condition():
    definition = _case_with_objective()
    state = MockState(definition)

    condition = ObjectiveCompleted("O1")
    assert check(condition, state, "C1") == False
    assert check(ObjectiveCompleted("O1", required=False), state, "C1") == True

    state.progress.set_objective_status(definition, "O1", ObjectiveStatus.ACTIVE)
    assert check(condition, state, "C1") == False

    state.progress.set_objective_status(definition, "O1", ObjectiveStatus.COMPLETED)
    assert check(condition, state, "C1") == True
    assert check(ObjectiveCompleted("O1", required=False), state, "C1") == False

    # Another case's objective, checked from a different context
    assert check(ObjectiveCompleted("O1", case_id="C1"), state, "C2") == True
    assert check(ObjectiveCompleted("O1"), state, "C2") == False


def test_case_status_is_condition():
    definition = CaseDefinition(case_id="C1")
    state = MockState(definition)

    assert check(CaseStatusIs(CaseOverallStatus.UNAVAILABLE), state, "C1") == True
    assert check(CaseStatusIs(CaseOverallStatus.INACTIVE), state, "C1") == False

    state.progress.set_case_status(definition, CaseOverallStatus.INACTIVE)
    assert check(CaseStatusIs(CaseOverallStatus.INACTIVE), state, "C1") == True
    assert check(CaseStatusIs(CaseOverallStatus.INACTIVE, case_id="C1"), state, "C9") == True
    assert check(CaseStatusIs(CaseOverallStatus.IN_PROGRESS, case_id="C1"), state, "C9") == False


def test_stub_conditions_always_hold():
    state = MockState()
    assert check(PlayerLevel(min_level=99), state, "C1") == True
    assert check(PlayerAcceptsQuestDialogue(), state, "C1") == True
    assert check_all([PlayerLevel(5), PlayerAcceptsQuestDialogue()], state, None) == True


def test_malformed_conditions_fail_the_list(caplog):
    state = MockState(_case_with_objective())

    with caplog.at_level(logging.WARNING):
        assert check(FlagIsSet(""), state, "C1") == False
        assert check(FlagIsSet("   "), state, "C1") == False
        assert check(ObjectiveCompleted(""), state, "C1") == False
        # No context case and no target case
        assert check(ObjectiveCompleted("O1"), state, None) == False
        assert check(CaseStatusIs(CaseOverallStatus.INACTIVE), state, "") == False
        # Undecodable status
        assert check(CaseStatusIs(None, case_id="C1"), state, "C1") == False
        # Not a condition at all
        assert check("FlagIsSet", state, "C1") == False
        assert check(None, state, "C1") == False

    assert "no flag id" in caplog.text
    assert check_all([PlayerLevel(), FlagIsSet("")], state, "C1") == False
    assert check_all([PlayerAcceptsQuestDialogue(), None], state, "C1") == False


def test_unknown_case_references_use_defaults(caplog):
    state = MockState()

    with caplog.at_level(logging.WARNING):
        assert check(CaseStatusIs(CaseOverallStatus.UNAVAILABLE, case_id="GHOST"), state, "C1") == True
        assert check(ObjectiveCompleted("O1", case_id="GHOST"), state, "C1") == False
        assert check(ObjectiveCompleted("O1", case_id="GHOST", required=False), state, "C1") == True

    assert "unknown case 'GHOST'" in caplog.text


def test_evaluation_has_no_side_effects():
    definition = _case_with_objective()
    state = MockState(definition)
    conditions = [FlagIsSet("x", required=False), ObjectiveCompleted("O1", required=False),
                  CaseStatusIs(CaseOverallStatus.UNAVAILABLE)]

    assert check_all(conditions, state, "C1") == True
    assert check_all(list(reversed(conditions)), state, "C1") == True
    assert state.facts.global_flags == {}
    assert len(state.progress) == 0


if __name__ == "__main__":
    test_empty_condition_lists_hold()
    test_flag_is_set_condition()
    test_and_semantics()
    test_objective_completed_condition()
    test_case_status_is_condition()
    test_stub_conditions_always_hold()
    print("All DSL tests passed!")
