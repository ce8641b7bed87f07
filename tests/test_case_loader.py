"""Test the case loader system."""

import sys
import os
import tempfile
import json
import logging
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from casework.cases.loader import (
    CaseDataError, build_registry, cases_from_dict, load_cases, load_registry, validate_case_document,
)
from casework.cases.model import (
    CaseDefinition, CaseOverallStatus, CaseStatusIs, FlagIsSet, ObjectiveCompleted, ObjectiveStatus,
    PlayerAcceptsQuestDialogue, PlayerLevel, ReputationChange,
)
from casework.cases.rewards import RewardDispatcher
from casework.cases.runtime import CaseEngine

DEMO_CASES = os.path.join(os.path.dirname(__file__), '..', 'assets', 'cases', 'demo_cases.json')


def _write_temp(document):
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        if isinstance(document, str):
            f.write(document)
        else:
            json.dump(document, f)
        return f.name


def test_load_cases():
    """Test loading cases from a JSON file."""
    case_data = {
        "cases": [
            {
                "case_id": " C_TEST ",
                "name": "Test Case",
                "provider_npc_id": "npc_client",
                "description": "Something is missing.",
                "recommended_level": 2,
                "triggers": {
                    "make_available": [{"type": "FlagIsSet", "flag": "met_client"}],
                    "start_case": [{"type": "PlayerAcceptsQuestDialogue"}],
                    "success": [{"type": "ObjectiveCompleted", "objective": "o1"}],
                    "failure": [{"type": "FlagIsSet", "flag": "client_dead", "required": True}]
                },
                "objectives": [
                    {
                        "objective_id": "o1",
                        "text": "Find the thing",
                        "complete": [{"type": "FlagIsSet", "flag": "thing_found"}]
                    },
                    {
                        "objective_id": "o2",
                        "is_optional": True,
                        "activate": [{"type": "CaseStatusIs", "case": "C_OTHER", "status": "Successful"}]
                    }
                ],
                "rewards": {
                    "on_success": {
                        "experience": 50,
                        "reputation": [{"faction_id": "police", "change": 3}],
                        "new_party_members": ["npc_helper"],
                        "flags_to_set": ["test_done"]
                    },
                    "optional_objectives": [
                        {"objective_id": "o2", "rewards": {"experience": 5}}
                    ]
                },
                "log": [
                    {"entry_id": "l1", "text": "Started.", "display_on_status": ["InProgress", 3, "bogus"]}
                ]
            }
        ]
    }

    temp_file = _write_temp(case_data)
    try:
        cases = load_cases(temp_file, validate=True)

        assert len(cases) == 1
        case = cases[0]
        assert case.case_id == "C_TEST"
        assert case.name == "Test Case"
        assert case.provider_npc_id == "npc_client"
        assert case.recommended_level == 2

        assert case.make_available == [FlagIsSet("met_client")]
        assert case.start_case == [PlayerAcceptsQuestDialogue()]
        assert case.success == [ObjectiveCompleted("o1")]
        assert case.failure == [FlagIsSet("client_dead", required=True)]

        assert [o.objective_id for o in case.objectives] == ["o1", "o2"]
        assert case.objectives[1].is_optional == True
        assert case.objectives[1].activate == [CaseStatusIs(CaseOverallStatus.SUCCESSFUL, case_id="C_OTHER")]

        assert case.rewards_on_success.experience == 50
        assert case.rewards_on_success.reputation == [ReputationChange("police", 3)]
        assert case.rewards_on_success.new_party_members == ["npc_helper"]
        assert case.rewards_on_success.flags_to_set == ["test_done"]
        assert case.rewards_on_failure.is_empty == True
        assert case.optional_rewards["o2"].experience == 5

        # Unknown statuses are dropped from the log entry
        assert case.log[0].display_on_status == [CaseOverallStatus.IN_PROGRESS, CaseOverallStatus.SUCCESSFUL]
    finally:
        os.unlink(temp_file)


def test_authored_condition_format():
    """Generic-parameter conditions map onto the typed variants."""
    document = {
        "cases": [
            {
                "case_id": "C1",
                "triggers": {
                    "make_available": [
                        {"Type": "FlagIsSet", "StringParameterID": "door", "RequiredBoolState": False},
                        {"Type": 3, "StringParameterID": "C0", "IntParameter": 3},
                        {"Type": "ObjectiveCompleted", "StringParameterID": "o9",
                         "TargetCaseIDForCondition": "C0"},
                        {"Type": "PlayerLevel", "IntParameter": 4},
                        {"Type": 4},
                    ],
                    "start_case": [
                        {"Type": "CaseStatusIs", "StringParameterID": "C0", "IntParameter": 9},
                    ],
                }
            }
        ]
    }

    case = cases_from_dict(document, validate=True)[0]
    assert case.make_available == [
        FlagIsSet("door", required=False),
        CaseStatusIs(CaseOverallStatus.SUCCESSFUL, case_id="C0"),
        ObjectiveCompleted("o9", case_id="C0"),
        PlayerLevel(min_level=4),
        PlayerAcceptsQuestDialogue(),
    ]
    # Out-of-range ordinal cannot be decoded
    assert case.start_case == [CaseStatusIs(None, case_id="C0")]


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_cases("/nonexistent/cases.json")


def test_invalid_json():
    temp_file = _write_temp("{ not json")
    try:
        with pytest.raises(CaseDataError):
            load_cases(temp_file)
    finally:
        os.unlink(temp_file)


class TestSchemaValidation:
    """Test JSON schema validation of case documents."""

    def test_missing_cases_list(self):
        with pytest.raises(CaseDataError):
            validate_case_document({"acts": []})

    def test_missing_case_id(self):
        with pytest.raises(CaseDataError) as excinfo:
            cases_from_dict({"cases": [{"name": "No id"}]}, validate=True)
        assert "cases/0" in str(excinfo.value)

    def test_unknown_condition_type(self):
        document = {"cases": [{"case_id": "C1", "triggers": {"success": [{"type": "HasItem", "item": "x"}]}}]}
        with pytest.raises(CaseDataError):
            cases_from_dict(document, validate=True)

    def test_unknown_field(self):
        document = {"cases": [{"case_id": "C1", "reward": {}}]}
        with pytest.raises(CaseDataError):
            cases_from_dict(document, validate=True)

    def test_unknown_condition_type_without_validation(self):
        document = {"cases": [{"case_id": "C1", "triggers": {"success": [{"type": "HasItem"}]}}]}
        with pytest.raises(CaseDataError):
            cases_from_dict(document, validate=False)

    def test_missing_case_id_without_validation(self):
        with pytest.raises(CaseDataError):
            cases_from_dict({"cases": [{"name": "No id"}]}, validate=False)

    def test_not_an_object_without_validation(self):
        with pytest.raises(CaseDataError):
            cases_from_dict([], validate=False)

    def test_validation_follows_config(self, monkeypatch):
        document = {"cases": [{"case_id": "C1", "extra": True}]}

        monkeypatch.setenv("CW_VALIDATE_CASE_DATA", "0")
        assert [c.case_id for c in cases_from_dict(document)] == ["C1"]

        monkeypatch.setenv("CW_VALIDATE_CASE_DATA", "1")
        with pytest.raises(CaseDataError):
            cases_from_dict(document)

    def test_demo_cases_are_valid(self):
        with open(DEMO_CASES, 'r', encoding='utf-8') as f:
            validate_case_document(json.load(f))


def test_duplicate_case_ids_keep_first(caplog):
    definitions = [
        CaseDefinition(case_id="C1", name="first"),
        CaseDefinition(case_id=" C1", name="second"),
        CaseDefinition(case_id="", name="nameless"),
        CaseDefinition(case_id="C2"),
    ]

    with caplog.at_level(logging.WARNING):
        registry = build_registry(definitions)

    assert registry.ids() == ["C1", "C2"]
    assert registry.get("C1").name == "first"
    assert "Duplicate case id 'C1'" in caplog.text
    assert "empty id" in caplog.text


def test_registry_lookup():
    registry = build_registry([CaseDefinition(case_id="C1")])
    assert registry.get(" C1 ") is not None
    assert registry.get(None) is None
    assert "C1" in registry
    assert "C9" not in registry
    assert registry.get_objective_definition("C1", "o1") is None
    assert registry.get_objective_definition("C9", "o1") is None


class MockPlayer:
    def __init__(self):
        self.experience = 0

    def add_experience(self, amount):
        self.experience += amount


def test_demo_cases_play_through():
    """The bundled case file plays from first meeting to the follow-up case."""
    player = MockPlayer()
    engine = CaseEngine(load_registry(DEMO_CASES), rewards=RewardDispatcher(player=player), max_passes=0)
    ledger, guild = "CASE_MISSING_LEDGER", "CASE_GUILD_FAVOUR"

    engine.evaluate()
    assert engine.get_case_overall_status(ledger) == CaseOverallStatus.UNAVAILABLE

    engine.set_global_flag("met_mrs_doyle")
    assert engine.get_case_overall_status(ledger) == CaseOverallStatus.INACTIVE

    engine.set_global_flag("accepted_ledger_case")
    assert engine.get_case_overall_status(ledger) == CaseOverallStatus.IN_PROGRESS
    assert engine.get_objective_status(ledger, "search_shop") == ObjectiveStatus.ACTIVE
    assert engine.get_objective_status(ledger, "question_clerk") == ObjectiveStatus.INACTIVE

    engine.set_global_flag("shop_searched")
    assert engine.get_objective_status(ledger, "question_clerk") == ObjectiveStatus.ACTIVE

    engine.set_global_flag("receipt_found")
    assert player.experience == 25

    # Success conditions hold but a primary objective is still open
    engine.set_global_flag("ledger_returned")
    assert engine.get_case_overall_status(ledger) == CaseOverallStatus.IN_PROGRESS

    engine.set_global_flag("clerk_confessed")
    assert engine.get_case_overall_status(ledger) == CaseOverallStatus.SUCCESSFUL
    assert player.experience == 175
    assert engine.check_global_flag("ledger_case_solved") == True
    assert engine.get_case_overall_status(guild) == CaseOverallStatus.INACTIVE

    engine.set_global_flag("accepted_guild_favour")
    engine.set_global_flag("letter_delivered")
    assert engine.get_case_overall_status(guild) == CaseOverallStatus.SUCCESSFUL


if __name__ == "__main__":
    test_load_cases()
    test_authored_condition_format()
    test_duplicate_case_ids_keep_first()
    print("All loader tests passed!")
