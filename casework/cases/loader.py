"""Case definition loader from structured JSON files.

This module converts case data documents (``{"cases": [...]}``) into
immutable ``CaseDefinition`` objects and builds the registry the engine
reads from. Documents are validated against ``CASE_FILE_SCHEMA`` first.
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import jsonschema

from config import get_validate_case_data
from .model import (
    CONDITION_TYPES,
    CaseDefinition,
    CaseLogEntry,
    CaseOverallStatus,
    CaseStatusIs,
    FlagIsSet,
    ObjectiveCompleted,
    ObjectiveDefinition,
    PlayerAcceptsQuestDialogue,
    PlayerLevel,
    ReputationChange,
    RewardSet,
    TriggerCondition,
)
from .registry import CaseRegistry
from .schema import CASE_FILE_SCHEMA, CONDITION_TYPE_NAMES

logger = logging.getLogger(__name__)


class CaseDataError(ValueError):
    """Case data could not be read or does not describe valid cases."""


def load_cases(case_file_path: Union[str, Path], validate: Optional[bool] = None) -> List[CaseDefinition]:
    """Load case definitions from a JSON file.

    Args:
        case_file_path: Path to the case data JSON file
        validate: Validate against the schema; defaults to config

    Returns:
        List of CaseDefinition objects in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        CaseDataError: If the JSON is invalid or fails validation
    """
    case_path = Path(case_file_path)
    if not case_path.exists():
        raise FileNotFoundError(f"Case file not found: {case_file_path}")

    try:
        with open(case_path, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise CaseDataError(f"Invalid JSON in case file {case_path}: {e}") from e

    return cases_from_dict(document, validate=validate)


def load_registry(case_file_path: Union[str, Path], validate: Optional[bool] = None) -> CaseRegistry:
    return build_registry(load_cases(case_file_path, validate=validate))


def build_registry(definitions: Iterable[CaseDefinition]) -> CaseRegistry:
    """Register definitions in order; duplicate ids are warned about and skipped."""
    registry = CaseRegistry()
    for definition in definitions:
        registry.register(definition)
    logger.info("Case registry contains %d cases", len(registry))
    return registry


def validate_case_document(document: Any) -> None:
    """Raise CaseDataError if the document does not match the case file schema."""
    try:
        jsonschema.validate(document, CASE_FILE_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise CaseDataError(f"Invalid case data at {location}: {e.message}") from e


def cases_from_dict(document: Dict[str, Any], validate: Optional[bool] = None) -> List[CaseDefinition]:
    """Build case definitions from an already parsed document."""
    if validate is None:
        validate = get_validate_case_data()
    if validate:
        validate_case_document(document)
    elif not isinstance(document, dict) or not isinstance(document.get('cases', []), list):
        raise CaseDataError("Case data must be an object with a 'cases' list")

    return [parse_case(case_data) for case_data in document.get('cases', [])]


def parse_case(case_data: Dict[str, Any]) -> CaseDefinition:
    """Parse a single case from JSON data."""
    case_id = (case_data.get('case_id') or '').strip()
    if not case_id:
        raise CaseDataError(f"Case without 'case_id': {case_data!r}")

    triggers = case_data.get('triggers', {})
    rewards = case_data.get('rewards', {})

    optional_rewards: Dict[str, RewardSet] = {}
    for entry in rewards.get('optional_objectives', []):
        objective_id = (entry.get('objective_id') or '').strip()
        if not objective_id:
            logger.warning("Case '%s' has optional rewards without an objective id", case_id)
            continue
        if objective_id in optional_rewards:
            logger.warning("Case '%s' lists rewards for objective '%s' twice; keeping the first",
                           case_id, objective_id)
            continue
        optional_rewards[objective_id] = _parse_reward(entry.get('rewards', {}))

    objectives = [_parse_objective(o) for o in case_data.get('objectives', [])]
    seen = set()
    for objective in objectives:
        if objective.objective_id in seen:
            logger.warning("Case '%s' defines objective '%s' more than once", case_id, objective.objective_id)
        seen.add(objective.objective_id)

    return CaseDefinition(
        case_id=case_id,
        name=case_data.get('name', ''),
        provider_npc_id=case_data.get('provider_npc_id'),
        description=case_data.get('description', ''),
        make_available=_parse_conditions(triggers.get('make_available')),
        start_case=_parse_conditions(triggers.get('start_case')),
        success=_parse_conditions(triggers.get('success')),
        failure=_parse_conditions(triggers.get('failure')),
        objectives=objectives,
        rewards_on_success=_parse_reward(rewards.get('on_success', {})),
        rewards_on_failure=_parse_reward(rewards.get('on_failure', {})),
        optional_rewards=optional_rewards,
        log=[_parse_log_entry(e, case_id) for e in case_data.get('log', [])],
        recommended_level=case_data.get('recommended_level', 1),
    )


def _parse_objective(objective_data: Dict[str, Any]) -> ObjectiveDefinition:
    objective_id = (objective_data.get('objective_id') or '').strip()
    if not objective_id:
        raise CaseDataError(f"Objective without 'objective_id': {objective_data!r}")
    return ObjectiveDefinition(
        objective_id=objective_id,
        text=objective_data.get('text', ''),
        is_optional=objective_data.get('is_optional', False),
        activate=_parse_conditions(objective_data.get('activate')),
        complete=_parse_conditions(objective_data.get('complete')),
    )


def _parse_log_entry(entry_data: Dict[str, Any], case_id: str) -> CaseLogEntry:
    statuses = []
    for raw_status in entry_data.get('display_on_status', []):
        status = CaseOverallStatus.parse(raw_status)
        if status is None:
            logger.warning("Case '%s' log entry '%s': unknown status %r ignored",
                           case_id, entry_data.get('entry_id'), raw_status)
            continue
        statuses.append(status)
    return CaseLogEntry(
        entry_id=(entry_data.get('entry_id') or '').strip(),
        text=entry_data.get('text', ''),
        display_on_status=statuses,
        trigger_to_show=_parse_conditions(entry_data.get('trigger_to_show')),
    )


def _parse_conditions(conditions_data: Optional[List[Dict[str, Any]]]) -> List[TriggerCondition]:
    return [_parse_condition(c) for c in conditions_data or []]


def _strip(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_condition(condition_data: Dict[str, Any]) -> TriggerCondition:
    """Parse a condition from JSON data.

    Supports the compact format
    (``{"type": "FlagIsSet", "flag": "x", "required": true}``) and the
    authored format with generic parameters (``Type``,
    ``StringParameterID``, ``IntParameter``, ``RequiredBoolState``,
    ``TargetCaseIDForCondition``).
    """
    if 'type' in condition_data:
        type_name = _condition_type_name(condition_data['type'])
        required = condition_data.get('required', True)

        if type_name == 'FlagIsSet':
            return FlagIsSet(flag_id=_strip(condition_data.get('flag')) or '', required=required)
        elif type_name == 'ObjectiveCompleted':
            return ObjectiveCompleted(
                objective_id=_strip(condition_data.get('objective')) or '',
                case_id=_strip(condition_data.get('case')),
                required=required,
            )
        elif type_name == 'CaseStatusIs':
            return CaseStatusIs(
                status=CaseOverallStatus.parse(condition_data.get('status')),
                case_id=_strip(condition_data.get('case')),
            )
        elif type_name == 'PlayerLevel':
            return PlayerLevel(min_level=condition_data.get('min_level', 0))
        return PlayerAcceptsQuestDialogue()

    # Authored format: generic parameters whose meaning depends on the type
    type_name = _condition_type_name(condition_data.get('Type'))
    string_param = _strip(condition_data.get('StringParameterID'))
    int_param = condition_data.get('IntParameter', 0)
    required = condition_data.get('RequiredBoolState', True)
    target_case = _strip(condition_data.get('TargetCaseIDForCondition'))

    if type_name == 'FlagIsSet':
        return FlagIsSet(flag_id=string_param or '', required=required)
    elif type_name == 'ObjectiveCompleted':
        return ObjectiveCompleted(objective_id=string_param or '', case_id=target_case, required=required)
    elif type_name == 'CaseStatusIs':
        # the target status is the enum ordinal
        return CaseStatusIs(status=CaseOverallStatus.parse(int_param), case_id=string_param)
    elif type_name == 'PlayerLevel':
        return PlayerLevel(min_level=int_param)
    return PlayerAcceptsQuestDialogue()


def _condition_type_name(raw_type: Any) -> str:
    if isinstance(raw_type, int) and not isinstance(raw_type, bool) and 0 <= raw_type < len(CONDITION_TYPE_NAMES):
        return CONDITION_TYPE_NAMES[raw_type]
    if isinstance(raw_type, str) and raw_type.strip() in CONDITION_TYPES:
        return raw_type.strip()
    raise CaseDataError(f"Unknown trigger condition type: {raw_type!r}")


def _parse_reward(reward_data: Dict[str, Any]) -> RewardSet:
    """Parse a reward set from JSON data."""
    reputation = [
        ReputationChange(faction_id=(entry.get('faction_id') or '').strip(), change=entry.get('change', 0))
        for entry in reward_data.get('reputation', [])
        if (entry.get('faction_id') or '').strip()
    ]
    return RewardSet(
        experience=reward_data.get('experience', 0),
        reputation=reputation,
        new_party_members=[m.strip() for m in reward_data.get('new_party_members', []) if m.strip()],
        flags_to_set=[f.strip() for f in reward_data.get('flags_to_set', []) if f.strip()],
    )
