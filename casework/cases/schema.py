"""JSON schema for case data files.

Conditions may be written in the compact form
``{"type": "FlagIsSet", "flag": "met_informant"}`` or in the authored form
``{"Type": "FlagIsSet", "StringParameterID": "met_informant", ...}``.
"""

CONDITION_TYPE_NAMES = [
    "FlagIsSet",
    "ObjectiveCompleted",
    "PlayerLevel",
    "CaseStatusIs",
    "PlayerAcceptsQuestDialogue",
]

_CONDITION_TYPE = {
    "oneOf": [
        {"type": "string", "enum": CONDITION_TYPE_NAMES},
        {"type": "integer", "minimum": 0, "maximum": len(CONDITION_TYPE_NAMES) - 1},
    ]
}

_STATUS = {"type": ["string", "integer"]}

_OPTIONAL_ID = {"type": ["string", "null"]}

CONDITION_SCHEMA = {
    "type": "object",
    "anyOf": [{"required": ["type"]}, {"required": ["Type"]}],
    "properties": {
        # compact form
        "type": _CONDITION_TYPE,
        "flag": {"type": "string"},
        "objective": {"type": "string"},
        "case": _OPTIONAL_ID,
        "status": _STATUS,
        "required": {"type": "boolean"},
        "min_level": {"type": "integer"},
        # authored form
        "Type": _CONDITION_TYPE,
        "StringParameterID": _OPTIONAL_ID,
        "IntParameter": {"type": "integer"},
        "RequiredBoolState": {"type": "boolean"},
        "TargetCaseIDForCondition": _OPTIONAL_ID,
    },
    "additionalProperties": False,
}

_CONDITION_LIST = {"type": "array", "items": CONDITION_SCHEMA}

REWARD_SCHEMA = {
    "type": "object",
    "properties": {
        "experience": {"type": "integer"},
        "reputation": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["faction_id", "change"],
                "properties": {
                    "faction_id": {"type": "string", "minLength": 1},
                    "change": {"type": "integer"},
                },
                "additionalProperties": False,
            },
        },
        "new_party_members": {"type": "array", "items": {"type": "string"}},
        "flags_to_set": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": False,
}

OBJECTIVE_SCHEMA = {
    "type": "object",
    "required": ["objective_id"],
    "properties": {
        "objective_id": {"type": "string", "minLength": 1},
        "text": {"type": "string"},
        "is_optional": {"type": "boolean"},
        "activate": _CONDITION_LIST,
        "complete": _CONDITION_LIST,
    },
    "additionalProperties": False,
}

LOG_ENTRY_SCHEMA = {
    "type": "object",
    "required": ["entry_id"],
    "properties": {
        "entry_id": {"type": "string", "minLength": 1},
        "text": {"type": "string"},
        "display_on_status": {"type": "array", "items": _STATUS},
        "trigger_to_show": _CONDITION_LIST,
    },
    "additionalProperties": False,
}

CASE_SCHEMA = {
    "type": "object",
    "required": ["case_id"],
    "properties": {
        "case_id": {"type": "string", "minLength": 1},
        "name": {"type": "string"},
        "provider_npc_id": _OPTIONAL_ID,
        "description": {"type": "string"},
        "recommended_level": {"type": "integer", "minimum": 0},
        "triggers": {
            "type": "object",
            "properties": {
                "make_available": _CONDITION_LIST,
                "start_case": _CONDITION_LIST,
                "success": _CONDITION_LIST,
                "failure": _CONDITION_LIST,
            },
            "additionalProperties": False,
        },
        "objectives": {"type": "array", "items": OBJECTIVE_SCHEMA},
        "rewards": {
            "type": "object",
            "properties": {
                "on_success": REWARD_SCHEMA,
                "on_failure": REWARD_SCHEMA,
                "optional_objectives": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["objective_id", "rewards"],
                        "properties": {
                            "objective_id": {"type": "string", "minLength": 1},
                            "rewards": REWARD_SCHEMA,
                        },
                        "additionalProperties": False,
                    },
                },
            },
            "additionalProperties": False,
        },
        "log": {"type": "array", "items": LOG_ENTRY_SCHEMA},
    },
    "additionalProperties": False,
}

CASE_FILE_SCHEMA = {
    "type": "object",
    "required": ["cases"],
    "properties": {
        "cases": {"type": "array", "items": CASE_SCHEMA},
    },
}
