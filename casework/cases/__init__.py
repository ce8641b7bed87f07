"""Case engine package: trigger conditions, case/objective state machines and rewards."""

from .model import (
    CaseOverallStatus, ObjectiveStatus,
    FlagIsSet, ObjectiveCompleted, PlayerLevel, CaseStatusIs, PlayerAcceptsQuestDialogue,
    TriggerCondition, ReputationChange, RewardSet,
    ObjectiveDefinition, CaseLogEntry, CaseDefinition,
    ActionResult, EvaluationReport,
)
from .facts import FactStore
from .progress import ProgressEntry, ProgressTable
from .registry import CaseRegistry
from .dsl import check, check_all
from .rewards import RewardDispatcher
from .runtime import CaseEngine
from .loader import CaseDataError, load_cases, load_registry, cases_from_dict, build_registry
from .journal import visible_log_entries, journal_lines
from .commands import DialogueAction, DialoguePrerequisites, apply_dialogue_action, apply_dialogue_actions, dialogue_available

__all__ = [
    'CaseOverallStatus', 'ObjectiveStatus',
    'FlagIsSet', 'ObjectiveCompleted', 'PlayerLevel', 'CaseStatusIs', 'PlayerAcceptsQuestDialogue',
    'TriggerCondition', 'ReputationChange', 'RewardSet',
    'ObjectiveDefinition', 'CaseLogEntry', 'CaseDefinition',
    'ActionResult', 'EvaluationReport',
    'FactStore',
    'ProgressEntry', 'ProgressTable',
    'CaseRegistry',
    'check', 'check_all',
    'RewardDispatcher',
    'CaseEngine',
    'CaseDataError', 'load_cases', 'load_registry', 'cases_from_dict', 'build_registry',
    'visible_log_entries', 'journal_lines',
    'DialogueAction', 'DialoguePrerequisites', 'apply_dialogue_action', 'apply_dialogue_actions',
    'dialogue_available',
]
