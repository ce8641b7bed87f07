"""Case engine data models.

This module defines the static case data (definitions, objectives, trigger
conditions, reward sets, log entries), the status enums that drive the
state machines, and the small result types returned by the engine API.
Definitions are built once at load time and never mutated afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


def _normalise_name(value: str) -> str:
    return value.replace("_", "").replace(" ", "").lower()


class CaseOverallStatus(Enum):
    """Lifecycle of a case. Declaration order is the allowed forward order."""
    UNAVAILABLE = "unavailable"   # not yet known to the player
    INACTIVE = "inactive"         # known, can be started
    IN_PROGRESS = "in_progress"   # accepted/started
    SUCCESSFUL = "successful"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (CaseOverallStatus.SUCCESSFUL, CaseOverallStatus.FAILED)

    @property
    def rank(self) -> int:
        return _CASE_ORDER.index(self)

    @classmethod
    def parse(cls, value: Union[str, int, "CaseOverallStatus", None]) -> Optional["CaseOverallStatus"]:
        """Decode a status from an ordinal, an enum name or a value.

        Accepts ``2``, ``"InProgress"``, ``"IN_PROGRESS"`` and
        ``"in_progress"`` alike. Returns None when nothing matches.
        """
        return _parse_enum(cls, _CASE_ORDER, value)


class ObjectiveStatus(Enum):
    """Lifecycle of an objective. FAILED exists in the data model but no rule drives it."""
    INACTIVE = "inactive"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ObjectiveStatus.COMPLETED, ObjectiveStatus.FAILED)

    @property
    def rank(self) -> int:
        return _OBJECTIVE_ORDER.index(self)

    @classmethod
    def parse(cls, value: Union[str, int, "ObjectiveStatus", None]) -> Optional["ObjectiveStatus"]:
        return _parse_enum(cls, _OBJECTIVE_ORDER, value)


_CASE_ORDER = list(CaseOverallStatus)
_OBJECTIVE_ORDER = list(ObjectiveStatus)


def _parse_enum(cls, order, value):
    if value is None:
        return None
    if isinstance(value, cls):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if 0 <= value < len(order):
            return order[value]
        return None
    if isinstance(value, str):
        key = _normalise_name(value.strip())
        for member in order:
            if key in (_normalise_name(member.name), _normalise_name(member.value)):
                return member
    return None


def can_advance(old: Union[CaseOverallStatus, ObjectiveStatus],
                new: Union[CaseOverallStatus, ObjectiveStatus]) -> bool:
    """True if moving from ``old`` to ``new`` goes strictly forward out of a non-terminal status."""
    if type(old) is not type(new):
        return False
    return not old.terminal and new.rank > old.rank


# --- Trigger conditions -----------------------------------------------------
# One frozen dataclass per condition type, each with its own named fields.

@dataclass(frozen=True)
class FlagIsSet:
    """Holds iff the global flag ``flag_id`` equals ``required``."""
    flag_id: str
    required: bool = True


@dataclass(frozen=True)
class ObjectiveCompleted:
    """Holds iff (objective is Completed) equals ``required``.

    ``case_id`` defaults to the case the condition is evaluated for.
    """
    objective_id: str
    case_id: Optional[str] = None
    required: bool = True


@dataclass(frozen=True)
class PlayerLevel:
    """Player leveling does not exist yet; always holds."""
    min_level: int = 0


@dataclass(frozen=True)
class CaseStatusIs:
    """Holds iff the overall status of ``case_id`` (default: context case) is ``status``.

    A None ``status`` means the authored status could not be decoded.
    """
    status: Optional[CaseOverallStatus]
    case_id: Optional[str] = None


@dataclass(frozen=True)
class PlayerAcceptsQuestDialogue:
    """Stands for the acceptance event itself; always holds when evaluated."""


TriggerCondition = Union[FlagIsSet, ObjectiveCompleted, PlayerLevel, CaseStatusIs, PlayerAcceptsQuestDialogue]

CONDITION_TYPES = {
    "FlagIsSet": FlagIsSet,
    "ObjectiveCompleted": ObjectiveCompleted,
    "PlayerLevel": PlayerLevel,
    "CaseStatusIs": CaseStatusIs,
    "PlayerAcceptsQuestDialogue": PlayerAcceptsQuestDialogue,
}


# --- Rewards ------------------------------------------------------------------

@dataclass(frozen=True)
class ReputationChange:
    faction_id: str
    change: int


@dataclass(frozen=True)
class RewardSet:
    """Side effects applied on a terminal case transition or an objective completion."""
    experience: int = 0
    reputation: List[ReputationChange] = field(default_factory=list)
    new_party_members: List[str] = field(default_factory=list)  # roster additions
    flags_to_set: List[str] = field(default_factory=list)       # global flags set to True

    @property
    def is_empty(self) -> bool:
        return not (self.experience or self.reputation or self.new_party_members or self.flags_to_set)


# --- Definitions --------------------------------------------------------------

@dataclass(frozen=True)
class ObjectiveDefinition:
    """A sub-goal of a case. Non-optional objectives gate case success."""
    objective_id: str
    text: str = ""
    is_optional: bool = False
    activate: List[TriggerCondition] = field(default_factory=list)
    complete: List[TriggerCondition] = field(default_factory=list)


@dataclass(frozen=True)
class CaseLogEntry:
    """Case log text shown only in some statuses and when its own conditions hold."""
    entry_id: str
    text: str = ""
    display_on_status: List[CaseOverallStatus] = field(default_factory=list)
    trigger_to_show: List[TriggerCondition] = field(default_factory=list)


@dataclass(frozen=True)
class CaseDefinition:
    """Static description of a case: triggers, objectives, rewards and log."""
    case_id: str
    name: str = ""
    provider_npc_id: Optional[str] = None
    description: str = ""
    make_available: List[TriggerCondition] = field(default_factory=list)
    start_case: List[TriggerCondition] = field(default_factory=list)
    success: List[TriggerCondition] = field(default_factory=list)
    failure: List[TriggerCondition] = field(default_factory=list)
    objectives: List[ObjectiveDefinition] = field(default_factory=list)
    rewards_on_success: RewardSet = field(default_factory=RewardSet)
    rewards_on_failure: RewardSet = field(default_factory=RewardSet)
    optional_rewards: Dict[str, RewardSet] = field(default_factory=dict)  # objective_id -> rewards
    log: List[CaseLogEntry] = field(default_factory=list)
    recommended_level: int = 1

    @property
    def display_name(self) -> str:
        return self.name or self.case_id

    def get_objective(self, objective_id: str) -> Optional[ObjectiveDefinition]:
        """Look up an objective by id (whitespace-insensitive)."""
        if not objective_id:
            return None
        wanted = objective_id.strip()
        for objective in self.objectives:
            if objective.objective_id == wanted:
                return objective
        return None

    def primary_objectives(self) -> List[ObjectiveDefinition]:
        return [o for o in self.objectives if not o.is_optional]


# --- Engine results -----------------------------------------------------------

class ActionResult(Enum):
    """Outcome of an engine mutation. None of these are errors that abort play."""
    APPLIED = "applied"
    NO_CHANGE = "no_change"
    PRECONDITION_NOT_MET = "precondition_not_met"
    UNKNOWN_CASE = "unknown_case"
    UNKNOWN_OBJECTIVE = "unknown_objective"

    def __bool__(self) -> bool:
        return self is ActionResult.APPLIED


@dataclass(frozen=True)
class EvaluationReport:
    """Summary of one run of the re-evaluation loop."""
    passes: int
    changes: int
    converged: bool
