"""Central configuration for the case engine.

Tunable engine parameters live here (evaluation bound, starting skills,
case data validation). Every value has a sensible default and can be
overridden through environment variables.
"""
from __future__ import annotations
import os
from typing import Dict

def _get_int_env(name: str, default: int, minval: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw)
        if minval is not None and v < minval:
            return default
        return v
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in {"1", "true", "yes", "on"}


# ---------------- Re-evaluation loop ----------------
# Upper bound on full passes per re-evaluation before the loop gives up.
# 0 = derive the bound from the loaded cases (one pass per possible transition)
DEFAULT_MAX_EVALUATION_PASSES: int = 0

ENV_MAX_EVALUATION_PASSES = "CW_MAX_EVALUATION_PASSES"


def get_max_evaluation_passes() -> int:
    """Pass bound for the fixed-point loop. Var: CW_MAX_EVALUATION_PASSES (0 = automatic)."""
    return _get_int_env(ENV_MAX_EVALUATION_PASSES, DEFAULT_MAX_EVALUATION_PASSES, minval=0)


# ---------------- Player skills ----------------
DEFAULT_SKILLS: Dict[str, int] = {
    "Perception": 30,
    "Lockpicking": 15,
    "Intimidation": 20,
    "Persuasion": 25,
    "Streetwise": 10,
}

ENV_DEFAULT_SKILLS = "CW_DEFAULT_SKILLS"


def get_default_skills() -> Dict[str, int]:
    """Starting skill table.

    Var: CW_DEFAULT_SKILLS as ``Name=level`` pairs separated by commas,
    e.g. ``Perception=40,Streetwise=5``. Malformed pairs are skipped; an
    empty or fully malformed value falls back to DEFAULT_SKILLS.
    """
    raw = os.getenv(ENV_DEFAULT_SKILLS)
    if raw is None:
        return dict(DEFAULT_SKILLS)
    skills: Dict[str, int] = {}
    for pair in raw.split(","):
        name, sep, level = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        try:
            skills[name] = int(level.strip())
        except ValueError:
            continue
    return skills or dict(DEFAULT_SKILLS)


# ---------------- Case data ----------------
def get_validate_case_data() -> bool:
    """Validate case JSON against the schema before building definitions. Var: CW_VALIDATE_CASE_DATA."""
    return _get_bool_env("CW_VALIDATE_CASE_DATA", True)


__all__ = [
    "DEFAULT_MAX_EVALUATION_PASSES", "ENV_MAX_EVALUATION_PASSES", "get_max_evaluation_passes",
    "DEFAULT_SKILLS", "ENV_DEFAULT_SKILLS", "get_default_skills",
    "get_validate_case_data",
]
