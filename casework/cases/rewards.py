"""Reward dispatch for terminal case transitions and objective completions.

Experience, reputation and roster changes are handed to external
collaborators (player progress, factions, party roster); any of them may
be omitted, in which case the reward is only logged. Reward flags are set
through the engine so they take part in re-evaluation.
"""

from __future__ import annotations
import logging
from typing import Optional

from .model import RewardSet

logger = logging.getLogger(__name__)


class RewardDispatcher:
    """Applies RewardSets.

    Collaborators are duck-typed:
        player.add_experience(amount)
        factions.change_reputation(faction_id, change)
        roster.add_member(member_id)
    """

    def __init__(self, player=None, factions=None, roster=None):
        self.player = player
        self.factions = factions
        self.roster = roster

    def dispatch(self, rewards: Optional[RewardSet], engine, source: str = "") -> None:
        """Apply a reward set.

        Args:
            rewards: Reward set to apply (None or empty is a no-op)
            engine: CaseEngine receiving reward flags
            source: Label for log lines, e.g. ``"case C1 success"``
        """
        if rewards is None or rewards.is_empty:
            return

        logger.info("Processing rewards (%s): XP %d", source, rewards.experience)
        if rewards.experience:
            self._call(self.player, "add_experience", rewards.experience)

        for entry in rewards.reputation:
            faction_id = (entry.faction_id or "").strip()
            if not faction_id:
                continue
            logger.info("Reputation change for %s: %+d", faction_id, entry.change)
            self._call(self.factions, "change_reputation", faction_id, entry.change)

        for flag in rewards.flags_to_set:
            flag = (flag or "").strip()
            if flag:
                engine.set_global_flag(flag, True)

        for member_id in rewards.new_party_members:
            member_id = (member_id or "").strip()
            if not member_id:
                continue
            logger.info("Adding new party member: %s", member_id)
            self._call(self.roster, "add_member", member_id)

    def _call(self, collaborator, method: str, *args) -> None:
        if collaborator is None:
            return
        try:
            getattr(collaborator, method)(*args)
        except Exception:
            logger.exception("Reward collaborator %r failed in %s%r", collaborator, method, args)
