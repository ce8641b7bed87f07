#!/usr/bin/env python3
"""
Demonstration of the case engine.

This demo shows how the case engine works with:
- Loading case definitions from JSON
- Flags unlocking and starting cases
- Objective progression and case outcomes
- Reward flags unlocking follow-up cases
- The case journal
"""

import logging
import os
import sys

# Add the current directory to Python path
sys.path.insert(0, os.path.dirname(__file__))

from casework.cases import CaseEngine, RewardDispatcher, journal_lines, load_registry

CASE_FILE = os.path.join(os.path.dirname(__file__), "assets", "cases", "demo_cases.json")


class DemoPlayer:
    def __init__(self):
        self.experience = 0

    def add_experience(self, amount):
        self.experience += amount


def print_journal(engine):
    for line in journal_lines(engine):
        print(f"  {line}")
    print()


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    player = DemoPlayer()
    engine = CaseEngine(load_registry(CASE_FILE), rewards=RewardDispatcher(player=player))
    engine.subscribe_case_status(
        lambda case, old, new: print(f">> {case.display_name}: {old.name} -> {new.name}")
    )

    print("=== DEMO: Meeting the client ===")
    engine.set_global_flag("met_mrs_doyle")
    print_journal(engine)

    print("=== DEMO: Accepting the case ===")
    engine.set_global_flag("accepted_ledger_case")
    print_journal(engine)

    print("=== DEMO: Investigating ===")
    engine.set_global_flag("shop_searched")
    engine.set_global_flag("receipt_found")
    engine.set_global_flag("clerk_confessed")
    engine.set_global_flag("ledger_returned")
    print_journal(engine)

    print(f"Experience earned: {player.experience}")
    print(f"Last evaluation: {engine.last_report}")
    engine.close()


if __name__ == "__main__":
    main()
