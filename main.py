"""
Shop Floor Management — end-to-end smoke run.

Seeds a simulated plant, walks a few role-gated mutations through the
service layer, and prints dashboard outputs plus invariant checks.

Usage:
    python main.py
"""

import logging
import sys
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from sfm_dashboard.config import CATEGORIES, LOG_DATEFMT, LOG_FORMAT, PLANT_NAME, ROLES
from sfm_dashboard.dashboard import (
    category_stats,
    dashboard_stats,
    kpi_success_rate,
    open_problems,
    priority_list,
    problem_counters,
    today_priorities,
    workstation_overview,
)
from sfm_dashboard.filters import filter_entities
from sfm_dashboard.permissions import DEFAULT_MATRIX, can_create, can_delete, can_edit
from sfm_dashboard.service import escalate_problem, record_kpi_value, toggle_action
from sfm_dashboard.simulator import seed_repository

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
logger = logging.getLogger(__name__)


def main() -> None:
    """Run the smoke pipeline and print outputs."""

    print("=" * 70)
    print(f"  {PLANT_NAME.upper()} — Performance Dashboard")
    print("  Core Smoke Test")
    print("=" * 70)
    print()

    today = pd.Timestamp.now().normalize()
    repo = seed_repository(today)

    # ------------------------------------------------------------------
    # 1. Permission matrix
    # ------------------------------------------------------------------
    print("[ 1 ] PERMISSION MATRIX")
    print("-" * 40)
    for role in ROLES:
        caps = [
            f"{kind}:{'C' if can_create(role, kind) else '-'}"
            f"{'E' if can_edit(role, kind) else '-'}"
            f"{'D' if can_delete(role, kind) else '-'}"
            for kind in ("kpis", "actions", "problems")
        ]
        print(f"  {role:12s} | {'  '.join(caps)}")

    # ------------------------------------------------------------------
    # 2. Dashboard outputs
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] DASHBOARD OUTPUTS")
    print("-" * 40)

    kpis = repo.list("kpis")
    actions = repo.list("actions")
    problems = repo.list("problems")

    stats = dashboard_stats(kpis, actions, problems)
    for section, counts in stats.items():
        print(f"  {section:9s} | {counts}")
    print(f"  KPI success rate: {kpi_success_rate(kpis):.1f}%")

    print("\nCategory stats:")
    for category, counts in category_stats(kpis, list(CATEGORIES)).items():
        print(f"  {category:12s} | {counts}")

    priorities = today_priorities(actions, today)
    print(
        f"\nToday's priorities: {len(priorities['urgent'])} urgent, "
        f"{len(priorities['due_today'])} due today, "
        f"{len(priorities['completed_today'])} done"
    )
    for action in priority_list(actions, today):
        print(f"  [{action.priority:6s}] {action.title} ({action.status})")

    print("\nOpen problems:")
    for problem in open_problems(problems):
        flag = "^" if problem.escalated else " "
        print(f"  {flag} [{problem.severity:6s}] {problem.title}")
    print(f"  counters: {problem_counters(problems)}")

    print("\nWorkstations:")
    for row in workstation_overview(repo.list("workstations"), kpis, problems):
        print(f"  {row['name']:24s} | {row['status']:11s} | kpis={row['kpis']} open={row['open_problems']}")

    quality = filter_entities(actions, category="quality", search_text="calibr")
    print(f"\nFilter quality/'calibr': {[a.title for a in quality]}")

    # ------------------------------------------------------------------
    # 3. Role-gated mutations
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] ROLE-GATED MUTATIONS")
    print("-" * 40)

    result = toggle_action(repo, "act-1", "operator")
    print(f"  operator toggles act-1:        ok={result.ok} -> {repo.get('actions', 'act-1').status}")
    result = toggle_action(repo, "act-2", "operator")
    print(f"  operator toggles act-2:        ok={result.ok} ({result.denied})")
    result = escalate_problem(repo, "prob-2", "team_leader")
    print(f"  team_leader escalates prob-2:  ok={result.ok} -> {repo.get('problems', 'prob-2').escalated}")
    result = record_kpi_value(repo, "kpi-5", 1.5, "team_leader")
    kpi = repo.get("kpis", "kpi-5")
    print(f"  team_leader records kpi-5=1.5: ok={result.ok} -> {kpi.status}/{kpi.trend}")
    result = record_kpi_value(repo, "kpi-5", 9.0, "operator")
    print(f"  operator records kpi-5=9.0:    ok={result.ok} ({result.denied})")

    # ------------------------------------------------------------------
    # 4. Invariant checks
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] INVARIANT CHECKS")
    print("-" * 40)

    violations = DEFAULT_MATRIX.check_invariants()
    check1 = not violations
    print(f"\n  [{'PASS' if check1 else 'FAIL'}] Permission matrix invariants {violations or ''}")

    cats = category_stats(repo.list("kpis"))
    check2 = all(c["total"] == c["success"] + c["warning"] + c["danger"] for c in cats.values())
    print(f"  [{'PASS' if check2 else 'FAIL'}] Category totals are closed partitions")

    prio = today_priorities(repo.list("actions"), today)
    check3 = all(a.status != "done" for a in prio["urgent"] + prio["due_today"])
    print(f"  [{'PASS' if check3 else 'FAIL'}] No done action among priorities")

    check4 = all((p.status == "resolved") == (p.resolved_at is not None) for p in repo.list("problems"))
    print(f"  [{'PASS' if check4 else 'FAIL'}] resolved_at set exactly on resolved problems")

    print("\n" + "=" * 70)
    print("  Smoke run complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
