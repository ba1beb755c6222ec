"""Shared fixtures for the sfm_dashboard test suite.

Provides small hand-built entity collections, a fixed `today`, and
synthetic permission matrices.
"""

import pandas as pd
import pytest

from sfm_dashboard.config import PERMISSIONS
from sfm_dashboard.models import KPI, Action, Problem, Workstation
from sfm_dashboard.permissions import PermissionMatrix
from sfm_dashboard.repository import InMemoryRepository
from sfm_dashboard.simulator import generate_categories

TODAY = pd.Timestamp("2024-01-01")


@pytest.fixture
def today() -> pd.Timestamp:
    return TODAY


@pytest.fixture
def now() -> pd.Timestamp:
    return pd.Timestamp("2024-01-01 10:30")


@pytest.fixture
def everything_matrix() -> PermissionMatrix:
    """A synthetic role granted every permission, and one granted none."""
    return PermissionMatrix.from_table({"root": PERMISSIONS, "nobody": []})


@pytest.fixture
def kpis() -> list[KPI]:
    return [
        KPI(id="k1", name="Taux de rebut", category="quality", current_value=2.1,
            target_value=2.0, status="warning", direction="lower_is_better"),
        KPI(id="k2", name="Réclamations client", category="quality", current_value=3,
            target_value=2, status="danger", direction="lower_is_better", workstation_id="ws-1"),
        KPI(id="k3", name="Jours sans accident", category="security", current_value=127,
            target_value=100, status="success", workstation_id="ws-1"),
    ]


@pytest.fixture
def actions() -> list[Action]:
    return [
        Action(id="a1", title="Calibrer capteur", description="Recalibrer le capteur ligne 3",
               priority="high", status="todo", category="quality", due_date=TODAY),
        Action(id="a2", title="Formation sécurité", description="Rappel des procédures",
               priority="medium", status="in_progress", category="security", due_date=TODAY),
        Action(id="a3", title="Maintenance M-102", description="Maintenance préventive",
               priority="low", status="todo", category="workstation",
               due_date=TODAY + pd.Timedelta(days=1)),
        Action(id="a4", title="Analyser rebuts", description="Causes racines",
               priority="high", status="done", category="quality",
               due_date=TODAY - pd.Timedelta(days=3), completed_at=TODAY - pd.Timedelta(days=2)),
        Action(id="a5", title="Tri déchets", description="Zone de stockage",
               priority="medium", status="todo", category="environment", due_date=TODAY),
    ]


@pytest.fixture
def problems() -> list[Problem]:
    return [
        Problem(id="p1", title="Fuite hydraulique", description="Circuit principal",
                category="workstation", severity="high", status="in_progress", escalated=True,
                created_at=pd.Timestamp("2023-12-29"), workstation_id="ws-1"),
        Problem(id="p2", title="Non-conformité lot", description="Taux de défauts élevé",
                category="quality", severity="high", status="open",
                created_at=pd.Timestamp("2023-12-31")),
        Problem(id="p3", title="Retard approvisionnement", description="Composants XR-450",
                category="delivery", severity="medium", status="open",
                created_at=pd.Timestamp("2023-12-30"), workstation_id="ws-9"),
        Problem(id="p4", title="EPI manquants", description="Gants et lunettes",
                category="security", severity="high", status="resolved",
                created_at=pd.Timestamp("2023-12-27"), resolved_at=pd.Timestamp("2023-12-28")),
    ]


@pytest.fixture
def workstations() -> list[Workstation]:
    return [
        Workstation(id="ws-1", name="Machine M-101"),
        Workstation(id="ws-2", name="Machine M-102", status="maintenance"),
        Workstation(id="ws-3", name="Ligne L1", type="station", status="down"),
    ]


@pytest.fixture
def repo(kpis, actions, problems, workstations) -> InMemoryRepository:
    return InMemoryRepository(
        kpis=kpis,
        actions=actions,
        problems=problems,
        workstations=workstations,
        categories=generate_categories(),
    )
