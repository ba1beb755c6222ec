"""
Simulated data generator for the shop-floor dashboard.

Generates a realistic demo plant: KPIs across every category with a
daily history, corrective actions, problems, and workstations. All
values are synthetic. KPI status and trend are derived by the
classifier from the generated values, never hard-coded.
"""

import numpy as np
import pandas as pd

from .config import CATEGORIES
from .kpis import new_kpi
from .models import Action, Category, HistoryPoint, Problem, Workstation
from .repository import InMemoryRepository

# ---------------------------------------------------------------------------
# Typical plant parameters
# ---------------------------------------------------------------------------
# (id, name, category, value, target, unit, frequency, direction, workstation)
_KPIS = [
    ("kpi-1", "Incidents sécurité", "security", 0, 0, "", "daily", "lower_is_better", None),
    ("kpi-2", "Jours sans accident", "security", 127, 100, "jours", "daily", "higher_is_better", None),
    ("kpi-3", "Taux de rebut", "quality", 2.3, 2.2, "%", "daily", "lower_is_better", None),
    ("kpi-4", "Taux de conformité", "quality", 98.5, 99, "%", "daily", "higher_is_better", None),
    ("kpi-5", "Réclamations client", "quality", 3, 2, "", "weekly", "lower_is_better", None),
    ("kpi-6", "Taux de livraison à temps", "delivery", 96.2, 95, "%", "daily", "higher_is_better", None),
    ("kpi-7", "Délai moyen de production", "delivery", 4.1, 4, "h", "daily", "lower_is_better", None),
    ("kpi-8", "Coût par unité", "cost", 12.5, 12, "€", "weekly", "lower_is_better", None),
    ("kpi-9", "Consommation énergie", "cost", 850, 900, "kWh", "daily", "lower_is_better", None),
    ("kpi-10", "TRS (OEE)", "performance", 85.3, 85, "%", "daily", "higher_is_better", None),
    ("kpi-11", "Productivité", "performance", 112, 100, "%", "daily", "higher_is_better", None),
    ("kpi-12", "Temps de cycle", "performance", 45, 42, "s", "daily", "lower_is_better", None),
    ("kpi-13", "Taux présence", "human", 94.5, 95, "%", "daily", "higher_is_better", None),
    ("kpi-14", "Heures formation", "human", 24, 20, "h", "monthly", "higher_is_better", None),
    ("kpi-15", "Déchets recyclés", "environment", 78, 80, "%", "weekly", "higher_is_better", None),
    ("kpi-16", "Émissions CO2", "environment", 42, 45, "t", "monthly", "lower_is_better", None),
    ("kpi-17", "Disponibilité machines", "workstation", 92, 90, "%", "daily", "higher_is_better", "ws-1"),
    ("kpi-18", "MTBF", "workstation", 156, 150, "h", "weekly", "higher_is_better", "ws-1"),
    ("kpi-19", "MTTR", "workstation", 2.5, 2, "h", "weekly", "lower_is_better", "ws-2"),
]

# (id, title, description, priority, status, category, due offset days, assignee)
_ACTIONS = [
    ("act-1", "Calibrer capteur ligne 3", "Recalibrer le capteur de température de la ligne 3 suite à dérive constatée", "high", "todo", "quality", 0, "Martin D."),
    ("act-2", "Formation sécurité équipe B", "Session de rappel des procédures de sécurité pour l'équipe B", "high", "in_progress", "security", 0, "Sophie L."),
    ("act-3", "Maintenance préventive M-102", "Maintenance préventive mensuelle de la machine M-102", "medium", "todo", "workstation", 1, "Pierre M."),
    ("act-4", "Optimiser flux logistique", "Réorganiser le flux de pièces entre les postes 4 et 5", "low", "in_progress", "delivery", 6, "Julie R."),
    ("act-5", "Analyser rebuts semaine 2", "Analyse des causes racines des rebuts de la semaine 2", "high", "done", "quality", -1, "Marc T."),
    ("act-6", "Mise à jour documentation", "Mettre à jour les fiches de poste suite aux modifications process", "low", "todo", "human", 11, "Anne B."),
    ("act-7", "Tri déchets zone stockage", "Réorganiser le tri sélectif dans la zone de stockage", "medium", "todo", "environment", 0, "Lucas G."),
    ("act-8", "Révision budget Q1", "Préparer la révision budgétaire du premier trimestre", "medium", "in_progress", "cost", 9, "Claire H."),
]

# (id, title, description, category, severity, status, escalated, age days, workstation)
_PROBLEMS = [
    ("prob-1", "Fuite hydraulique M-101", "Fuite détectée sur le circuit hydraulique principal de la machine M-101", "workstation", "high", "in_progress", True, 2, "ws-1"),
    ("prob-2", "Non-conformité lot #4521", "Lot #4521 présente un taux de défauts supérieur aux tolérances", "quality", "high", "open", False, 1, None),
    ("prob-3", "Retard approvisionnement", "Retard de livraison des composants XR-450 impactant la production", "delivery", "medium", "in_progress", False, 3, None),
    ("prob-4", "EPI manquants vestiaires", "Rupture de stock de gants et lunettes de protection dans les vestiaires", "security", "high", "resolved", False, 4, None),
    ("prob-5", "Dépassement consommation", "Consommation électrique anormalement élevée sur la ligne 2", "cost", "medium", "open", False, 1, "ws-3"),
    ("prob-6", "Absentéisme équipe nuit", "Taux d'absentéisme élevé sur l'équipe de nuit cette semaine", "human", "medium", "in_progress", True, 2, None),
]

_WORKSTATIONS = [
    ("ws-1", "Machine M-101", "machine", "operational"),
    ("ws-2", "Machine M-102", "machine", "maintenance"),
    ("ws-3", "Ligne d'assemblage L1", "station", "operational"),
    ("ws-4", "Poste de contrôle PC-1", "station", "operational"),
    ("ws-5", "Machine M-103", "machine", "down"),
]

_CATEGORY_COLORS = {
    "security": "#e74c3c",
    "quality": "#2ecc71",
    "delivery": "#3498db",
    "cost": "#f39c12",
    "performance": "#9b59b6",
    "human": "#1abc9c",
    "environment": "#27ae60",
    "workstation": "#95a5a6",
}


def _rng(seed: int | None) -> np.random.Generator:
    return np.random.default_rng(42 if seed is None else seed)


def generate_history(
    current_value: float,
    today: pd.Timestamp,
    days: int = 30,
    rng: np.random.Generator | None = None,
) -> tuple[HistoryPoint, ...]:
    """Daily samples around `current_value` (+/-10%), ending today at the current value."""
    rng = rng or _rng(None)
    dates = pd.date_range(end=today, periods=days + 1, freq="D")
    base = current_value if current_value else 0.5
    values = base + (rng.random(days) - 0.5) * base * 0.2
    values = np.round(values, 2)
    points = [HistoryPoint(timestamp=d, value=float(v)) for d, v in zip(dates[:-1], values)]
    points.append(HistoryPoint(timestamp=dates[-1], value=float(current_value)))
    return tuple(points)


def generate_categories() -> list[Category]:
    return [
        Category(id=f"cat-{i + 1}", code=code, name=label,
                 color=_CATEGORY_COLORS.get(code), display_order=i)
        for i, (code, label) in enumerate(CATEGORIES.items())
    ]


def generate_kpis(
    today: pd.Timestamp | None = None,
    days: int = 30,
    seed: int | None = None,
) -> list:
    """Generate simulated KPIs with `days` of history ending `today`."""
    today = pd.Timestamp.now().normalize() if today is None else pd.Timestamp(today).normalize()
    rng = _rng(seed)
    kpis = []
    for kid, name, category, value, target, unit, frequency, direction, ws in _KPIS:
        kpis.append(new_kpi(
            id=kid,
            name=name,
            category=category,
            current_value=float(value),
            target_value=float(target),
            history=generate_history(float(value), today, days, rng),
            unit=unit,
            frequency=frequency,
            direction=direction,
            workstation_id=ws,
        ))
    return kpis


def generate_actions(today: pd.Timestamp | None = None) -> list[Action]:
    today = pd.Timestamp.now().normalize() if today is None else pd.Timestamp(today).normalize()
    actions = []
    for aid, title, desc, priority, status, category, due_offset, assignee in _ACTIONS:
        created = today - pd.Timedelta(days=5)
        actions.append(Action(
            id=aid,
            title=title,
            description=desc,
            priority=priority,
            status=status,
            category=category,
            due_date=today + pd.Timedelta(days=due_offset),
            assignee=assignee,
            created_at=created,
            completed_at=today - pd.Timedelta(days=1) if status == "done" else None,
        ))
    return actions


def generate_problems(today: pd.Timestamp | None = None) -> list[Problem]:
    today = pd.Timestamp.now().normalize() if today is None else pd.Timestamp(today).normalize()
    problems = []
    for pid, title, desc, category, severity, status, escalated, age, ws in _PROBLEMS:
        created = today - pd.Timedelta(days=age)
        problems.append(Problem(
            id=pid,
            title=title,
            description=desc,
            category=category,
            severity=severity,
            status=status,
            escalated=escalated,
            created_at=created,
            resolved_at=created + pd.Timedelta(days=2) if status == "resolved" else None,
            workstation_id=ws,
        ))
    return problems


def generate_workstations() -> list[Workstation]:
    return [
        Workstation(id=wid, name=name, type=ws_type, status=status)
        for wid, name, ws_type, status in _WORKSTATIONS
    ]


def seed_repository(
    today: pd.Timestamp | None = None,
    seed: int | None = None,
) -> InMemoryRepository:
    """Repository pre-loaded with a full simulated plant."""
    return InMemoryRepository(
        kpis=generate_kpis(today, seed=seed),
        actions=generate_actions(today),
        problems=generate_problems(today),
        workstations=generate_workstations(),
        categories=generate_categories(),
    )
