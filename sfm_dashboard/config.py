"""
Configuration: roles, permission matrix, enumerations, constants.

ROLE_PERMISSIONS maps each role to the permission tags it is granted.
It is plain data: swap it for a loaded table (see loaders.permission_table)
or a synthetic one in tests.
"""

# ---------------------------------------------------------------------------
# Plant identity
# ---------------------------------------------------------------------------
PLANT_NAME = "Shop Floor"

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------
ROLES = ("admin", "manager", "team_leader", "operator")

ROLE_LABELS: dict[str, str] = {
    "admin": "Administrateur",
    "manager": "Manager",
    "team_leader": "Chef d'équipe",
    "operator": "Opérateur",
}

# Ordered from most to least privileged
ROLE_HIERARCHY: list[str] = ["admin", "manager", "team_leader", "operator"]

# ---------------------------------------------------------------------------
# Permission vocabulary (closed)
# ---------------------------------------------------------------------------
PERMISSIONS: tuple[str, ...] = (
    "view_kpis", "create_kpis", "edit_kpis", "delete_kpis",
    "view_actions", "create_actions", "edit_actions", "delete_actions", "complete_actions",
    "view_problems", "create_problems", "edit_problems", "delete_problems", "escalate_problems",
    "view_workstations", "manage_workstations",
    "view_reports", "generate_reports",
    "view_settings", "manage_users", "manage_categories",
)

# ---------------------------------------------------------------------------
# Default permission matrix
# ---------------------------------------------------------------------------
ROLE_PERMISSIONS: dict[str, list[str]] = {
    "admin": list(PERMISSIONS),
    "manager": [
        "view_kpis", "create_kpis", "edit_kpis",
        "view_actions", "create_actions", "edit_actions", "delete_actions", "complete_actions",
        "view_problems", "create_problems", "edit_problems", "escalate_problems",
        "view_workstations", "manage_workstations",
        "view_reports", "generate_reports",
        "view_settings", "manage_categories",
    ],
    "team_leader": [
        "view_kpis", "edit_kpis",
        "view_actions", "create_actions", "edit_actions", "complete_actions",
        "view_problems", "create_problems", "edit_problems", "escalate_problems",
        "view_workstations",
        "view_reports",
        "view_settings",
    ],
    "operator": [
        "view_kpis",
        "view_actions", "complete_actions",
        "view_problems", "create_problems",
        "view_workstations",
        "view_settings",
    ],
}

# ---------------------------------------------------------------------------
# Entity kinds and enumerations
# ---------------------------------------------------------------------------
ENTITY_KINDS = ("kpis", "actions", "problems")

CATEGORIES: dict[str, str] = {
    "security": "Sécurité",
    "quality": "Qualité",
    "delivery": "Livraison",
    "cost": "Coût",
    "performance": "Performance",
    "human": "Humain",
    "environment": "Environnement",
    "workstation": "Poste",
}

PRIORITIES = ("low", "medium", "high")
PRIORITY_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2}

ACTION_STATUSES = ("todo", "in_progress", "done")
PROBLEM_STATUSES = ("open", "in_progress", "resolved")

KPI_STATUSES = ("success", "warning", "danger")
KPI_TRENDS = ("up", "down", "stable")
FREQUENCIES = ("daily", "weekly", "monthly")

WORKSTATION_TYPES = ("machine", "station")
WORKSTATION_STATUSES = ("operational", "maintenance", "down")

# Colour codes used by the persistence layer for KPI status
KPI_STATUS_ALIASES: dict[str, str] = {
    "green": "success",
    "orange": "warning",
    "amber": "warning",
    "red": "danger",
}

# ---------------------------------------------------------------------------
# KPI classification
# ---------------------------------------------------------------------------
# direction: "higher_is_better" or "lower_is_better"
# amber_band: percent of target tolerated before a KPI turns danger
DIRECTIONS = ("higher_is_better", "lower_is_better")
DEFAULT_DIRECTION = "higher_is_better"
DEFAULT_AMBER_BAND = 5.0

# Deltas at or below this are reported as a stable trend
TREND_EPSILON = 1e-6

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
ALL = "all"

# category_stats bucket for KPIs without a category
UNCATEGORISED = "uncategorised"

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"
