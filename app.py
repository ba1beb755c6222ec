"""
Shop Floor Management — Interactive Dashboard

Run with:  streamlit run app.py
"""

import logging
import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent))

from sfm_dashboard.config import (
    ACTION_STATUSES,
    ALL,
    CATEGORIES,
    LOG_DATEFMT,
    LOG_FORMAT,
    PLANT_NAME,
    PRIORITIES,
    PROBLEM_STATUSES,
    ROLE_LABELS,
    ROLES,
)
from sfm_dashboard.dashboard import (
    category_stats,
    dashboard_stats,
    history_comparison,
    open_problems,
    problem_counters,
    today_priorities,
    workstation_overview,
    workstation_status_counts,
)
from sfm_dashboard.filters import filter_entities
from sfm_dashboard.kpis import achievement_pct, calc_variance
from sfm_dashboard.lifecycle import can_transition
from sfm_dashboard.permissions import can_delete, can_escalate, has_permission
from sfm_dashboard.service import (
    change_status,
    delete_entity,
    escalate_problem,
    record_kpi_value,
    toggle_action,
)
from sfm_dashboard.simulator import seed_repository

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Shop Floor Dashboard",
    page_icon="🏭",
    layout="wide",
    initial_sidebar_state="expanded",
)

STATUS_COLORS = {
    "success": "#2ecc71",
    "warning": "#f39c12",
    "danger": "#e74c3c",
}

# ---------------------------------------------------------------------------
# Session data
# ---------------------------------------------------------------------------
if "repo" not in st.session_state:
    st.session_state["repo"] = seed_repository()

repo = st.session_state["repo"]
today = pd.Timestamp.now().normalize()

# ---------------------------------------------------------------------------
# Sidebar (role simulation)
# ---------------------------------------------------------------------------
st.sidebar.title(PLANT_NAME)
st.sidebar.markdown("Performance Dashboard")
st.sidebar.divider()

role = st.sidebar.selectbox("Simulated role", ROLES, index=1, format_func=ROLE_LABELS.get)

page = st.sidebar.radio(
    "Navigate",
    ["Dashboard", "KPIs", "Actions", "Problems", "Workstations"],
)

st.sidebar.divider()
if st.sidebar.button("Reset demo data"):
    st.session_state["repo"] = seed_repository()
    st.rerun()


def show_result(result) -> None:
    if result.ok:
        st.rerun()
    else:
        st.warning(str(result.denied))


def status_card(label: str, value, color: str) -> None:
    st.markdown(
        f"""
        <div style="background: linear-gradient(135deg, {color}22, {color}11);
                    border-left: 4px solid {color};
                    border-radius: 8px; padding: 16px; margin-bottom: 8px;">
            <div style="font-size: 13px; color: #888; font-weight: 600; text-transform: uppercase;">{label}</div>
            <div style="font-size: 28px; font-weight: 700; color: #222; margin: 4px 0;">{value}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def filter_bar(key: str, statuses: tuple[str, ...], with_priority: bool = True) -> dict:
    cols = st.columns(4)
    criteria = {
        "search_text": cols[0].text_input("Search", key=f"{key}_search"),
        "category": cols[1].selectbox("Category", [ALL, *CATEGORIES], key=f"{key}_cat"),
        "status": cols[2].selectbox("Status", [ALL, *statuses], key=f"{key}_status"),
    }
    if with_priority:
        criteria["priority"] = cols[3].selectbox("Priority", [ALL, *PRIORITIES], key=f"{key}_prio")
    return criteria


# ===========================================================================
# PAGE: Dashboard
# ===========================================================================
if page == "Dashboard":
    st.title("Dashboard")
    st.caption(f"{today:%A %d %B %Y} — role: **{ROLE_LABELS[role]}**")

    kpis = repo.list("kpis")
    actions = repo.list("actions")
    stats = dashboard_stats(kpis, actions, repo.list("problems"))

    cols = st.columns(4)
    with cols[0]:
        status_card("KPIs on target", f"{stats['kpis']['success']}/{stats['kpis']['total']}", STATUS_COLORS["success"])
    with cols[1]:
        status_card("KPIs in danger", stats["kpis"]["danger"], STATUS_COLORS["danger"])
    with cols[2]:
        status_card("Open actions", stats["actions"]["todo"] + stats["actions"]["in_progress"], STATUS_COLORS["warning"])
    with cols[3]:
        status_card("Open problems", stats["problems"]["open"], STATUS_COLORS["danger"])

    st.divider()
    col1, col2 = st.columns([1, 1])

    with col1:
        st.subheader("KPIs by category")
        stats_by_cat = category_stats(kpis, list(CATEGORIES))
        labels = [CATEGORIES[cat] for cat in stats_by_cat]
        fig = go.Figure()
        for status, color in STATUS_COLORS.items():
            fig.add_trace(go.Bar(
                y=labels,
                x=[counts[status] for counts in stats_by_cat.values()],
                name=status,
                orientation="h",
                marker_color=color,
            ))
        fig.update_layout(
            barmode="stack", height=380, plot_bgcolor="rgba(0,0,0,0)",
            margin=dict(l=10, r=10, t=10, b=40),
        )
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        st.subheader("Today's priorities")
        priorities = today_priorities(actions, today)
        c1, c2, c3 = st.columns(3)
        c1.metric("Urgent", len(priorities["urgent"]))
        c2.metric("Due today", len(priorities["due_today"]))
        c3.metric("Done", len(priorities["completed_today"]))

        for action in priorities["urgent"] + priorities["due_today"]:
            allowed = can_transition(action, "done", role)
            if st.button(
                f"{'🔴' if action.priority == 'high' else '🟠'} {action.title}",
                key=f"prio_{action.id}",
                disabled=not allowed,
                use_container_width=True,
            ):
                show_result(toggle_action(repo, action.id, role))


# ===========================================================================
# PAGE: KPIs
# ===========================================================================
elif page == "KPIs":
    st.title("KPIs")

    criteria = filter_bar("kpi", tuple(STATUS_COLORS), with_priority=False)
    kpis = filter_entities(repo.list("kpis"), **criteria)
    st.caption(f"{len(kpis)} KPI(s)")

    table = pd.DataFrame([
        {
            "name": k.name,
            "category": CATEGORIES.get(k.category, k.category),
            "value": k.current_value,
            "target": k.target_value,
            "unit": k.unit,
            "% target": achievement_pct(k.current_value, k.target_value),
            "variance %": calc_variance(k.current_value, k.target_value)[1],
            "status": k.status,
            "trend": k.trend,
        }
        for k in kpis
    ])
    if not table.empty:
        def color_status(val):
            color = STATUS_COLORS.get(val, "#333")
            return f"background-color: {color}22; color: {color}"

        st.dataframe(table.style.map(color_status, subset=["status"]), use_container_width=True, hide_index=True)

        st.subheader("History")
        wide = history_comparison(kpis, days=30)
        if not wide.empty:
            fig = go.Figure()
            for name in wide.columns:
                fig.add_trace(go.Scatter(x=wide.index, y=wide[name], name=name, mode="lines+markers"))
            fig.update_layout(height=400, plot_bgcolor="rgba(0,0,0,0)")
            st.plotly_chart(fig, use_container_width=True)

        if has_permission(role, "edit_kpis"):
            st.subheader("Record a value")
            c1, c2, c3 = st.columns([2, 1, 1])
            target_kpi = c1.selectbox("KPI", kpis, format_func=lambda k: k.name)
            value = c2.number_input("Value", value=float(target_kpi.current_value))
            if c3.button("Record"):
                show_result(record_kpi_value(repo, target_kpi.id, value, role))


# ===========================================================================
# PAGE: Actions
# ===========================================================================
elif page == "Actions":
    st.title("Corrective actions")

    criteria = filter_bar("act", ACTION_STATUSES)
    actions = filter_entities(repo.list("actions"), **criteria)

    columns = st.columns(len(ACTION_STATUSES))
    for col, status in zip(columns, ACTION_STATUSES):
        with col:
            st.subheader(status.replace("_", " ").title())
            for action in (a for a in actions if a.status == status):
                with st.container(border=True):
                    st.markdown(f"**{action.title}**  \n{action.description}")
                    due = f"{action.due_date:%d/%m/%Y}" if action.due_date is not None else "—"
                    st.caption(f"{action.priority} · {action.assignee or '—'} · due {due}")
                    targets = [s for s in ACTION_STATUSES if s != status]
                    buttons = st.columns(len(targets) + 1)
                    for button_col, new_status in zip(buttons, targets):
                        if button_col.button(
                            f"→ {new_status}",
                            key=f"{action.id}_{new_status}",
                            disabled=not can_transition(action, new_status, role),
                        ):
                            show_result(change_status(repo, "actions", action.id, new_status, role))
                    if buttons[-1].button(
                        "🗑", key=f"{action.id}_del", disabled=not can_delete(role, "actions")
                    ):
                        show_result(delete_entity(repo, "actions", action.id, role))


# ===========================================================================
# PAGE: Problems
# ===========================================================================
elif page == "Problems":
    st.title("Problems")

    counters = problem_counters(repo.list("problems"))
    cols = st.columns(4)
    cols[0].metric("Open", counters["open"])
    cols[1].metric("In progress", counters["in_progress"])
    cols[2].metric("Escalated", counters["escalated"])
    cols[3].metric("High severity", counters["high_severity"])

    criteria = filter_bar("prob", PROBLEM_STATUSES)
    problems = filter_entities(open_problems(repo.list("problems")) + [
        p for p in repo.list("problems") if p.status == "resolved"
    ], **criteria)

    for problem in problems:
        with st.container(border=True):
            flag = " ⬆ escalated" if problem.escalated else ""
            st.markdown(f"**{problem.title}** — {problem.severity} / {problem.status}{flag}")
            st.caption(problem.description)
            targets = [s for s in PROBLEM_STATUSES if s != problem.status]
            buttons = st.columns(len(targets) + 1)
            for button_col, new_status in zip(buttons, targets):
                if button_col.button(
                    f"→ {new_status}",
                    key=f"{problem.id}_{new_status}",
                    disabled=not can_transition(problem, new_status, role),
                ):
                    show_result(change_status(repo, "problems", problem.id, new_status, role))
            if buttons[-1].button(
                "Escalate",
                key=f"{problem.id}_esc",
                disabled=problem.escalated or not can_escalate(role),
            ):
                show_result(escalate_problem(repo, problem.id, role))


# ===========================================================================
# PAGE: Workstations
# ===========================================================================
elif page == "Workstations":
    st.title("Workstations")

    workstations = repo.list("workstations")
    counts = workstation_status_counts(workstations)
    cols = st.columns(3)
    cols[0].metric("Operational", counts["operational"])
    cols[1].metric("Maintenance", counts["maintenance"])
    cols[2].metric("Down", counts["down"])

    overview = workstation_overview(workstations, repo.list("kpis"), repo.list("problems"))
    st.dataframe(
        pd.DataFrame([
            {
                "workstation": row["name"],
                "status": row["status"],
                "kpis": row["kpis"]["total"],
                "kpis in danger": row["kpis"]["danger"],
                "open problems": row["open_problems"],
            }
            for row in overview
        ]),
        use_container_width=True,
        hide_index=True,
    )
