"""
Shop Floor Management — performance dashboard core

Role-gated KPI, corrective-action and problem tracking for production
workstations. The package is a set of pure decision functions over entity
snapshots; rendering, persistence and authentication stay with the host.

To connect a data store:
    Implement repository.Repository over the remote query/mutation client
    and pass it to the service functions. The entity dataclasses in
    models remain unchanged.

To connect to Streamlit:
    Call dashboard.dashboard_stats(), dashboard.category_stats() and
    dashboard.today_priorities() for cards and charts, and gate every
    button on permissions.can_edit()/lifecycle.can_transition().

To change who may do what:
    Edit config.ROLE_PERMISSIONS, or load a workbook with
    loaders.load_permission_matrix() and pass the matrix explicitly.
"""
