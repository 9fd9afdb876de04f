"""
Console rendering of a Reconciliation.
"""

from typing import Callable, List, Optional

from timething.reconcile import Reconciliation, ReconciledProject, SECONDS_PER_HOUR

RULE_HEAVY = "=" * 60
RULE_LIGHT = "-" * 60


def fmt_number(value: Optional[float], places: int = 2) -> str:
    """Round to `places`, dropping a trailing .0 (10.0 -> "10", 10.5 -> "10.5")."""
    if value is None:
        return "n/a"
    rounded = round(value, places)
    if rounded == int(rounded):
        return str(int(rounded))
    return str(rounded)


def render_project(project: ReconciledProject) -> List[str]:
    utilization = (
        f"{fmt_number(project.allocation_progress * 100)}%"
        if project.allocation_progress is not None
        else "n/a"
    )
    return [
        RULE_HEAVY,
        f"{project.code} / {project.name} ({project.id})",
        RULE_LIGHT,
        f"Logged: {fmt_number(project.total_hours)} hours",
        f"Allocated Daily: {fmt_number(project.allocation / SECONDS_PER_HOUR)} hours",
        f"Utilization: {utilization}",
        f"Remaining Hours: {fmt_number(project.remaining_hours)} hours",
        RULE_LIGHT + "\n",
    ]


def render_report(reconciliation: Reconciliation, truncated: bool = False) -> List[str]:
    """
    One block per project with a positive allocation, then the grand total.
    Projects without an allocation have nothing to reconcile and are left out.
    """
    lines: List[str] = []
    total_hours_logged = 0.0

    for project in reconciliation.projects():
        if not project.allocation or project.allocation <= 0:
            continue
        lines.extend(render_project(project))
        total_hours_logged += project.total_hours

    lines.append(f"Total Hours Logged: {fmt_number(total_hours_logged)} hours")

    if reconciliation.unmatched_entries:
        lines.append(
            f"Note: time entries not counted (no assigned Harvest project): "
            f"{len(reconciliation.unmatched_entries)}"
        )
    if reconciliation.unmatched_assignments:
        names = ", ".join(
            str(a.project or a.project_id) for a in reconciliation.unmatched_assignments
        )
        lines.append(f"Note: allocations skipped for unmapped projects: {names}")
    if truncated:
        lines.append("Note: some results hit the page limit and may be incomplete.")

    return lines


def print_report(
    reconciliation: Reconciliation,
    truncated: bool = False,
    out: Callable[[str], None] = print,
):
    for line in render_report(reconciliation, truncated=truncated):
        out(line)
