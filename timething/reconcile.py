"""
Reconciliation - Forecast allocations against Harvest time entries.

Three inputs are folded into one client → project structure, always in
this order:

1. skeleton    → Harvest project assignments (clients, projects, tasks)
2. time        → Harvest time entries summed per project
3. allocations → Forecast assignments, merged per project and attached
                 through the project's Harvest id

The fold builds a fresh skeleton on every call and never mutates its
inputs, so reconciling the same inputs twice gives equal results.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from timething.dates import business_days_inclusive
from timething.errors import ReconciliationError
from timething.projects import ProjectSummary

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600


# =================================================
# MODELS
# =================================================
@dataclass
class AggregatedAssignment:
    """All Forecast assignments of one project inside the query window."""

    project_id: int
    project: Optional[str] = None
    project_code: Optional[str] = None
    harvest_id: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    project_start_date: Optional[str] = None
    project_end_date: Optional[str] = None
    days: int = 0
    period_allocation: float = 0
    allocation: float = 0

    @property
    def allocation_hours(self) -> float:
        return self.allocation / SECONDS_PER_HOUR


@dataclass
class Task:
    assignment_id: Optional[int]
    task_id: Optional[int]
    task_name: Optional[str]
    billable: Optional[bool] = None


@dataclass
class ReconciledProject:
    id: int
    name: Optional[str] = None
    code: Optional[str] = None
    tasks: List[Task] = field(default_factory=list)
    time_entries: List[Dict] = field(default_factory=list)
    total_hours: float = 0.0
    total_seconds: int = 0
    allocation: Optional[float] = None
    days: Optional[int] = None
    period_allocation: Optional[float] = None
    allocation_progress: Optional[float] = None

    @property
    def allocation_hours(self) -> Optional[float]:
        if self.allocation is None:
            return None
        return self.allocation / SECONDS_PER_HOUR

    @property
    def remaining_hours(self) -> Optional[float]:
        """Hours still to log to meet the allocation over the assignment days."""
        if self.allocation is None or self.days is None:
            return None
        return self.allocation / SECONDS_PER_HOUR * self.days - self.total_hours


@dataclass
class ClientGroup:
    client_id: int
    client_name: Optional[str]
    project_names: List[str] = field(default_factory=list)
    projects: Dict[int, ReconciledProject] = field(default_factory=dict)


@dataclass
class Reconciliation:
    clients: Dict[int, ClientGroup] = field(default_factory=dict)
    unmatched_entries: List[Dict] = field(default_factory=list)
    unmatched_assignments: List[AggregatedAssignment] = field(default_factory=list)

    def projects(self):
        for client in self.clients.values():
            yield from client.projects.values()


# =================================================
# ASSIGNMENT AGGREGATION
# =================================================
def _overlaps(spans: List[Tuple[str, str]], start: str, end: str) -> bool:
    return any(start <= other_end and other_start <= end for other_start, other_end in spans)


def aggregate_assignments(
    raw_assignments: List[Dict],
    project_index: Dict[int, ProjectSummary],
) -> List[AggregatedAssignment]:
    """
    Merge raw Forecast assignments per Forecast project id.

    - days              = Σ each assignment's own business-day span
    - period_allocation = Σ allocation × own days
    - allocation        = period_allocation / days (weighted daily average)

    project_index is keyed by Forecast id. Projects missing from it keep
    harvest_id=None and are not attached to anything later.

    Overlapping windows of one project are summed as-is, with a warning.
    """
    merged: Dict[int, AggregatedAssignment] = {}
    spans: Dict[int, List[Tuple[str, str]]] = {}

    for raw in raw_assignments or []:
        project_id = raw.get("project_id")
        if project_id is None:
            continue

        start, end = raw.get("start_date"), raw.get("end_date")
        if not start or not end:
            logger.warning(f"⚠️ Assignment {raw.get('id')} has no date range, skipping")
            continue
        days = business_days_inclusive(start, end)
        allocation = raw.get("allocation") or 0

        agg = merged.get(project_id)
        if agg is None:
            summary = project_index.get(project_id)
            agg = AggregatedAssignment(
                project_id=project_id,
                project=summary.name if summary else None,
                project_code=summary.code if summary else None,
                harvest_id=summary.harvest_id if summary else None,
                start_date=start,
                end_date=end,
                project_start_date=summary.start_date if summary else None,
                project_end_date=summary.end_date if summary else None,
            )
            merged[project_id] = agg
            spans[project_id] = []
        else:
            if _overlaps(spans[project_id], start, end):
                logger.warning(
                    f"⚠️ Overlapping assignments for Forecast project {project_id} "
                    f"({start} → {end}); allocations are summed"
                )
            agg.start_date = min(agg.start_date, start)
            agg.end_date = max(agg.end_date, end)

        spans[project_id].append((start, end))
        agg.days += days
        agg.period_allocation += allocation * days
        agg.allocation = agg.period_allocation / agg.days if agg.days else 0

    return list(merged.values())


# =================================================
# SKELETON
# =================================================
def build_skeleton(project_assignments: List[Dict]) -> Dict[int, ClientGroup]:
    """Pivot Harvest project assignments into client → project groups."""
    clients: Dict[int, ClientGroup] = {}

    for pa in project_assignments or []:
        project = pa.get("project") or {}
        client = pa.get("client") or {}
        client_id = client.get("id")
        project_id = project.get("id")
        if client_id is None or project_id is None:
            logger.warning(f"⚠️ Skipping project assignment {pa.get('id')} without client/project")
            continue

        # client first, so every project has a parent group
        if client_id not in clients:
            clients[client_id] = ClientGroup(
                client_id=client_id,
                client_name=client.get("name"),
            )
        group = clients[client_id]

        group.project_names.append(project.get("name"))
        group.projects[project_id] = ReconciledProject(
            id=project_id,
            name=project.get("name"),
            code=project.get("code"),
            tasks=[
                Task(
                    assignment_id=t.get("id"),
                    task_id=(t.get("task") or {}).get("id"),
                    task_name=(t.get("task") or {}).get("name"),
                    billable=t.get("billable"),
                )
                for t in pa.get("task_assignments") or []
            ],
        )

    return clients


# =================================================
# TIME ENTRIES
# =================================================
def _project_for_entry(clients: Dict[int, ClientGroup], entry: Dict) -> ReconciledProject:
    client_id = (entry.get("client") or {}).get("id")
    project_id = (entry.get("project") or {}).get("id")

    group = clients.get(client_id)
    if group is None or project_id not in group.projects:
        raise ReconciliationError(
            f"time entry {entry.get('id')} references client {client_id} / "
            f"project {project_id}, which is not among your Harvest project assignments",
            key=(client_id, project_id),
        )
    return group.projects[project_id]


def add_time_entries(clients: Dict[int, ClientGroup], entries: List[Dict]) -> List[Dict]:
    """
    Attach entries to their projects and total them.
    Returns the entries that matched no project; they touch no totals.
    """
    unmatched: List[Dict] = []

    for entry in entries or []:
        try:
            project = _project_for_entry(clients, entry)
        except ReconciliationError as e:
            logger.warning(f"⚠️ Skipping {e}")
            unmatched.append(entry)
            continue
        project.time_entries.append(entry)

    for group in clients.values():
        for project in group.projects.values():
            total_hours = sum(float(e.get("hours") or 0) for e in project.time_entries)
            project.total_hours = total_hours
            project.total_seconds = round(total_hours * SECONDS_PER_HOUR)

    return unmatched


# =================================================
# ALLOCATIONS
# =================================================
def _client_index(clients: Dict[int, ClientGroup]) -> Dict[int, int]:
    """
    Harvest project id → client id, built once per fold.
    A project listed under several clients resolves to the last one.
    """
    index: Dict[int, int] = {}
    for group in clients.values():
        for project_id in group.projects:
            index[project_id] = group.client_id
    return index


def locate_client(client_index: Dict[int, int], harvest_project_id) -> int:
    try:
        return client_index[harvest_project_id]
    except KeyError:
        raise ReconciliationError(
            f"Harvest project {harvest_project_id} is not among your Harvest "
            f"project assignments (unmapped, archived or never fetched)",
            key=harvest_project_id,
        )


def add_assignment_allocations(
    clients: Dict[int, ClientGroup], assignments: List[AggregatedAssignment]
) -> List[AggregatedAssignment]:
    """
    Copy merged allocation figures onto the matching Harvest projects.
    Returns the assignments whose Harvest project could not be located.
    """
    client_index = _client_index(clients)
    unmatched: List[AggregatedAssignment] = []

    for assignment in assignments or []:
        if not assignment.harvest_id:
            logger.debug(
                f"Forecast project {assignment.project_id} is not linked to Harvest, skipping"
            )
            continue

        try:
            client_id = locate_client(client_index, assignment.harvest_id)
        except ReconciliationError as e:
            logger.warning(f"⚠️ Skipping assignment for '{assignment.project}': {e}")
            unmatched.append(assignment)
            continue

        project = clients[client_id].projects[assignment.harvest_id]
        project.allocation = assignment.allocation
        project.days = assignment.days
        project.period_allocation = assignment.period_allocation
        project.allocation_progress = (
            project.total_seconds / assignment.period_allocation
            if assignment.period_allocation
            else None
        )

    return unmatched


# =================================================
# PUBLIC API
# =================================================
def reconcile(
    project_assignments: List[Dict],
    time_entries: List[Dict],
    assignments: List[AggregatedAssignment],
) -> Reconciliation:
    clients = build_skeleton(project_assignments)
    unmatched_entries = add_time_entries(clients, time_entries)
    unmatched_assignments = add_assignment_allocations(clients, assignments)

    return Reconciliation(
        clients=clients,
        unmatched_entries=unmatched_entries,
        unmatched_assignments=unmatched_assignments,
    )
