"""Metrics service - dashboard aggregates over a scope's tasks"""

from collections import Counter
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Profile, Task
from ...permissions import require_scope_access
from ...shared.timeutils import utcnow
from ..tasks.repository import TaskRepository
from .schemas import MetricsResponse, StatusCount, UserCount

TOP_USERS = 5


def compute_metrics(tasks: list[Task], now: datetime) -> MetricsResponse:
    """
    Completed means the status name contains "complet" (any case); overdue
    means a past due date on a task that is not completed.
    """
    completed = 0
    overdue = 0
    status_counts: Counter = Counter()
    status_colors: dict[str, Optional[str]] = {}
    user_counts: Counter = Counter()

    for task in tasks:
        is_completed = task.status is not None and task.status.is_completed
        if is_completed:
            completed += 1
        elif task.due_date is not None and task.due_date < now:
            overdue += 1

        status_name = task.status.name if task.status else "No status"
        status_counts[status_name] += 1
        status_colors.setdefault(status_name, task.status.color if task.status else None)

        if task.assignee is not None:
            user_counts[task.assignee.display_name] += 1

    return MetricsResponse(
        total=len(tasks),
        completed=completed,
        overdue=overdue,
        by_status=[
            StatusCount(name=name, count=count, color=status_colors[name])
            for name, count in status_counts.most_common()
        ],
        by_user=[UserCount(name=name, count=count) for name, count in user_counts.most_common(TOP_USERS)],
    )


def get_metrics(db: Session, user: Profile, team_id: Optional[str] = None) -> MetricsResponse:
    require_scope_access(db, team_id, user)
    tasks = TaskRepository.get_tasks(db, team_id, user.id)
    return compute_metrics(tasks, utcnow())
