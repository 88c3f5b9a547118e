"""
Recurring task service - the task generator run by the scheduler, and the
management of recurring task rules.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...activity_logger import log_activity
from ...config import SCHEDULER_TIMEZONE
from ...models import Profile, RecurringTask, Task
from ...permissions import can_manage_scope, get_membership, require_scope_access
from ...shared.timeutils import utcnow
from ..statuses.repository import StatusRepository
from .recurrence import compute_first_occurrence, compute_next_occurrence
from .repository import RecurringTaskRepository
from .schemas import RecurringTaskCreate, RecurringTaskUpdate

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ("frequency", "time_of_day", "days_of_week", "day_of_month")


@dataclass
class RecurringRunResult:
    tasks_created: int = 0
    routines_processed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_response(self) -> dict:
        response = {
            "message": "Process completed" if self.routines_processed else "No recurring tasks due",
            "tasks_created": self.tasks_created,
            "routines_processed": self.routines_processed,
        }
        if self.errors:
            response["errors"] = self.errors
        return response


def _to_local(naive_utc: datetime) -> datetime:
    return naive_utc.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(SCHEDULER_TIMEZONE))


def _to_naive_utc(local: datetime) -> datetime:
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def next_run_after(rule: RecurringTask, now: datetime) -> datetime:
    """Next run of a rule after a run at `now` (naive UTC in, naive UTC out)"""
    local = compute_next_occurrence(
        rule.frequency,
        rule.time_of_day,
        _to_local(now),
        days_of_week=rule.days_of_week,
        day_of_month=rule.day_of_month,
    )
    return _to_naive_utc(local)


def first_run(rule: RecurringTask, now: datetime) -> datetime:
    """First run of a new or rescheduled rule (naive UTC in, naive UTC out)"""
    local = compute_first_occurrence(
        rule.frequency,
        rule.time_of_day,
        _to_local(now),
        days_of_week=rule.days_of_week,
        day_of_month=rule.day_of_month,
    )
    return _to_naive_utc(local)


def _resolve_status_id(db: Session, rule: RecurringTask) -> Optional[str]:
    """The rule's default status while it is still active, else the scope's first active status"""
    if rule.default_status_id:
        status = StatusRepository.get_status_by_id(db, rule.default_status_id)
        if status is not None and status.is_active:
            return status.id
    fallback = StatusRepository.get_first_active(db, rule.team_id, rule.user_id)
    return fallback.id if fallback else None


def create_recurring_tasks(db: Session, now: Optional[datetime] = None) -> RecurringRunResult:
    """
    Create one task for every active rule that is due, then move each rule to
    its next occurrence.

    Each rule is committed on its own (task insert plus rule update); a failing
    rule is rolled back and reported, and the batch continues. Concurrent runs
    are not locked against each other, so a rule may fire twice (at-least-once).
    """
    now = now or utcnow()
    result = RecurringRunResult()

    rules = RecurringTaskRepository.get_due_rules(db, now)
    if not rules:
        logger.info("⏰ No recurring tasks due")
        return result

    result.routines_processed = len(rules)
    logger.info(f"⏰ Processing {len(rules)} due recurring task rule(s)")

    for rule in rules:
        rule_id = rule.id
        try:
            task = Task(
                title=rule.title,
                description=rule.description,
                priority=rule.priority or "medium",
                status_id=_resolve_status_id(db, rule),
                team_id=rule.team_id,
                created_by=rule.user_id,
                assigned_to=rule.assigned_to,
                start_date=now,
                due_date=None,
                notify_email=None,
                recurring_task_id=rule.id,
            )
            db.add(task)

            rule.last_created_at = now
            rule.next_scheduled_at = next_run_after(rule, now)
            rule.updated_at = now
            db.commit()

            result.tasks_created += 1
            logger.info(f"✅ Created task {task.id} from rule {rule_id}, next run {rule.next_scheduled_at}")
        except Exception as e:
            db.rollback()
            message = f"Error creating task for routine {rule_id}: {e}"
            result.errors.append(message)
            logger.error(f"❌ {message}")

    logger.info(
        f"🏁 Recurring run done: {result.tasks_created} created, "
        f"{result.routines_processed} processed, {len(result.errors)} errors"
    )
    return result


class RecurringTaskService:
    """Service layer for recurring task rule management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RecurringTaskRepository()

    def _check_refs(
        self, team_id: Optional[str], user: Profile, status_id: Optional[str], assigned_to: Optional[str]
    ) -> None:
        if status_id:
            status = StatusRepository.get_status_by_id(self.db, status_id)
            in_scope = status is not None and (
                status.team_id == team_id if team_id else status.team_id is None and status.created_by == user.id
            )
            if not in_scope:
                raise HTTPException(status_code=400, detail="Status does not belong to this scope")
        if assigned_to:
            if team_id is None and assigned_to != user.id:
                raise HTTPException(status_code=400, detail="Personal rules can only be assigned to yourself")
            if team_id and not get_membership(self.db, team_id, assigned_to):
                raise HTTPException(status_code=400, detail="Assignee is not a member of this team")

    def get_rule(self, rule_id: str, user: Profile) -> RecurringTask:
        rule = self.repo.get_rule(self.db, rule_id)
        if not rule:
            raise HTTPException(status_code=404, detail="Recurring task not found")
        if rule.team_id is None:
            if rule.user_id != user.id:
                raise HTTPException(status_code=404, detail="Recurring task not found")
        elif not get_membership(self.db, rule.team_id, user.id):
            raise HTTPException(status_code=404, detail="Recurring task not found")
        return rule

    def _require_edit(self, rule: RecurringTask, user: Profile) -> None:
        """Rule owners edit their rules; team owners and admins edit any team rule"""
        if rule.user_id == user.id:
            return
        membership = get_membership(self.db, rule.team_id, user.id) if rule.team_id else None
        if membership is None or not can_manage_scope(membership):
            raise HTTPException(status_code=403, detail="You can't modify this recurring task")

    def get_rules(self, user: Profile, team_id: Optional[str] = None) -> list[RecurringTask]:
        require_scope_access(self.db, team_id, user)
        return self.repo.get_rules(self.db, team_id, user.id)

    def create_rule(self, data: RecurringTaskCreate, user: Profile) -> RecurringTask:
        require_scope_access(self.db, data.team_id, user)
        self._check_refs(data.team_id, user, data.default_status_id, data.assigned_to)

        rule = RecurringTask(
            user_id=user.id,
            team_id=data.team_id,
            title=data.title.strip(),
            description=data.description,
            priority=data.priority,
            frequency=data.frequency,
            time_of_day=data.time_of_day,
            days_of_week=data.days_of_week if data.frequency == "weekly" else None,
            day_of_month=data.day_of_month if data.frequency == "monthly" else None,
            default_status_id=data.default_status_id,
            assigned_to=data.assigned_to,
            is_active=True,
        )
        rule.next_scheduled_at = first_run(rule, utcnow())
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        logger.info(f"🆕 Recurring task '{rule.title}' ({rule.frequency}) first run {rule.next_scheduled_at}")

        log_activity(
            self.db, "created", "recurring_task", rule.id, rule.team_id, user,
            {"title": rule.title, "frequency": rule.frequency},
        )
        return rule

    def update_rule(self, rule_id: str, data: RecurringTaskUpdate, user: Profile) -> RecurringTask:
        rule = self.get_rule(rule_id, user)
        self._require_edit(rule, user)
        updates = data.model_dump(exclude_unset=True)

        # Validate the merged rule through the create schema
        merged = {
            key: getattr(rule, key)
            for key in ("title", "description", "priority", "frequency", "time_of_day",
                        "days_of_week", "day_of_month", "default_status_id", "assigned_to")
        }
        merged.update(updates)
        try:
            validated = RecurringTaskCreate(team_id=rule.team_id, **merged)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        self._check_refs(rule.team_id, user, validated.default_status_id, validated.assigned_to)

        values = validated.model_dump(exclude={"team_id"})
        values["title"] = values["title"].strip()
        if values["frequency"] != "weekly":
            values["days_of_week"] = None
        if values["frequency"] != "monthly":
            values["day_of_month"] = None

        reschedule = any(values[key] != getattr(rule, key) for key in SCHEDULE_FIELDS)
        for key, value in values.items():
            setattr(rule, key, value)
        if reschedule:
            rule.next_scheduled_at = first_run(rule, utcnow())
        self.db.commit()
        self.db.refresh(rule)

        log_activity(
            self.db, "updated", "recurring_task", rule.id, rule.team_id, user,
            {"title": rule.title, "fields": sorted(updates.keys())},
        )
        return rule

    def set_active(self, rule_id: str, is_active: bool, user: Profile) -> RecurringTask:
        rule = self.get_rule(rule_id, user)
        self._require_edit(rule, user)
        if rule.is_active == is_active:
            return rule

        updates = {"is_active": is_active}
        if is_active:
            # Resumed rules start from now
            updates["next_scheduled_at"] = first_run(rule, utcnow())
        rule = self.repo.update_rule(self.db, rule, **updates)

        log_activity(
            self.db, "activated" if is_active else "deactivated", "recurring_task", rule.id, rule.team_id,
            user, {"title": rule.title},
        )
        return rule

    def delete_rule(self, rule_id: str, user: Profile) -> None:
        rule = self.get_rule(rule_id, user)
        self._require_edit(rule, user)
        title, team_id = rule.title, rule.team_id

        self.db.query(Task).filter(Task.recurring_task_id == rule_id).update(
            {Task.recurring_task_id: None}, synchronize_session=False
        )
        self.repo.delete_rule(self.db, rule)
        logger.info(f"🗑️ Deleted recurring task {rule_id}")
        log_activity(self.db, "deleted", "recurring_task", rule_id, team_id, user, {"title": title})
