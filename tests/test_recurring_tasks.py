from datetime import datetime, timedelta

import pytest
from conftest import SERVICE_HEADERS, statuses_of

from tazk.domain.recurring import service as recurring_service
from tazk.domain.recurring.service import create_recurring_tasks
from tazk.models import ActivityLog, RecurringTask, Task, TaskStatus
from tazk.shared.timeutils import utcnow

NOW = datetime(2024, 3, 11, 9, 5)


def add_rule(db, user_id, **fields) -> RecurringTask:
    values = {
        "user_id": user_id,
        "title": "Water the plants",
        "frequency": "daily",
        "time_of_day": "09:00:00",
        "next_scheduled_at": NOW - timedelta(minutes=5),
        "is_active": True,
    }
    values.update(fields)
    rule = RecurringTask(**values)
    db.add(rule)
    db.commit()
    return rule


def test_due_rule_creates_task_and_moves_schedule(db, alice):
    rule = add_rule(db, alice.id, description="All of them", priority="high", assigned_to=alice.id)

    result = create_recurring_tasks(db, now=NOW)

    assert result.to_response() == {
        "message": "Process completed",
        "tasks_created": 1,
        "routines_processed": 1,
    }
    task = db.query(Task).filter(Task.recurring_task_id == rule.id).one()
    assert task.title == "Water the plants"
    assert task.description == "All of them"
    assert task.priority == "high"
    assert task.created_by == alice.id
    assert task.assigned_to == alice.id
    assert task.start_date == NOW
    assert task.due_date is None

    db.refresh(rule)
    assert rule.last_created_at == NOW
    assert rule.next_scheduled_at == datetime(2024, 3, 12, 9, 0)



def personal_status(db, user_id, name) -> TaskStatus:
    return (
        db.query(TaskStatus)
        .filter(TaskStatus.team_id.is_(None), TaskStatus.created_by == user_id, TaskStatus.name == name)
        .one()
    )


def test_rule_without_default_status_uses_first_active_status(db, alice):
    rule = add_rule(db, alice.id)

    create_recurring_tasks(db, now=NOW)

    task = db.query(Task).filter(Task.recurring_task_id == rule.id).one()
    assert task.status_id == personal_status(db, alice.id, "Pending").id


def test_rule_with_deactivated_default_status_falls_back(db, alice):
    pending = personal_status(db, alice.id, "Pending")
    pending.is_active = False
    in_progress = personal_status(db, alice.id, "In progress")
    rule = add_rule(db, alice.id, default_status_id=pending.id)

    create_recurring_tasks(db, now=NOW)

    assert db.query(Task).filter(Task.recurring_task_id == rule.id).one().status_id == in_progress.id


def test_rule_keeps_its_active_default_status(db, alice):
    completed = personal_status(db, alice.id, "Completed")
    rule = add_rule(db, alice.id, default_status_id=completed.id)

    create_recurring_tasks(db, now=NOW)

    assert db.query(Task).filter(Task.recurring_task_id == rule.id).one().status_id == completed.id

def test_inactive_and_future_rules_are_skipped(db, alice):
    add_rule(db, alice.id, is_active=False)
    add_rule(db, alice.id, next_scheduled_at=NOW + timedelta(hours=1))
    add_rule(db, alice.id, next_scheduled_at=None)

    result = create_recurring_tasks(db, now=NOW)

    assert result.to_response() == {
        "message": "No recurring tasks due",
        "tasks_created": 0,
        "routines_processed": 0,
    }
    assert db.query(Task).count() == 0


def test_failing_rule_is_reported_and_batch_continues(db, alice):
    broken = add_rule(db, alice.id, frequency="hourly", next_scheduled_at=NOW - timedelta(hours=2))
    good = add_rule(db, alice.id, title="Standup")

    response = create_recurring_tasks(db, now=NOW).to_response()

    assert response["tasks_created"] == 1
    assert response["routines_processed"] == 2
    assert len(response["errors"]) == 1
    assert response["errors"][0].startswith(f"Error creating task for routine {broken.id}:")
    assert db.query(Task).one().recurring_task_id == good.id

    db.refresh(broken)
    assert broken.last_created_at is None


def test_weekly_rule_uses_configured_days(db, alice):
    rule = add_rule(db, alice.id, frequency="weekly", days_of_week=[1, 5])

    create_recurring_tasks(db, now=NOW)

    db.refresh(rule)
    # Monday run -> Friday
    assert rule.next_scheduled_at == datetime(2024, 3, 15, 9, 0)


def test_schedule_follows_scheduler_timezone(db, alice, monkeypatch):
    monkeypatch.setattr(recurring_service, "SCHEDULER_TIMEZONE", "America/New_York")
    now = datetime(2024, 7, 1, 14, 0)  # 10:00 in New York (EDT)
    rule = add_rule(db, alice.id, next_scheduled_at=now - timedelta(minutes=1))

    create_recurring_tasks(db, now=now)

    db.refresh(rule)
    assert rule.next_scheduled_at == datetime(2024, 7, 2, 13, 0)


def test_second_run_does_not_duplicate(db, alice):
    add_rule(db, alice.id)

    create_recurring_tasks(db, now=NOW)
    again = create_recurring_tasks(db, now=NOW + timedelta(minutes=15))

    assert again.tasks_created == 0
    assert db.query(Task).count() == 1


def test_function_endpoint_requires_service_key(client, alice):
    assert client.post("/functions/create-recurring-tasks").status_code == 401
    assert client.post("/functions/create-recurring-tasks", headers=alice.headers).status_code == 401


def test_function_endpoint_runs_generator(client, db, alice):
    add_rule(db, alice.id, next_scheduled_at=utcnow() - timedelta(minutes=1))

    response = client.post("/functions/create-recurring-tasks", headers=SERVICE_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"message": "Process completed", "tasks_created": 1, "routines_processed": 1}

    response = client.post("/functions/create-recurring-tasks", headers={"apikey": "test-service-key"})
    assert response.json()["message"] == "No recurring tasks due"


def test_function_endpoint_returns_500_on_unexpected_error(client, monkeypatch):
    def explode(db, now=None):
        raise RuntimeError("database is gone")

    from tazk.domain.recurring import router as recurring_router

    monkeypatch.setattr(recurring_router, "create_recurring_tasks", explode)
    response = client.post("/functions/create-recurring-tasks", headers=SERVICE_HEADERS)

    assert response.status_code == 500
    assert response.json() == {"error": "database is gone"}


class TestRuleManagement:
    def test_create_daily_rule_schedules_first_run(self, client, alice):
        response = client.post(
            "/recurring-tasks",
            json={"title": "Inbox zero", "frequency": "daily", "time_of_day": "07:30"},
            headers=alice.headers,
        )

        assert response.status_code == 201
        rule = response.json()
        assert rule["time_of_day"] == "07:30:00"
        assert rule["is_active"] is True
        next_run = datetime.fromisoformat(rule["next_scheduled_at"])
        assert utcnow() < next_run <= utcnow() + timedelta(days=1)
        assert (next_run.hour, next_run.minute) == (7, 30)

    def test_weekly_rule_requires_days(self, client, alice):
        response = client.post(
            "/recurring-tasks",
            json={"title": "Review", "frequency": "weekly", "time_of_day": "09:00"},
            headers=alice.headers,
        )
        assert response.status_code == 422

    @pytest.mark.parametrize(
        "payload",
        [
            {"title": "x", "frequency": "hourly"},
            {"title": "x", "frequency": "daily", "time_of_day": "24:00"},
            {"title": "x", "frequency": "weekly", "days_of_week": [7]},
            {"title": "x", "frequency": "monthly", "day_of_month": 32},
            {"title": "x", "frequency": "daily", "priority": "urgent"},
        ],
    )
    def test_invalid_rules_are_rejected(self, client, alice, payload):
        assert client.post("/recurring-tasks", json=payload, headers=alice.headers).status_code == 422

    def test_monthly_rule_defaults_to_first_day(self, client, alice):
        rule = client.post(
            "/recurring-tasks", json={"title": "Rent", "frequency": "monthly"}, headers=alice.headers
        ).json()
        assert rule["day_of_month"] == 1
        assert datetime.fromisoformat(rule["next_scheduled_at"]).day == 1

    def test_update_reschedules_and_logs(self, client, db, alice):
        rule = client.post(
            "/recurring-tasks", json={"title": "Rent", "frequency": "daily"}, headers=alice.headers
        ).json()

        response = client.patch(
            f"/recurring-tasks/{rule['id']}",
            json={"frequency": "weekly", "days_of_week": [3, 3, 1], "time_of_day": "18:00"},
            headers=alice.headers,
        )

        assert response.status_code == 200
        updated = response.json()
        assert updated["days_of_week"] == [1, 3]
        next_run = datetime.fromisoformat(updated["next_scheduled_at"])
        assert next_run.hour == 18
        assert next_run.isoweekday() % 7 in (1, 3)

        actions = [row.action for row in db.query(ActivityLog).filter(ActivityLog.entity_id == rule["id"])]
        assert sorted(actions) == ["created", "updated"]

    def test_update_to_weekly_without_days_is_rejected(self, client, alice):
        rule = client.post(
            "/recurring-tasks", json={"title": "Rent", "frequency": "daily"}, headers=alice.headers
        ).json()
        response = client.patch(
            f"/recurring-tasks/{rule['id']}", json={"frequency": "weekly"}, headers=alice.headers
        )
        assert response.status_code == 422

    def test_deactivate_and_activate(self, client, alice):
        rule = client.post(
            "/recurring-tasks", json={"title": "Rent", "frequency": "daily"}, headers=alice.headers
        ).json()

        off = client.post(f"/recurring-tasks/{rule['id']}/deactivate", headers=alice.headers).json()
        assert off["is_active"] is False
        on = client.post(f"/recurring-tasks/{rule['id']}/activate", headers=alice.headers).json()
        assert on["is_active"] is True
        assert datetime.fromisoformat(on["next_scheduled_at"]) > utcnow()

    def test_delete_keeps_generated_tasks(self, client, db, alice):
        rule = client.post(
            "/recurring-tasks", json={"title": "Rent", "frequency": "daily"}, headers=alice.headers
        ).json()
        db.query(RecurringTask).filter(RecurringTask.id == rule["id"]).update(
            {RecurringTask.next_scheduled_at: utcnow() - timedelta(minutes=1)}
        )
        db.commit()
        create_recurring_tasks(db)

        response = client.delete(f"/recurring-tasks/{rule['id']}", headers=alice.headers)

        assert response.status_code == 200
        db.expire_all()
        task = db.query(Task).one()
        assert task.recurring_task_id is None
        assert db.query(RecurringTask).count() == 0

    def test_personal_rules_are_private(self, client, alice, bob):
        rule = client.post(
            "/recurring-tasks", json={"title": "Rent", "frequency": "daily"}, headers=alice.headers
        ).json()

        assert client.get(f"/recurring-tasks/{rule['id']}", headers=bob.headers).status_code == 404
        assert client.get("/recurring-tasks", headers=bob.headers).json() == []

    def test_team_rule_status_must_belong_to_team(self, client, alice, team):
        personal_status = statuses_of(client, alice)[0]
        response = client.post(
            "/recurring-tasks",
            json={
                "title": "Restock",
                "frequency": "daily",
                "team_id": team["id"],
                "default_status_id": personal_status["id"],
            },
            headers=alice.headers,
        )
        assert response.status_code == 400

    def test_members_cannot_edit_rules_of_others(self, client, alice, bob, team):
        rule = client.post(
            "/recurring-tasks",
            json={"title": "Restock", "frequency": "daily", "team_id": team["id"]},
            headers=alice.headers,
        ).json()

        assert client.get(f"/recurring-tasks/{rule['id']}", headers=bob.headers).status_code == 200
        response = client.patch(f"/recurring-tasks/{rule['id']}", json={"title": "Mine"}, headers=bob.headers)
        assert response.status_code == 403
