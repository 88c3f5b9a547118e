from datetime import timedelta

from conftest import SERVICE_HEADERS, statuses_of

from tazk.models import RecurringTask, Task, TaskStatus
from tazk.shared.timeutils import utcnow


def test_new_profile_gets_default_statuses(client, alice):
    statuses = statuses_of(client, alice)
    assert [(s["name"], s["order_position"]) for s in statuses] == [
        ("Pending", 1),
        ("In progress", 2),
        ("Completed", 3),
    ]
    assert all(s["is_active"] for s in statuses)


def test_create_appends_at_the_end(client, alice):
    response = client.post("/statuses", json={"name": " Blocked ", "color": "#FF0000"}, headers=alice.headers)

    assert response.status_code == 201
    status = response.json()
    assert status["name"] == "Blocked"
    assert status["order_position"] == 4


def test_invalid_color_is_rejected(client, alice):
    response = client.post("/statuses", json={"name": "Blocked", "color": "red"}, headers=alice.headers)
    assert response.status_code == 422


def test_reorder(client, alice):
    ids = [s["id"] for s in statuses_of(client, alice)]

    response = client.put("/statuses/reorder", json={"status_ids": list(reversed(ids))}, headers=alice.headers)

    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == list(reversed(ids))
    assert [s["order_position"] for s in response.json()] == [1, 2, 3]


def test_reorder_rejects_foreign_ids(client, alice, bob):
    foreign = statuses_of(client, bob)[0]["id"]
    response = client.put("/statuses/reorder", json={"status_ids": [foreign]}, headers=alice.headers)
    assert response.status_code == 400


def test_deactivating_moves_tasks_to_first_active_status(client, db, alice):
    pending, in_progress, _ = statuses_of(client, alice)
    task = client.post("/tasks", json={"title": "Fold laundry"}, headers=alice.headers).json()
    assert task["status_id"] == pending["id"]

    response = client.post(f"/statuses/{pending['id']}/toggle", headers=alice.headers)

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert db.query(Task).filter(Task.id == task["id"]).one().status_id == in_progress["id"]

    again = client.post(f"/statuses/{pending['id']}/toggle", headers=alice.headers)
    assert again.json()["is_active"] is True


def test_delete_moves_tasks(client, db, alice):
    pending, in_progress, _ = statuses_of(client, alice)
    task = client.post("/tasks", json={"title": "Fold laundry"}, headers=alice.headers).json()

    assert client.delete(f"/statuses/{pending['id']}", headers=alice.headers).status_code == 200

    assert db.query(Task).filter(Task.id == task["id"]).one().status_id == in_progress["id"]
    assert [s["name"] for s in statuses_of(client, alice)] == ["In progress", "Completed"]


def test_last_active_status_with_tasks_cannot_be_removed(client, alice):
    pending, in_progress, completed = statuses_of(client, alice)
    client.post(f"/statuses/{in_progress['id']}/toggle", headers=alice.headers)
    client.post(f"/statuses/{completed['id']}/toggle", headers=alice.headers)
    client.post("/tasks", json={"title": "Fold laundry"}, headers=alice.headers)

    assert client.delete(f"/statuses/{pending['id']}", headers=alice.headers).status_code == 400
    assert client.post(f"/statuses/{pending['id']}/toggle", headers=alice.headers).status_code == 400


def test_rename(client, alice):
    pending = statuses_of(client, alice)[0]
    response = client.patch(f"/statuses/{pending['id']}", json={"name": "To do"}, headers=alice.headers)
    assert response.json()["name"] == "To do"


def test_team_statuses_need_owner_or_admin(client, alice, bob, team):
    assert len(statuses_of(client, bob, team["id"])) == 3

    response = client.post("/statuses", json={"name": "Review", "team_id": team["id"]}, headers=bob.headers)
    assert response.status_code == 403

    response = client.post("/statuses", json={"name": "Review", "team_id": team["id"]}, headers=alice.headers)
    assert response.status_code == 201


def test_other_users_statuses_are_invisible(client, alice, bob):
    pending = statuses_of(client, alice)[0]
    response = client.patch(f"/statuses/{pending['id']}", json={"name": "Mine"}, headers=bob.headers)
    assert response.status_code == 404


def test_deleting_a_status_releases_recurring_rules(client, db, alice):
    pending, in_progress, _ = statuses_of(client, alice)
    rule = RecurringTask(
        user_id=alice.id,
        title="Water the plants",
        frequency="daily",
        time_of_day="09:00:00",
        default_status_id=in_progress["id"],
        next_scheduled_at=utcnow() - timedelta(minutes=5),
        is_active=True,
    )
    db.add(rule)
    db.commit()

    assert client.delete(f"/statuses/{in_progress['id']}", headers=alice.headers).status_code == 200

    db.refresh(rule)
    assert rule.default_status_id is None

    response = client.post("/functions/create-recurring-tasks", headers=SERVICE_HEADERS)

    assert response.json()["tasks_created"] == 1
    task = db.query(Task).filter(Task.recurring_task_id == rule.id).one()
    assert task.status_id == pending["id"]
    assert db.query(TaskStatus).filter(TaskStatus.id == task.status_id).count() == 1
