from conftest import subscribe

from tazk.models import ActivityLog, Notification, Sprint, Task


def create_sprint(client, user, **fields):
    payload = {"name": "Spring cleaning", **fields}
    response = client.post("/sprints", json=payload, headers=user.headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_task(client, user, **fields):
    response = client.post("/tasks", json={"title": "Wash windows", **fields}, headers=user.headers)
    assert response.status_code == 201, response.text
    return response.json()


def sprint_actions(db, sprint_id):
    rows = db.query(ActivityLog).filter(ActivityLog.entity_id == sprint_id).order_by(ActivityLog.created_at)
    return [row.action for row in rows]


class TestSprintLifecycle:
    def test_new_sprint_is_planning(self, client, alice):
        sprint = create_sprint(client, alice, goal="  Shiny house ")

        assert sprint["status"] == "planning"
        assert sprint["goal"] == "Shiny house"
        assert sprint["team_id"] is None
        assert [s["id"] for s in client.get("/sprints", headers=alice.headers).json()] == [sprint["id"]]

    def test_end_date_must_follow_start_date(self, client, alice):
        response = client.post(
            "/sprints",
            json={"name": "Backwards", "start_date": "2024-05-10T00:00:00Z", "end_date": "2024-05-01T00:00:00Z"},
            headers=alice.headers,
        )
        assert response.status_code == 422

    def test_start_then_complete(self, client, db, alice):
        sprint = create_sprint(client, alice)

        started = client.post(f"/sprints/{sprint['id']}/start", headers=alice.headers)
        assert started.status_code == 200
        assert started.json()["status"] == "active"
        assert started.json()["start_date"] is not None

        completed = client.post(f"/sprints/{sprint['id']}/complete", headers=alice.headers)
        assert completed.json()["status"] == "completed"
        assert sprint_actions(db, sprint["id"]) == ["created", "started", "completed"]

    def test_only_one_active_sprint_per_scope(self, client, alice, bob):
        first = create_sprint(client, alice)
        second = create_sprint(client, alice, name="Summer cleaning")
        client.post(f"/sprints/{first['id']}/start", headers=alice.headers)

        assert client.post(f"/sprints/{second['id']}/start", headers=alice.headers).status_code == 409

        # Another user's personal space is a separate scope
        other = create_sprint(client, bob)
        assert client.post(f"/sprints/{other['id']}/start", headers=bob.headers).status_code == 200

    def test_lifecycle_order_is_enforced(self, client, alice):
        sprint = create_sprint(client, alice)

        assert client.post(f"/sprints/{sprint['id']}/complete", headers=alice.headers).status_code == 400
        client.post(f"/sprints/{sprint['id']}/start", headers=alice.headers)
        assert client.post(f"/sprints/{sprint['id']}/start", headers=alice.headers).status_code == 400
        client.post(f"/sprints/{sprint['id']}/complete", headers=alice.headers)
        assert client.patch(f"/sprints/{sprint['id']}", json={"name": "Late"}, headers=alice.headers).status_code == 400

    def test_update_checks_merged_dates(self, client, alice):
        sprint = create_sprint(client, alice, start_date="2024-05-01T00:00:00Z")

        bad = client.patch(f"/sprints/{sprint['id']}", json={"end_date": "2024-04-01T00:00:00Z"}, headers=alice.headers)
        assert bad.status_code == 400

        ok = client.patch(f"/sprints/{sprint['id']}", json={"name": "Renamed"}, headers=alice.headers)
        assert ok.json()["name"] == "Renamed"

    def test_delete_sends_tasks_back_to_backlog(self, client, db, alice):
        sprint = create_sprint(client, alice)
        task = create_task(client, alice)
        client.post(f"/sprints/{sprint['id']}/tasks/{task['id']}", headers=alice.headers)

        assert client.delete(f"/sprints/{sprint['id']}", headers=alice.headers).status_code == 200

        assert db.query(Sprint).count() == 0
        assert db.query(Task).filter(Task.id == task["id"]).one().sprint_id is None
        assert sprint_actions(db, sprint["id"]) == ["created", "deleted"]


class TestSprintTasks:
    def test_add_and_remove_task(self, client, db, alice):
        sprint = create_sprint(client, alice)
        task = create_task(client, alice)
        assert [t["id"] for t in client.get("/sprints/backlog", headers=alice.headers).json()] == [task["id"]]

        added = client.post(f"/sprints/{sprint['id']}/tasks/{task['id']}", headers=alice.headers)

        assert added.status_code == 200
        assert added.json()["sprint_id"] == sprint["id"]
        assert client.get("/sprints/backlog", headers=alice.headers).json() == []
        assert [t["id"] for t in client.get(f"/sprints/{sprint['id']}/tasks", headers=alice.headers).json()] == [
            task["id"]
        ]

        removed = client.delete(f"/sprints/{sprint['id']}/tasks/{task['id']}", headers=alice.headers)
        assert removed.json()["sprint_id"] is None

        changes = [
            row.changes
            for row in db.query(ActivityLog)
            .filter(ActivityLog.entity_id == task["id"], ActivityLog.action == "updated")
            .order_by(ActivityLog.created_at)
        ]
        assert changes[0]["added_to_sprint"] == "Spring cleaning"
        assert changes[1]["removed_from_sprint"] == "Spring cleaning"

    def test_task_from_another_scope_is_not_found(self, client, alice, bob):
        sprint = create_sprint(client, alice)
        foreign = create_task(client, bob)

        assert client.post(f"/sprints/{sprint['id']}/tasks/{foreign['id']}", headers=alice.headers).status_code == 404

    def test_completed_sprint_takes_no_tasks(self, client, alice):
        sprint = create_sprint(client, alice)
        task = create_task(client, alice)
        client.post(f"/sprints/{sprint['id']}/start", headers=alice.headers)
        client.post(f"/sprints/{sprint['id']}/complete", headers=alice.headers)

        assert client.post(f"/sprints/{sprint['id']}/tasks/{task['id']}", headers=alice.headers).status_code == 400

    def test_removing_a_task_outside_the_sprint_is_404(self, client, alice):
        sprint = create_sprint(client, alice)
        task = create_task(client, alice)

        assert client.delete(f"/sprints/{sprint['id']}/tasks/{task['id']}", headers=alice.headers).status_code == 404


class TestTeamSprints:
    def test_members_see_but_cannot_manage(self, client, alice, bob, carol, team):
        sprint = create_sprint(client, alice, team_id=team["id"])

        assert [s["id"] for s in client.get("/sprints", params={"team_id": team["id"]}, headers=bob.headers).json()] == [
            sprint["id"]
        ]
        assert client.post("/sprints", json={"name": "Mine", "team_id": team["id"]}, headers=bob.headers).status_code == 403
        assert client.post(f"/sprints/{sprint['id']}/start", headers=bob.headers).status_code == 403
        assert client.get(f"/sprints/{sprint['id']}", headers=carol.headers).status_code == 404

    def test_start_notifies_other_members(self, client, db, alice, bob, team, webpush_fake):
        subscribe(client, bob, "https://push.example/bob")
        sprint = create_sprint(client, alice, team_id=team["id"])

        client.post(f"/sprints/{sprint['id']}/start", headers=alice.headers)

        notification = (
            db.query(Notification).filter(Notification.user_id == bob.id, Notification.type == "sprint_started").one()
        )
        assert notification.body == "Spring cleaning"
        assert db.query(Notification).filter(Notification.user_id == alice.id).count() == 0
        assert [call["endpoint"] for call in webpush_fake.calls] == ["https://push.example/bob"]

    def test_adding_a_task_notifies_its_assignee(self, client, db, alice, bob, team):
        sprint = create_sprint(client, alice, team_id=team["id"])
        task = create_task(client, alice, team_id=team["id"], assigned_to=bob.id)

        client.post(f"/sprints/{sprint['id']}/tasks/{task['id']}", headers=alice.headers)

        notification = (
            db.query(Notification)
            .filter(Notification.user_id == bob.id, Notification.type == "task_added_to_sprint")
            .one()
        )
        assert notification.data["sprint_id"] == sprint["id"]

    def test_deleting_the_team_removes_its_sprints(self, client, db, alice, team):
        create_sprint(client, alice, team_id=team["id"])

        assert client.delete(f"/teams/{team['id']}", headers=alice.headers).status_code == 200
        assert db.query(Sprint).count() == 0
