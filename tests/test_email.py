import pytest
from conftest import SERVICE_HEADERS

from tazk import email_service
from tazk.email_service import TaskEmailData, replace_template_variables, send_task_assigned_email
from tazk.email_templates import default_template_mjml
from tazk.models import EmailLog, EmailSettings


def send(client, headers=SERVICE_HEADERS, **body):
    return client.post("/functions/send-email", json=body, headers=headers)


class TestSendEmailFunction:
    def test_sends_and_logs(self, client, db, mailer):
        response = send(
            client,
            to="someone@example.com",
            subject="Hello",
            html="<p>Hi</p>",
            from_name="Acme Team",
            task_id="task-1",
            template_type="task_assigned",
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "id": "email-1"}
        assert mailer.sent == [
            {
                "from": "Acme Team <onboarding@resend.dev>",
                "to": ["someone@example.com"],
                "subject": "Hello",
                "html": "<p>Hi</p>",
            }
        ]
        log = db.query(EmailLog).one()
        assert log.status == "sent"
        assert log.external_id == "email-1"
        assert log.task_id == "task-1"
        assert log.sent_at is not None

    def test_default_sender_name(self, client, mailer):
        send(client, to="someone@example.com", subject="Hello", html="<p>Hi</p>")
        assert mailer.sent[0]["from"] == "Tazk <onboarding@resend.dev>"

    @pytest.mark.parametrize(
        "body",
        [
            {"subject": "Hello", "html": "<p>Hi</p>"},
            {"to": "someone@example.com", "html": "<p>Hi</p>"},
            {"to": "someone@example.com", "subject": "Hello"},
            {"to": "", "subject": "Hello", "html": "<p>Hi</p>"},
        ],
    )
    def test_missing_fields_is_400(self, client, mailer, body):
        response = send(client, **body)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: to, subject, html"}
        assert mailer.sent == []

    def test_provider_failure_is_logged_and_400(self, client, db, mailer):
        mailer.error = "Invalid API key"

        response = send(client, to="someone@example.com", subject="Hello", html="<p>Hi</p>")

        assert response.status_code == 400
        assert "Invalid API key" in response.json()["error"]
        log = db.query(EmailLog).one()
        assert log.status == "failed"
        assert "Invalid API key" in log.error_message

    def test_missing_api_key(self, client, monkeypatch):
        monkeypatch.setattr(email_service, "RESEND_API_KEY", None)
        response = send(client, to="someone@example.com", subject="Hello", html="<p>Hi</p>")
        assert response.status_code == 400
        assert response.json() == {"error": "Email service not configured"}

    def test_user_token_is_accepted_and_recorded(self, client, db, alice):
        response = send(client, headers=alice.headers, to="someone@example.com", subject="Hi", html="<p>Hi</p>")
        assert response.status_code == 200
        assert db.query(EmailLog).one().user_id == alice.id

    def test_anonymous_callers_are_rejected(self, client):
        assert send(client, headers={}, to="someone@example.com", subject="Hi", html="x").status_code == 401


class TestTemplates:
    def test_variables_are_replaced_and_escaped(self):
        data = TaskEmailData(task_id="t1", task_title="Fix <script>", created_by_name="Ann & Bob")
        result = replace_template_variables("{{task_title}} by {{created_by_name}} ({{due_date}}) {{task_url}}", data)
        assert result == "Fix &lt;script&gt; by Ann &amp; Bob (No due date) http://localhost:5173/task/t1"

    def test_subjects_are_not_escaped(self):
        data = TaskEmailData(task_id="t1", task_title="Tom & Jerry")
        assert replace_template_variables("New: {{task_title}}", data, escape=False) == "New: Tom & Jerry"

    def test_every_variable_appears_in_defaults(self):
        for template_type in ("task_created", "task_assigned", "task_due", "task_completed"):
            assert "{{task_title}}" in default_template_mjml(template_type)
            assert "{{task_url}}" in default_template_mjml(template_type)

    def test_unknown_template_type(self):
        with pytest.raises(ValueError):
            default_template_mjml("newsletter")

    def test_templates_are_created_on_first_read(self, client, alice):
        templates = client.get("/email/templates", headers=alice.headers).json()
        assert sorted(t["type"] for t in templates) == ["task_assigned", "task_completed", "task_created", "task_due"]
        assert all(t["is_active"] for t in templates)

        again = client.get("/email/templates", headers=alice.headers).json()
        assert sorted(t["id"] for t in again) == sorted(t["id"] for t in templates)

    def test_update_template(self, client, alice):
        response = client.put(
            "/email/templates/task_assigned",
            json={"subject": "Yours: {{task_title}}", "body_html": "<p>{{task_title}}</p>"},
            headers=alice.headers,
        )
        assert response.status_code == 200
        assert response.json()["subject"] == "Yours: {{task_title}}"

        assert client.put("/email/templates/newsletter", json={"subject": "x"}, headers=alice.headers).status_code == 404

    @pytest.mark.asyncio
    async def test_custom_template_is_used(self, client, db, alice, mailer):
        client.put("/email/settings", json={"is_enabled": True, "notify_on_assign": True}, headers=alice.headers)
        client.put(
            "/email/templates/task_assigned",
            json={"subject": "Yours: {{task_title}}", "body_html": "<p>{{task_title}} - {{status_name}}</p>"},
            headers=alice.headers,
        )

        sent = await send_task_assigned_email(
            db, alice.id, None, ["a@example.com", "a@example.com", None], TaskEmailData(task_id="t1", task_title="R&D")
        )

        assert sent == 1
        assert mailer.sent[0]["subject"] == "Yours: R&D"
        assert mailer.sent[0]["html"] == "<p>R&amp;D - No status</p>"

    @pytest.mark.asyncio
    async def test_inactive_template_falls_back_to_default(self, client, db, alice, mailer):
        client.put("/email/settings", json={"is_enabled": True}, headers=alice.headers)
        client.put(
            "/email/templates/task_assigned",
            json={"subject": "Custom", "body_html": "<p>custom</p>", "is_active": False},
            headers=alice.headers,
        )

        await send_task_assigned_email(db, alice.id, None, ["a@example.com"], TaskEmailData(task_id="t1", task_title="Plan"))

        assert mailer.sent[0]["subject"] != "Custom"
        assert "Plan" in mailer.sent[0]["html"]

    @pytest.mark.asyncio
    async def test_disabled_settings_send_nothing(self, db, alice, mailer):
        db.add(EmailSettings(user_id=alice.id, team_id=None, is_enabled=False, notify_on_assign=True))
        db.commit()

        sent = await send_task_assigned_email(db, alice.id, None, ["a@example.com"], TaskEmailData("t1", "Plan"))

        assert sent == 0
        assert mailer.sent == []


class TestSettingsAndLogs:
    def test_defaults_before_saving(self, client, alice):
        settings = client.get("/email/settings", headers=alice.headers).json()
        assert settings["id"] is None
        assert settings["is_enabled"] is False
        assert settings["notify_on_assign"] is True

    def test_save_settings(self, client, alice):
        response = client.put(
            "/email/settings", json={"is_enabled": True, "from_name": "Alice's desk"}, headers=alice.headers
        )
        assert response.status_code == 200
        saved = client.get("/email/settings", headers=alice.headers).json()
        assert saved["is_enabled"] is True
        assert saved["from_name"] == "Alice's desk"

    def test_team_settings_need_membership(self, client, carol, team):
        response = client.get("/email/settings", params={"team_id": team["id"]}, headers=carol.headers)
        assert response.status_code == 404

    def test_logs_are_scoped(self, client, alice, bob, team):
        send(client, headers=alice.headers, to="x@example.com", subject="Mine", html="<p>x</p>")

        logs = client.get("/email/logs", headers=alice.headers).json()
        assert [log["subject"] for log in logs] == ["Mine"]
        assert client.get("/email/logs", headers=bob.headers).json() == []
        assert client.get("/email/logs", params={"team_id": team["id"]}, headers=bob.headers).status_code == 403

    def test_test_email(self, client, alice, mailer):
        response = client.post("/email/test", json={"to": "me@example.com"}, headers=alice.headers)
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert mailer.sent[0]["to"] == ["me@example.com"]

    def test_test_email_failure_is_400(self, client, alice, mailer):
        mailer.error = "domain not verified"
        response = client.post("/email/test", json={"to": "me@example.com"}, headers=alice.headers)
        assert response.status_code == 400
