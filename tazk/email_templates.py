"""
MJML Email Templates
Default task and team e-mails, compiled to HTML by email_service
"""

from typing import Optional

from .config import FRONTEND_URL

# App theme colors - Blue/Cyan scheme of the web app
THEME = {
    "primary": "#3b82f6",
    "primary_dark": "#2563eb",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#10b981",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}

# Subjects used when the user has no custom template; {{...}} are template variables
DEFAULT_SUBJECTS = {
    "task_created": "New task: {{task_title}}",
    "task_assigned": "You've been assigned: {{task_title}}",
    "task_due": "Task due soon: {{task_title}}",
    "task_completed": "Task completed: {{task_title}}",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    header_color: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 40px 40px">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="0"
              inner-padding="16px 36px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <!-- Header -->
        <mj-section background-color="{header_color or THEME['primary']}" padding="28px 20px" border-radius="16px 16px 0 0">
          <mj-column>
            <mj-text align="center" font-size="28px" font-weight="700" color="#ffffff" padding="0">
              Tazk
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="32px 40px 24px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Sent by Tazk · task management for you and your team
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_box(rows: list[tuple[str, str]]) -> str:
    lines = "".join(
        f'<p style="margin: 4px 0;"><strong>{label}:</strong> {value}</p>' for label, value in rows
    )
    return f"""
    <mj-text background-color="{THEME['background']}" font-size="14px" color="{THEME['text_secondary']}" padding="16px">
      {lines}
    </mj-text>
    """


def task_assigned_template(
    task_title: str,
    task_description: str,
    status_name: str,
    due_date: str,
    assigned_by: str,
    task_url: str,
) -> str:
    """Task assignment MJML template"""
    content = f"""
    <mj-text padding="0 0 12px 0">
      <strong>{task_title}</strong>
    </mj-text>
    <mj-text color="{THEME['text_muted']}" padding="0 0 20px 0">
      {task_description}
    </mj-text>
    {_details_box([("Status", status_name), ("Due date", due_date), ("Assigned by", assigned_by)])}
    """
    return get_base_template(
        title="You've been assigned a task",
        preview_text=f"{assigned_by} assigned you: {task_title}",
        content_sections=content,
        cta_url=task_url,
        cta_label="View task",
    )


def task_completed_template(task_title: str, completed_by: str, completed_date: str, task_url: str) -> str:
    """Task completed MJML template"""
    content = f"""
    <mj-text padding="0 0 20px 0">
      <strong>{task_title}</strong>
    </mj-text>
    {_details_box([("Completed by", completed_by), ("Date", completed_date)])}
    """
    return get_base_template(
        title="Task completed",
        preview_text=f"{completed_by} completed: {task_title}",
        content_sections=content,
        cta_url=task_url,
        cta_label="View task",
        header_color=THEME["success"],
    )


def task_created_template(task_title: str, task_description: str, created_by: str, task_url: str) -> str:
    content = f"""
    <mj-text padding="0 0 12px 0">
      <strong>{task_title}</strong>
    </mj-text>
    <mj-text color="{THEME['text_muted']}" padding="0 0 20px 0">
      {task_description}
    </mj-text>
    {_details_box([("Created by", created_by)])}
    """
    return get_base_template(
        title="New task created",
        preview_text=f"{created_by} created: {task_title}",
        content_sections=content,
        cta_url=task_url,
        cta_label="View task",
    )


def task_due_template(task_title: str, due_date: str, task_url: str) -> str:
    content = f"""
    <mj-text padding="0 0 20px 0">
      <strong>{task_title}</strong> is due on {due_date}.
    </mj-text>
    """
    return get_base_template(
        title="Task due soon",
        preview_text=f"{task_title} is due {due_date}",
        content_sections=content,
        cta_url=task_url,
        cta_label="View task",
        header_color=THEME["warning"],
    )


def team_invitation_template(team_name: str, inviter_name: str, role: str, expires_in_days: int) -> str:
    """Team invitation MJML template"""
    content = f"""
    <mj-text padding="0 0 16px 0">
      {inviter_name} invited you to join the team <strong>{team_name}</strong> as {role}.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="0 0 8px 0">
      The invitation expires in {expires_in_days} days. Sign in with this e-mail address to accept it.
    </mj-text>
    """
    return get_base_template(
        title=f"Join {team_name} on Tazk",
        preview_text=f"{inviter_name} invited you to {team_name}",
        content_sections=content,
        cta_url=FRONTEND_URL,
        cta_label="Open Tazk",
    )


def test_email_template() -> str:
    content = """
    <mj-text padding="0 0 8px 0">
      This is a test e-mail from your Tazk settings. If you can read it,
      e-mail notifications are working.
    </mj-text>
    """
    return get_base_template(
        title="Test e-mail sent successfully",
        preview_text="Your Tazk e-mail notifications are working",
        content_sections=content,
        header_color=THEME["warning"],
    )


def default_template_mjml(template_type: str) -> str:
    """Default template of a type with {{variables}} left in place for user editing"""
    if template_type == "task_created":
        return task_created_template("{{task_title}}", "{{task_description}}", "{{created_by_name}}", "{{task_url}}")
    if template_type == "task_assigned":
        return task_assigned_template(
            "{{task_title}}",
            "{{task_description}}",
            "{{status_name}}",
            "{{due_date}}",
            "{{created_by_name}}",
            "{{task_url}}",
        )
    if template_type == "task_due":
        return task_due_template("{{task_title}}", "{{due_date}}", "{{task_url}}")
    if template_type == "task_completed":
        return task_completed_template("{{task_title}}", "{{created_by_name}}", "{{completed_date}}", "{{task_url}}")
    raise ValueError(f"Unknown email template type: {template_type}")
