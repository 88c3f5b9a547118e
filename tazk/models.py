import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.timeutils import utcnow


def generate_uuid():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


# Allowed values (mirrors the CHECK constraints of the hosted schema)
TEAM_ROLES = ("owner", "admin", "member")
INVITABLE_ROLES = ("admin", "member")
TASK_PRIORITIES = ("low", "medium", "high")
RECURRENCE_FREQUENCIES = ("daily", "weekly", "monthly")
INVITATION_STATUSES = ("pending", "accepted", "rejected", "cancelled", "expired")
EMAIL_TEMPLATE_TYPES = ("task_created", "task_assigned", "task_due", "task_completed")
SPRINT_STATUSES = ("planning", "active", "completed", "cancelled")


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # Same UUID as the auth provider's user id
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default="basic", nullable=False)  # admin, basic
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    memberships = relationship("TeamMember", back_populates="profile")

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class Team(Base):
    __tablename__ = "teams"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    color = Column(String(7), nullable=True)  # e.g., #RRGGBB
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    role = Column(String(20), default="member", nullable=False)  # owner, admin, member
    joined_at = Column(DateTime, default=utcnow)

    team = relationship("Team", back_populates="members")
    profile = relationship("Profile", back_populates="memberships")


class TeamInvitation(Base):
    __tablename__ = "team_invitations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=False)
    email = Column(String(255), index=True, nullable=False)
    role = Column(String(20), default="member", nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    invited_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    responded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    team = relationship("Team")
    inviter = relationship("Profile", foreign_keys=[invited_by])


class TaskStatus(Base):
    __tablename__ = "task_statuses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    color = Column(String(7), default="#4CAF50", nullable=False)
    order_position = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Scope: team_id for team statuses, created_by + NULL team for personal ones
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_completed(self) -> bool:
        return "complet" in (self.name or "").lower()


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(10), default="medium", nullable=False)  # low, medium, high
    status_id = Column(String(36), ForeignKey("task_statuses.id"), index=True, nullable=True)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    assigned_to = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=True)
    start_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    notify_email = Column(String(255), nullable=True)  # Extra recipient for task e-mails
    recurring_task_id = Column(
        String(36), ForeignKey("recurring_tasks.id", ondelete="SET NULL"), nullable=True
    )
    sprint_id = Column(String(36), ForeignKey("sprints.id", ondelete="SET NULL"), index=True, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    status = relationship("TaskStatus")
    creator = relationship("Profile", foreign_keys=[created_by])
    assignee = relationship("Profile", foreign_keys=[assigned_to])
    sprint = relationship("Sprint", back_populates="tasks")
    comments = relationship("TaskComment", back_populates="task", cascade="all, delete-orphan")


class Sprint(Base):
    __tablename__ = "sprints"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    goal = Column(Text, nullable=True)
    status = Column(String(20), default="planning", nullable=False, index=True)  # planning, active, completed, cancelled
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tasks = relationship("Task", back_populates="sprint")


class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    task = relationship("Task", back_populates="comments")
    author = relationship("Profile")


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    user_email = Column(String(255), nullable=True)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36), index=True, nullable=False)
    action = Column(String(50), nullable=False)
    changes = Column(JSON, default=dict, nullable=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    type = Column(String(50), nullable=False)  # task_assigned, task_completed, team_invite, ...
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    data = Column(JSON, default=dict, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)


class EmailSettings(Base):
    __tablename__ = "email_settings"
    __table_args__ = (UniqueConstraint("user_id", "team_id", name="uq_email_settings_user_team"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    is_enabled = Column(Boolean, default=False, nullable=False)
    from_name = Column(String(100), default="Tazk", nullable=False)
    notify_on_create = Column(Boolean, default=False, nullable=False)
    notify_on_assign = Column(Boolean, default=True, nullable=False)
    notify_on_due = Column(Boolean, default=False, nullable=False)
    notify_on_complete = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class EmailTemplate(Base):
    __tablename__ = "email_templates"
    __table_args__ = (
        UniqueConstraint("user_id", "team_id", "type", name="uq_email_templates_user_team_type"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(50), nullable=False)  # task_created, task_assigned, task_due, task_completed
    subject = Column(String(255), nullable=False)
    body_html = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    team_id = Column(String(36), nullable=True, index=True)
    task_id = Column(String(36), nullable=True)
    template_type = Column(String(50), nullable=True)
    to_email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False)  # sent, failed
    external_id = Column(String(255), nullable=True)  # Resend message id
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="uq_push_subscriptions_user_endpoint"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    endpoint = Column(Text, nullable=True)
    p256dh = Column(String(255), nullable=True)
    auth = Column(String(255), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class RecurringTask(Base):
    __tablename__ = "recurring_tasks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), index=True, nullable=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(10), default="medium", nullable=False)
    frequency = Column(String(10), nullable=False)  # daily, weekly, monthly
    time_of_day = Column(String(8), default="09:00:00", nullable=False)  # HH:MM:SS
    days_of_week = Column(JSON, nullable=True)  # weekly: [0..6], 0 = Sunday
    day_of_month = Column(Integer, nullable=True)  # monthly: 1..31
    default_status_id = Column(String(36), ForeignKey("task_statuses.id"), nullable=True)
    assigned_to = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    last_created_at = Column(DateTime, nullable=True)
    next_scheduled_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
