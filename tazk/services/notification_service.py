"""
Unified Notification Service
Fans a task or team event out to every channel: in-app notification, Web Push
and e-mail. Runs as a background task after the response has been sent, so it
opens its own database session; each channel fails independently.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..domain.notifications.repository import NotificationRepository
from ..domain.push.service import (
    notify_sprint_started,
    notify_task_added_to_sprint,
    notify_task_assigned,
    notify_task_comment,
    notify_task_completed,
    notify_team_invite,
)
from ..email_service import (
    TaskEmailData,
    send_task_assigned_email,
    send_task_completed_email,
    send_task_created_email,
    send_team_invitation_email,
)
from ..models import Profile, Sprint, Task, TaskComment, TeamInvitation, TeamMember
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)


def _task_email_data(task: Task, actor: Profile) -> TaskEmailData:
    return TaskEmailData(
        task_id=task.id,
        task_title=task.title,
        task_description=task.description,
        status_name=task.status.name if task.status else None,
        assigned_to_name=task.assignee.display_name if task.assignee else None,
        due_date=task.due_date.strftime("%b %d, %Y") if task.due_date else None,
        created_by_name=actor.display_name,
        completed_date=utcnow().strftime("%b %d, %Y %H:%M UTC"),
    )


def _load(db: Session, task_id: str, actor_id: str) -> tuple[Optional[Task], Optional[Profile]]:
    task = db.query(Task).filter(Task.id == task_id).first()
    actor = db.query(Profile).filter(Profile.id == actor_id).first()
    if not task or not actor:
        logger.warning(f"⚠️ Skipping notifications: task {task_id} or user {actor_id} no longer exists")
    return task, actor


def _in_app(db: Session, result: dict, user_id: str, type: str, title: str, body: str, data: dict) -> None:
    try:
        NotificationRepository.create_notification(db, user_id, type, title, body, data)
        result["notifications_created"] += 1
    except Exception as e:
        db.rollback()
        result["errors"].append(f"notification: {e}")
        logger.error(f"❌ Failed to create {type} notification for {user_id}: {e}")


def _new_result() -> dict:
    return {"notifications_created": 0, "push_sent": 0, "emails_sent": 0, "errors": []}


async def dispatch_task_assigned(task_id: str, actor_id: str) -> dict:
    """Notify the new assignee of a task (skipped when they assigned themselves)"""
    result = _new_result()
    db = SessionLocal()
    try:
        task, actor = _load(db, task_id, actor_id)
        if not task or not actor or not task.assignee or task.assigned_to == actor.id:
            return result

        assignee = task.assignee
        _in_app(
            db,
            result,
            assignee.id,
            "task_assigned",
            f"{actor.display_name} assigned you a task",
            task.title,
            {"task_id": task.id, "team_id": task.team_id},
        )

        push = await notify_task_assigned(db, assignee.id, task.title, actor.display_name, task.id)
        if push:
            result["push_sent"] += push.sent

        try:
            emails = [assignee.email, task.notify_email]
            result["emails_sent"] += await send_task_assigned_email(
                db, actor.id, task.team_id, emails, _task_email_data(task, actor)
            )
        except Exception as e:
            result["errors"].append(f"email: {e}")
            logger.error(f"❌ Failed to send task_assigned email for task {task.id}: {e}")

        logger.info(f"✅ task_assigned notifications for {task.id}: {result}")
        return result
    finally:
        db.close()


async def dispatch_task_completed(task_id: str, actor_id: str) -> dict:
    """Notify the creator and assignee (other than whoever completed it)"""
    result = _new_result()
    db = SessionLocal()
    try:
        task, actor = _load(db, task_id, actor_id)
        if not task or not actor:
            return result

        recipients = [p for p in (task.creator, task.assignee) if p is not None and p.id != actor.id]
        recipients = list({p.id: p for p in recipients}.values())

        for profile in recipients:
            _in_app(
                db,
                result,
                profile.id,
                "task_completed",
                f"{actor.display_name} completed a task",
                task.title,
                {"task_id": task.id, "team_id": task.team_id},
            )
            push = await notify_task_completed(db, profile.id, task.title, actor.display_name, task.id)
            if push:
                result["push_sent"] += push.sent

        emails = [p.email for p in recipients]
        if task.notify_email:
            emails.append(task.notify_email)
        try:
            result["emails_sent"] += await send_task_completed_email(
                db, actor.id, task.team_id, emails, _task_email_data(task, actor)
            )
        except Exception as e:
            result["errors"].append(f"email: {e}")
            logger.error(f"❌ Failed to send task_completed email for task {task.id}: {e}")

        logger.info(f"✅ task_completed notifications for {task.id}: {result}")
        return result
    finally:
        db.close()


async def dispatch_task_created(task_id: str, actor_id: str) -> dict:
    """E-mail the task's extra recipient when the creator enabled notify_on_create"""
    result = _new_result()
    db = SessionLocal()
    try:
        task, actor = _load(db, task_id, actor_id)
        if not task or not actor or not task.notify_email:
            return result
        try:
            result["emails_sent"] += await send_task_created_email(
                db, actor.id, task.team_id, [task.notify_email], _task_email_data(task, actor)
            )
        except Exception as e:
            result["errors"].append(f"email: {e}")
            logger.error(f"❌ Failed to send task_created email for task {task.id}: {e}")
        return result
    finally:
        db.close()


async def dispatch_team_invite(invitation_id: str) -> dict:
    """
    Registered invitees get an in-app notification and a push; unknown
    addresses get an invitation e-mail instead.
    """
    result = _new_result()
    db = SessionLocal()
    try:
        invitation = db.query(TeamInvitation).filter(TeamInvitation.id == invitation_id).first()
        if not invitation or invitation.status != "pending":
            return result

        team_name = invitation.team.name
        inviter_name = invitation.inviter.display_name
        invitee = db.query(Profile).filter(Profile.email == invitation.email).first()

        if invitee:
            _in_app(
                db,
                result,
                invitee.id,
                "team_invite",
                f"{inviter_name} invited you to {team_name}",
                f"Role: {invitation.role}",
                {"invitation_id": invitation.id, "team_id": invitation.team_id},
            )
            push = await notify_team_invite(db, invitee.id, team_name, inviter_name)
            if push:
                result["push_sent"] += push.sent
        else:
            try:
                await send_team_invitation_email(invitation.email, team_name, inviter_name, invitation.role)
                result["emails_sent"] += 1
            except Exception as e:
                result["errors"].append(f"email: {e}")
                logger.error(f"❌ Failed to send invitation email to {invitation.email}: {e}")

        logger.info(f"✅ team_invite notifications for {invitation.id}: {result}")
        return result
    finally:
        db.close()


async def dispatch_task_comment(comment_id: str) -> dict:
    """Notify the task's creator and assignee of a new comment, except the commenter"""
    result = _new_result()
    db = SessionLocal()
    try:
        comment = db.query(TaskComment).filter(TaskComment.id == comment_id).first()
        if not comment or not comment.task or not comment.author:
            return result

        task, author = comment.task, comment.author
        recipient_ids = {uid for uid in (task.created_by, task.assigned_to) if uid and uid != author.id}
        for user_id in sorted(recipient_ids):
            _in_app(
                db,
                result,
                user_id,
                "task_comment",
                f'{author.display_name} commented on "{task.title}"',
                comment.content,
                {"task_id": task.id, "team_id": task.team_id, "comment_id": comment.id},
            )
            push = await notify_task_comment(db, user_id, task.title, author.display_name, task.id)
            if push:
                result["push_sent"] += push.sent

        logger.info(f"✅ task_comment notifications for {task.id}: {result}")
        return result
    finally:
        db.close()


async def dispatch_sprint_started(sprint_id: str, actor_id: str) -> dict:
    """Tell the other members of the team that a sprint has started"""
    result = _new_result()
    db = SessionLocal()
    try:
        sprint = db.query(Sprint).filter(Sprint.id == sprint_id).first()
        actor = db.query(Profile).filter(Profile.id == actor_id).first()
        if not sprint or not actor or not sprint.team_id:
            return result

        member_ids = [
            m.user_id
            for m in db.query(TeamMember).filter(TeamMember.team_id == sprint.team_id).all()
            if m.user_id != actor.id
        ]
        for user_id in member_ids:
            _in_app(
                db,
                result,
                user_id,
                "sprint_started",
                f"{actor.display_name} started a sprint",
                sprint.name,
                {"sprint_id": sprint.id, "team_id": sprint.team_id},
            )
            push = await notify_sprint_started(db, user_id, sprint.name, actor.display_name)
            if push:
                result["push_sent"] += push.sent

        logger.info(f"✅ sprint_started notifications for {sprint.id}: {result}")
        return result
    finally:
        db.close()


async def dispatch_task_added_to_sprint(task_id: str, actor_id: str) -> dict:
    """Tell the assignee that their task joined a sprint (skipped for the actor's own tasks)"""
    result = _new_result()
    db = SessionLocal()
    try:
        task, actor = _load(db, task_id, actor_id)
        if not task or not actor or not task.sprint or not task.assigned_to or task.assigned_to == actor.id:
            return result

        _in_app(
            db,
            result,
            task.assigned_to,
            "task_added_to_sprint",
            f'Your task was added to the sprint "{task.sprint.name}"',
            task.title,
            {"task_id": task.id, "sprint_id": task.sprint_id, "team_id": task.team_id},
        )
        push = await notify_task_added_to_sprint(db, task.assigned_to, task.title, task.sprint.name, task.id)
        if push:
            result["push_sent"] += push.sent
        return result
    finally:
        db.close()
