from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Optional

from todu.models import Task, TaskList, User


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str


def _button(url: str, label: str) -> str:
    return (
        f'<a href="{escape(url)}" style="background-color: #3B82F6; color: white; padding: 10px 20px; '
        f'text-decoration: none; border-radius: 5px; display: inline-block;">{escape(label)}</a>'
    )


def render_task_reminder(user: User, task: Task, client_url: str) -> RenderedEmail:
    url = f"{client_url}/dashboard?task={task.id}"
    details = [f'<h3 style="margin: 0 0 10px 0; color: #1F2937;">{escape(task.title)}</h3>']
    if task.description:
        details.append(f'<p style="color: #6B7280; margin: 5px 0;">{escape(task.description)}</p>')
    if task.due_date:
        details.append(
            f'<p style="color: #EF4444; margin: 5px 0;"><strong>Due:</strong> {task.due_date.date().isoformat()}</p>'
        )
    details.append(f'<p style="margin: 5px 0;"><strong>Priority:</strong> {escape(task.priority.capitalize())}</p>')

    html = f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #3B82F6;">Task Reminder</h2>
        <p>Hi {escape(user.name)},</p>
        <p>This is a reminder for your task:</p>
        <div style="background-color: #F3F4F6; padding: 15px; border-radius: 8px; margin: 20px 0;">
          {"".join(details)}
        </div>
        <p>{_button(url, "View Task")}</p>
        <p style="color: #9CA3AF; font-size: 12px; margin-top: 30px;">
          You're receiving this email because you set a reminder for this task in Todu.
        </p>
      </div>
    """
    return RenderedEmail(
        subject="Task Reminder - Todu",
        text=f"Hi {user.name}, this is a reminder for your task: {task.title}",
        html=html,
    )


def render_password_reset(user: User, reset_url: str) -> RenderedEmail:
    html = f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #3B82F6;">Password Reset Request</h2>
        <p>Hi {escape(user.name)},</p>
        <p>You requested a password reset. This link expires in 10 minutes.</p>
        <p>{_button(reset_url, "Reset Password")}</p>
        <p style="color: #9CA3AF; font-size: 12px; margin-top: 30px;">
          If you did not request this, you can ignore this email.
        </p>
      </div>
    """
    text = (
        "You are receiving this email because you (or someone else) has requested "
        f"the reset of a password. Please open this link to reset it: {reset_url}"
    )
    return RenderedEmail(subject="Password Reset Request - Todu", text=text, html=html)


def render_list_invite(
    inviter: Optional[User], lst: TaskList, role: str, invite_url: str
) -> RenderedEmail:
    who = inviter.name if inviter else "Someone"
    html = f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #3B82F6;">You're invited to a list</h2>
        <p>{escape(who)} invited you to collaborate on "{escape(lst.name)}" as {escape(role)}.</p>
        <p>{_button(invite_url, "Accept Invitation")}</p>
        <p style="color: #9CA3AF; font-size: 12px; margin-top: 30px;">
          This invitation expires in 7 days.
        </p>
      </div>
    """
    return RenderedEmail(
        subject=f'{who} shared "{lst.name}" with you - Todu',
        text=f'{who} invited you to collaborate on "{lst.name}". Accept the invitation: {invite_url}',
        html=html,
    )
