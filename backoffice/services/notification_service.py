"""Notification dispatch: persist a row, then push an event to live clients."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

from sqlalchemy import or_

from ..exceptions import AuthorizationError, NotFoundError, ValidationError
from ..models import Notification, Role, User, db
from ..models.store import atomic
from ..utils.constants import NotificationType, Role as RoleName
from .realtime import Notifier

logger = logging.getLogger(__name__)


# ---------- Addressing ----------
@dataclass(frozen=True)
class ToUser:
    user_id: int


@dataclass(frozen=True)
class ToRole:
    role_id: int


@dataclass(frozen=True)
class Broadcast:
    pass


Addressing = Union[ToUser, ToRole, Broadcast]


def _address_columns(addressing: Addressing) -> dict:
    if isinstance(addressing, ToUser):
        return {"user_id": addressing.user_id, "role_id": None}
    if isinstance(addressing, ToRole):
        return {"user_id": None, "role_id": addressing.role_id}
    if isinstance(addressing, Broadcast):
        return {"user_id": None, "role_id": None}
    raise TypeError(f"Unsupported addressing: {addressing!r}")


def _build_row(addressing: Addressing, type: str, title: str, message: str, payload, sender_id,
               requires_action: bool, action_type) -> Notification:
    return Notification(
        type=type,
        title=title,
        message=message,
        data=payload,
        sender_id=sender_id,
        requires_action=requires_action,
        action_type=action_type,
        **_address_columns(addressing),
    )


def _visible_to(user: User):
    """Personal, role-wide and global notifications for ``user``."""
    return or_(
        Notification.user_id == user.id,
        Notification.role_id == user.role_id,
        (Notification.user_id.is_(None)) & (Notification.role_id.is_(None)),
    )


class NotificationService:
    """
    Persists notifications and fans them out over the injected notifier.
    The push is a plain broadcast; clients decide relevance themselves.
    """

    def __init__(self, notifier: Notifier, list_limit: int = 50):
        self.notifier = notifier
        self.list_limit = list_limit

    # ---------- Dispatch ----------
    def notify(
            self,
            addressing: Addressing,
            type: str,
            title: str,
            message: str,
            payload: dict | None = None,
            *,
            event: str | None = None,
            event_payload: Any = None,
            sender_id: int | None = None,
            requires_action: bool = False,
            action_type: str | None = None,
    ) -> Notification:
        """Persist one notification row and, if ``event`` is given, publish it."""
        with atomic() as session:
            row = _build_row(addressing, type, title, message, payload, sender_id, requires_action, action_type)
            session.add(row)
        if event:
            self.publish(event, event_payload if event_payload is not None else row.to_dict())
        return row

    def publish(self, event: str, payload: Any) -> int:
        delivered = self.notifier.publish(event, payload)
        logger.info("event %s pushed to %d client(s)", event, delivered)
        return delivered

    # ---------- Read side ----------
    def list_for_user(self, user: User, unread_only: bool = False, limit: int | None = None) -> list[Notification]:
        stmt = db.select(Notification).where(_visible_to(user))
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit or self.list_limit)
        return list(db.session.scalars(stmt))

    def _get_visible(self, user: User, notification_id: int) -> Notification:
        stmt = db.select(Notification).where(Notification.id == notification_id, _visible_to(user))
        row = db.session.scalars(stmt).first()
        if row is None:
            raise NotFoundError("Notification not found")
        return row

    def mark_read(self, user: User, notification_id: int) -> Notification:
        with atomic():
            row = self._get_visible(user, notification_id)
            row.is_read = True
        return row

    def mark_all_read(self, user: User) -> int:
        """Mark the user's personal and role notifications read; global ones stay as they are."""
        with atomic() as session:
            result = session.execute(
                db.update(Notification)
                .where(
                    or_(Notification.user_id == user.id, Notification.role_id == user.role_id),
                    Notification.is_read.is_(False),
                )
                .values(is_read=True)
            )
        return result.rowcount or 0

    def delete(self, user: User, notification_id: int) -> None:
        with atomic() as session:
            session.delete(self._get_visible(user, notification_id))

    def list_sent(self, user: User) -> list[Notification]:
        stmt = (
            db.select(Notification)
            .where(Notification.sender_id == user.id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(db.session.scalars(stmt))

    def send(self, sender: User, recipient_ids, type: str, title: str, message: str,
             requires_action: bool = False, action_type: str | None = None) -> list[Notification]:
        """User-to-user messages; only admins may address several recipients at once."""
        if not recipient_ids or not isinstance(recipient_ids, list):
            raise ValidationError("Recipient IDs are required")
        if not type or not title or not message:
            raise ValidationError("Type, title, and message are required")
        if sender.role.name != RoleName.ADMIN and len(recipient_ids) > 1:
            raise AuthorizationError("Only admins can send to multiple recipients")

        # All recipients must exist before any row is written
        for rid in recipient_ids:
            if db.session.get(User, rid) is None:
                raise NotFoundError(f"User {rid} not found")

        with atomic() as session:
            sent = [
                _build_row(ToUser(rid), type, title, message, None, sender.id, bool(requires_action), action_type)
                for rid in recipient_ids
            ]
            session.add_all(sent)
        return sent

    def acknowledge(self, user: User, notification_id, message: str | None = None) -> Notification | None:
        """Mark a notification read and reply to its sender, if it has one."""
        if not notification_id:
            raise ValidationError("Notification ID is required")
        original = self.mark_read(user, notification_id)
        if not original.sender_id:
            return None
        return self.notify(
            ToUser(original.sender_id),
            NotificationType.ACKNOWLEDGMENT,
            f"Re: {original.title}",
            message or "Notification acknowledged",
            {"original_notification_id": original.id},
            sender_id=user.id,
        )

    @staticmethod
    def role_by_name(name: str) -> Role | None:
        return db.session.scalars(db.select(Role).filter_by(name=name)).first()
