"""
Notification addressing, per-user visibility, direct messages and
acknowledgements.
"""
import pytest

from backoffice.exceptions import AuthorizationError, NotFoundError, ValidationError
from backoffice.models import Notification, db
from backoffice.services.notification_service import Broadcast, ToRole, ToUser
from backoffice.utils.constants import NotificationType


def _seed(notifications, users):
    notifications.notify(Broadcast(), "info", "Global", "to everyone")
    notifications.notify(ToRole(users["Warehouse"].role_id), "info", "Warehouse", "to warehouse")
    notifications.notify(ToUser(users["Reception"].id), "info", "Personal", "to reception user")


def test_visibility(notifications, users):
    _seed(notifications, users)
    seen_by_reception = {n.title for n in notifications.list_for_user(users["Reception"])}
    seen_by_warehouse = {n.title for n in notifications.list_for_user(users["Warehouse"])}
    assert seen_by_reception == {"Global", "Personal"}
    assert seen_by_warehouse == {"Global", "Warehouse"}


def test_event_only_published_when_asked(notifications, notifier, users):
    notifications.notify(Broadcast(), "info", "Quiet", "no push")
    assert notifier.events == []
    notifications.notify(Broadcast(), "info", "Loud", "push", event="custom:event", event_payload={"x": 1})
    assert notifier.events == [("custom:event", {"x": 1})]


def test_list_limit_and_unread(notifications, users):
    for i in range(5):
        notifications.notify(Broadcast(), "info", f"n{i}", "m")
    assert len(notifications.list_for_user(users["Admin"], limit=3)) == 3
    first = notifications.list_for_user(users["Admin"])[0]
    notifications.mark_read(users["Admin"], first.id)
    assert len(notifications.list_for_user(users["Admin"], unread_only=True)) == 4


def test_mark_all_read_skips_global(notifications, users):
    _seed(notifications, users)
    assert notifications.mark_all_read(users["Reception"]) == 1
    unread = {n.title for n in notifications.list_for_user(users["Reception"], unread_only=True)}
    assert unread == {"Global"}


def test_cannot_touch_invisible_notification(notifications, users):
    _seed(notifications, users)
    hidden = db.session.scalar(db.select(Notification).filter_by(title="Warehouse"))
    with pytest.raises(NotFoundError):
        notifications.mark_read(users["Reception"], hidden.id)
    with pytest.raises(NotFoundError):
        notifications.delete(users["Reception"], hidden.id)


def test_delete(notifications, users):
    row = notifications.notify(ToUser(users["Admin"].id), "info", "Bye", "m")
    notifications.delete(users["Admin"], row.id)
    assert db.session.get(Notification, row.id) is None


def test_only_admin_sends_to_many(notifications, users):
    targets = [users["Warehouse"].id, users["Mechanic"].id]
    with pytest.raises(AuthorizationError):
        notifications.send(users["Reception"], targets, "task", "Wash cars", "please")
    sent = notifications.send(users["Admin"], targets, "task", "Wash cars", "please", requires_action=True)
    assert [n.user_id for n in sent] == targets
    assert all(n.sender_id == users["Admin"].id and n.requires_action for n in sent)
    assert [n.id for n in notifications.list_sent(users["Admin"])] == [sent[1].id, sent[0].id]


@pytest.mark.parametrize(
    "recipients, title",
    [([], "t"), (None, "t"), ("3", "t"), ([1], "")],
)
def test_send_validation(notifications, users, recipients, title):
    with pytest.raises(ValidationError):
        notifications.send(users["Admin"], recipients, "task", title, "m")


def test_send_to_unknown_user(notifications, users):
    with pytest.raises(NotFoundError):
        notifications.send(users["Reception"], [999], "task", "t", "m")


def test_send_with_one_unknown_recipient_writes_nothing(notifications, users):
    before = db.session.scalar(db.select(db.func.count(Notification.id)))
    with pytest.raises(NotFoundError):
        notifications.send(users["Admin"], [users["Manager"].id, users["Mechanic"].id, 999], "task", "t", "m")
    assert db.session.scalar(db.select(db.func.count(Notification.id))) == before


def test_acknowledge_replies_to_sender(notifications, users):
    [msg] = notifications.send(users["Manager"], [users["Warehouse"].id], "task", "Bring car", "now")
    reply = notifications.acknowledge(users["Warehouse"], msg.id, "on my way")

    assert db.session.get(Notification, msg.id).is_read
    assert reply.user_id == users["Manager"].id
    assert reply.sender_id == users["Warehouse"].id
    assert reply.type == NotificationType.ACKNOWLEDGMENT
    assert reply.title == "Re: Bring car"
    assert reply.message == "on my way"


def test_acknowledge_without_sender_just_marks_read(notifications, users):
    row = notifications.notify(Broadcast(), "info", "System", "m")
    assert notifications.acknowledge(users["Reception"], row.id) is None
    assert db.session.get(Notification, row.id).is_read
