import asyncio

from cv_intake.notifications.notification import Notification, NotificationDraft
from cv_intake.notifications.storage import JsonNotificationStorage
from cv_intake.notifications.store import NotificationStore


def _remote(notification_id, **overrides):
    values = dict(
        id=notification_id,
        title="CV Analysis: Ada",
        message="Analysis completed for Ada",
        type="cv_analysis",
        timestamp=1_700_000_000_000,
    )
    values.update(overrides)
    return Notification(**values)


def test_add_assigns_id_timestamp_and_unread():
    store = NotificationStore(clock_ms=lambda: 1_700_000_000_000)

    notification = store.add(NotificationDraft(title="Hi", message="there"))

    assert notification.id.startswith("notification_1700000000000_")
    assert notification.timestamp == 1_700_000_000_000
    assert not notification.read
    assert store.unread_count == 1


def test_merge_is_idempotent_and_prepends_new_items():
    store = NotificationStore()
    store.add(NotificationDraft(title="local", message="local"))

    added = store.merge([_remote("webhook_1"), _remote("webhook_2")])
    again = store.merge([_remote("webhook_2"), _remote("webhook_1")])

    assert [n.id for n in added] == ["webhook_1", "webhook_2"]
    assert again == []
    ids = [n.id for n in store.notifications]
    assert ids[:2] == ["webhook_1", "webhook_2"]
    assert len(ids) == len(set(ids)) == 3


def test_merge_drops_duplicates_within_one_batch_and_forces_unread():
    store = NotificationStore()
    added = store.merge([_remote("w", read=True), _remote("w")])
    assert len(added) == 1
    assert store.get("w").read is False


def test_mark_all_as_read_clears_unread_count():
    store = NotificationStore()
    store.merge([_remote("a"), _remote("b")])
    store.add(NotificationDraft(title="c", message="c"))

    store.mark_all_as_read()

    assert store.unread_count == 0
    assert store.unread() == []


def test_mark_as_read_reports_changes():
    store = NotificationStore()
    store.merge([_remote("a")])
    assert store.mark_as_read("a") is True
    assert store.mark_as_read("a") is False
    assert store.mark_as_read("missing") is False


def test_remove_and_hide():
    store = NotificationStore()
    store.merge([_remote("a"), _remote("pinned", can_hide=False)])

    assert store.remove("missing") is False
    assert store.hide("pinned") is False
    assert store.hide("a") is True
    assert "a" not in store
    assert "pinned" in store


def test_listeners_receive_snapshots_until_unsubscribed():
    store = NotificationStore()
    snapshots = []
    unsubscribe = store.subscribe(lambda items: snapshots.append(len(items)))

    store.merge([_remote("a")])
    store.add(NotificationDraft(title="b", message="b"))
    unsubscribe()
    store.clear_all()

    assert snapshots == [1, 2]
    assert len(store) == 0


def test_auto_close_removes_after_duration_and_tolerates_manual_removal():
    store = NotificationStore()

    async def scenario():
        expiring = store.add(
            NotificationDraft(title="t", message="m", auto_close=True, duration=0.01)
        )
        removed_early = store.add(
            NotificationDraft(title="u", message="n", auto_close=True, duration=0.01)
        )
        kept = store.add(NotificationDraft(title="v", message="o"))
        store.remove(removed_early.id)
        await asyncio.sleep(0.05)
        return expiring, kept

    expiring, kept = asyncio.run(scenario())

    assert expiring.id not in store
    assert kept.id in store
    assert len(store) == 1


def test_mutations_are_persisted_and_reloaded(tmp_path):
    path = tmp_path / "notifications.json"
    store = NotificationStore(storage=JsonNotificationStorage(path))
    store.add(NotificationDraft(title="kept", message="m", persistent=True))
    store.add(NotificationDraft(title="default", message="m"))
    store.add(NotificationDraft(title="transient", message="m", persistent=False))

    reloaded = NotificationStore(storage=JsonNotificationStorage(path))
    assert reloaded.load() == 2
    assert {n.title for n in reloaded.notifications} == {"kept", "default"}

    reloaded.clear_all()
    assert not path.exists()
