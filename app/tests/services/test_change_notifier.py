import uuid

from app.services.change_notifier import ChangeKind, ChangeNotifier


def test_subscribers_filter_by_opportunity():
    notifier = ChangeNotifier()
    watched, other = uuid.uuid4(), uuid.uuid4()
    seen_all, seen_watched = [], []
    notifier.subscribe(seen_all.append)
    notifier.subscribe(seen_watched.append, opportunity_id=watched)

    notifier.emit(ChangeKind.ASSIGNMENT_CHANGED, watched, action="joined")
    notifier.emit(ChangeKind.OPPORTUNITY_CHANGED, other, change="status")

    assert len(seen_all) == 2
    assert [e.opportunity_id for e in seen_watched] == [watched]
    assert seen_watched[0].payload == {"action": "joined"}


def test_failing_subscriber_does_not_block_others(caplog):
    notifier = ChangeNotifier()
    received = []

    def broken(event):
        raise RuntimeError("socket closed")

    notifier.subscribe(broken)
    notifier.subscribe(received.append)

    event = notifier.emit(ChangeKind.OPPORTUNITY_CHANGED, uuid.uuid4(), change="created")

    assert received == [event]
    assert "subscriber failed" in caplog.text


def test_unsubscribe_stops_delivery():
    notifier = ChangeNotifier()
    received = []
    unsubscribe = notifier.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    notifier.emit(ChangeKind.OPPORTUNITY_CHANGED, uuid.uuid4())

    assert received == []
