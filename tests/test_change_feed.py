from accountshop.services.change_feed import ChangeFeed


def test_snapshots_delivered_in_emission_order():
    feed = ChangeFeed()
    seen = []
    feed.subscribe(lambda snap: seen.append((snap.version, snap.documents)))

    feed.publish_from(lambda: ["a"])
    feed.publish_from(lambda: ["a", "b"])
    feed.publish_from(lambda: ["b"])

    assert seen == [(1, ("a",)), (2, ("a", "b")), (3, ("b",))]


def test_failing_subscriber_does_not_block_others():
    feed = ChangeFeed()
    errors = []
    seen = []

    def broken(snapshot):
        raise RuntimeError("render failed")

    feed.subscribe(broken, on_error=errors.append)
    feed.subscribe(lambda snap: seen.append(snap.documents))

    snapshot = feed.publish_from(lambda: [1, 2])

    assert snapshot is not None
    assert seen == [(1, 2)]
    assert len(errors) == 1


def test_loader_failure_reaches_error_handlers():
    feed = ChangeFeed()
    errors = []
    seen = []
    feed.subscribe(seen.append, on_error=errors.append)

    def loader():
        raise ConnectionError("store unreachable")

    assert feed.publish_from(loader) is None
    assert seen == []
    assert isinstance(errors[0], ConnectionError)
    assert feed.version == 0


def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    seen = []
    sub = feed.subscribe(seen.append)
    sub.unsubscribe()
    sub.unsubscribe()

    feed.publish_from(lambda: ["x"])
    assert seen == []
