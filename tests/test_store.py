import threading
from datetime import timedelta

from conftest import T0

from statusboard.models.schemas import EMPTY_STATE, CheckResult, EndpointState, MetricsResult, Status
from statusboard.services.store import StateStore


def _health(seconds: int, status=Status.HEALTHY) -> EndpointState:
    return EndpointState(health=CheckResult(status=status, description="OK", timestamp=T0 + timedelta(seconds=seconds)))


def test_initial_snapshot_is_empty():
    store = StateStore(["a", "b"])
    assert store.get("a") == EMPTY_STATE
    assert set(store.snapshot()) == {"a", "b"}
    assert store.get("zzz") is None


def test_set_state_merges_and_returns_both_snapshots():
    store = StateStore(["a"])
    prev, cur = store.set_state("a", _health(1))
    assert prev == EMPTY_STATE
    assert cur.health.timestamp == T0 + timedelta(seconds=1)

    metrics = EndpointState(metrics=MetricsResult(body="up 1", timestamp=T0 + timedelta(seconds=2)))
    prev2, cur2 = store.set_state("a", metrics)
    assert prev2 == cur
    assert cur2.health == cur.health
    assert cur2.metrics.body == "up 1"
    assert store.get("a") == cur2


def test_notifies_only_when_a_timestamp_moves():
    store = StateStore(["a"])
    events = []
    store.subscribe(lambda key, prev, cur: events.append((key, prev, cur)))

    store.set_state("a", EMPTY_STATE)
    assert events == []

    store.set_state("a", _health(1))
    assert len(events) == 1
    assert events[0][0] == "a"
    assert events[0][1] == EMPTY_STATE

    # same observation again: nothing changed
    store.set_state("a", _health(1))
    store.set_state("a", EMPTY_STATE)
    assert len(events) == 1

    store.set_state("a", _health(2, Status.UNHEALTHY))
    assert len(events) == 2
    assert events[1][2].health.status == Status.UNHEALTHY


def test_failing_subscriber_does_not_break_merge_or_others():
    store = StateStore(["a"])
    seen = []

    def broken(key, prev, cur):
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(lambda key, prev, cur: seen.append(key))

    _, cur = store.set_state("a", _health(1))
    assert seen == ["a"]
    assert store.get("a") == cur

    store.unsubscribe(broken)
    store.set_state("a", _health(2))
    assert seen == ["a", "a"]


def test_unknown_key_starts_from_empty():
    store = StateStore()
    prev, cur = store.set_state("late", _health(1))
    assert prev == EMPTY_STATE
    assert store.get("late") == cur


def test_concurrent_merges_are_serialized_per_key():
    store = StateStore(["a", "b"])
    pairs = []
    lock = threading.Lock()

    def record(key, prev, cur):
        with lock:
            pairs.append((key, prev.health.timestamp, cur.health.timestamp))

    store.subscribe(record)

    def writer(key: str, offset: int):
        for i in range(100):
            store.set_state(key, _health(offset + i))

    threads = [threading.Thread(target=writer, args=(k, n * 1000)) for n, k in enumerate(["a", "a", "b", "b"])]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(pairs) == 400
    for key in ("a", "b"):
        chain = [(p, c) for k, p, c in pairs if k == key]
        # every merge saw the result of the merge before it
        currents = {c for _, c in chain}
        previous = [p for p, _ in chain]
        assert sum(1 for p in previous if p not in currents) == 1  # only the initial empty
