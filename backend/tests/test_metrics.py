"""Metrics collector tests."""

from furlink.core.metrics import MetricsCollector


def test_ring_buffer_is_bounded():
    m = MetricsCollector(history_size=3)
    for i in range(5):
        m.record("GET", f"/p/{i}", 200, float(i))

    recent = m.recent()
    assert [s.path for s in recent] == ["/p/2", "/p/3", "/p/4"]
    assert m.request_count == 5


def test_snapshot_aggregates():
    m = MetricsCollector(history_size=10)
    m.record("GET", "/a", 200, 10.0)
    m.record("POST", "/b", 503, 30.0)
    m.record("GET", "/c", 404, 20.0)

    snap = m.snapshot(history_limit=2)
    assert snap["request_count"] == 3
    assert snap["error_count"] == 1
    assert snap["error_rate"] == 33.33
    assert snap["avg_response_ms"] == 20.0
    assert snap["max_response_ms"] == 30.0
    assert snap["min_response_ms"] == 10.0
    assert [r["path"] for r in snap["recent"]] == ["/b", "/c"]


def test_empty_snapshot():
    snap = MetricsCollector().snapshot()
    assert snap["request_count"] == 0
    assert snap["avg_response_ms"] == 0.0
    assert snap["recent"] == []
