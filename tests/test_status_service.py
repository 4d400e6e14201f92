from soil_monitor.schemas.alert import AlertCandidate, AlertType
from soil_monitor.schemas.status import OverallStatus
from soil_monitor.services.status_service import StatusAggregator


def _insert(alert_store, clock, type_, title=None):
    candidate = AlertCandidate(
        type=type_,
        title=title or f"{type_.value} alert",
        message="m",
        sensor_id="sensor_3",
        value=1,
        threshold=25,
        location="Batac Farm 3",
    )
    return alert_store.insert(candidate, created_at=clock())


def test_no_alerts_is_healthy(alert_store):
    status = StatusAggregator(alert_store).compute_status()

    assert status.overall_status == OverallStatus.HEALTHY
    assert status.unread_count == 0
    assert status.recent_alerts == []


def test_all_read_is_healthy_even_with_criticals(alert_store, clock):
    _insert(alert_store, clock, AlertType.CRITICAL)
    _insert(alert_store, clock, AlertType.CRITICAL)
    alert_store.mark_all_read()

    status = StatusAggregator(alert_store).compute_status()

    assert status.overall_status == OverallStatus.HEALTHY
    assert status.unread_count == 0
    # history is still shown
    assert len(status.recent_alerts) == 2


def test_unread_with_recent_critical(alert_store, clock):
    _insert(alert_store, clock, AlertType.WARNING)
    _insert(alert_store, clock, AlertType.CRITICAL)
    _insert(alert_store, clock, AlertType.WARNING)

    status = StatusAggregator(alert_store).compute_status()

    assert status.overall_status == OverallStatus.CRITICAL
    assert status.unread_count == 3


def test_unread_warnings_only(alert_store, clock):
    for _ in range(4):
        _insert(alert_store, clock, AlertType.WARNING)

    status = StatusAggregator(alert_store).compute_status()

    assert status.overall_status == OverallStatus.WARNING
    assert status.unread_count == 4


def test_critical_outside_window_is_ignored(alert_store, clock):
    _insert(alert_store, clock, AlertType.CRITICAL, title="old critical")
    for i in range(5):
        _insert(alert_store, clock, AlertType.WARNING, title=f"w{i}")

    status = StatusAggregator(alert_store).compute_status()

    assert status.overall_status == OverallStatus.WARNING
    assert status.unread_count == 6


def test_read_critical_in_window_counts_when_anything_unread(alert_store, clock):
    critical = _insert(alert_store, clock, AlertType.CRITICAL)
    alert_store.mark_read(critical.id)
    _insert(alert_store, clock, AlertType.WARNING)

    status = StatusAggregator(alert_store).compute_status()

    assert status.overall_status == OverallStatus.CRITICAL
    assert status.unread_count == 1


def test_recent_alerts_are_three_newest(alert_store, clock):
    for i in range(5):
        _insert(alert_store, clock, AlertType.WARNING, title=f"w{i}")

    status = StatusAggregator(alert_store).compute_status()

    assert [a.title for a in status.recent_alerts] == ["w4", "w3", "w2"]


def test_mark_all_read_then_healthy(alert_store, clock):
    _insert(alert_store, clock, AlertType.CRITICAL)
    aggregator = StatusAggregator(alert_store)
    assert aggregator.compute_status().overall_status == OverallStatus.CRITICAL

    alert_store.mark_all_read()
    status = aggregator.compute_status()

    assert status.unread_count == 0
    assert status.overall_status == OverallStatus.HEALTHY


def test_status_serializes_camel_case(alert_store, clock):
    _insert(alert_store, clock, AlertType.WARNING)

    payload = StatusAggregator(alert_store).compute_status().model_dump(mode="json", by_alias=True)

    assert payload["overallStatus"] == "warning"
    assert payload["unreadCount"] == 1
    assert payload["recentAlerts"][0]["isRead"] is False
    assert "createdAt" in payload["recentAlerts"][0]
