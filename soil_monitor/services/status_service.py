from soil_monitor.db.alert_store import AlertStore
from soil_monitor.schemas.alert import AlertType
from soil_monitor.schemas.status import OverallStatus, SystemStatus

# alerts inspected for severity / alerts returned to callers
STATUS_WINDOW = 5
RECENT_SHOWN = 3


class StatusAggregator:
    """Read-only view of overall system health over recent alert history."""

    def __init__(self, alert_store: AlertStore):
        self.alert_store = alert_store

    def compute_status(self) -> SystemStatus:
        unread_count = self.alert_store.unread_count()
        recent = self.alert_store.recent(STATUS_WINDOW, include_read=True)

        overall = OverallStatus.HEALTHY
        if unread_count > 0:
            has_critical = any(a.type == AlertType.CRITICAL for a in recent)
            overall = OverallStatus.CRITICAL if has_critical else OverallStatus.WARNING

        return SystemStatus(
            overall_status=overall,
            unread_count=unread_count,
            recent_alerts=recent[:RECENT_SHOWN],
        )
