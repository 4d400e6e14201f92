import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Sequence, Tuple

from soil_monitor.core.errors import StoreUnavailable
from soil_monitor.core.timeutils import utcnow
from soil_monitor.db.alert_store import AlertStore
from soil_monitor.schemas.alert import AlertCandidate, AlertOut

logger = logging.getLogger(__name__)


@dataclass
class PersistOutcome:
    alerts: List[AlertOut] = field(default_factory=list)
    failures: List[Tuple[AlertCandidate, StoreUnavailable]] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.alerts) and bool(self.failures)


class AlertPersister:
    def __init__(self, alert_store: AlertStore, clock: Callable[[], datetime] = utcnow):
        self.alert_store = alert_store
        self.clock = clock

    def persist(self, candidate: AlertCandidate) -> AlertOut:
        return self.alert_store.insert(candidate, created_at=self.clock())

    def persist_all(self, candidates: Sequence[AlertCandidate]) -> PersistOutcome:
        """
        Inserts the candidates one by one, in order. A failed insert is
        recorded and the remaining candidates are still attempted; alerts
        already written stay written.
        """
        outcome = PersistOutcome()
        for candidate in candidates:
            try:
                outcome.alerts.append(self.persist(candidate))
            except StoreUnavailable as exc:
                logger.error("Could not persist alert '%s' for %s: %s", candidate.title, candidate.sensor_id, exc)
                outcome.failures.append((candidate, exc))
        return outcome
