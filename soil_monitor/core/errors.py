from typing import Any, Dict, List, Optional


class MonitorError(Exception):
    """Base class for failures raised by the monitoring pipeline."""


class StoreUnavailable(MonitorError):
    """A store read or write could not be completed.

    The pipeline treats this as transient: the current cycle is abandoned
    and the next one is attempted on schedule.
    """


class ReadingValidationError(MonitorError):
    def __init__(self, errors: List[Dict[str, Any]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message or f"Invalid reading ({len(errors)} error(s))")


class SubscriberSendFailure(MonitorError):
    """A live subscriber's transport refused a message."""


class MailDeliveryError(MonitorError):
    """An outgoing e-mail could not be handed to the mail server."""
