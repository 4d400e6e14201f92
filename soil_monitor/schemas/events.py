"""
Live events pushed to subscribers.

Each kind is its own model tagged by ``event``; the transport only ever
calls ``to_message()`` and never inspects payload fields.
"""
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from soil_monitor.schemas.alert import AlertOut
from soil_monitor.schemas.reading import ReadingOut
from soil_monitor.schemas.status import SystemStatus


class _LiveEvent(BaseModel):
    def to_message(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ReadingsSnapshot(_LiveEvent):
    event: Literal["readings-snapshot"] = "readings-snapshot"
    data: List[ReadingOut]


class ReadingCreated(_LiveEvent):
    event: Literal["reading-created"] = "reading-created"
    data: ReadingOut


class AlertsCreated(_LiveEvent):
    event: Literal["alerts-created"] = "alerts-created"
    data: List[AlertOut]


class StatusChanged(_LiveEvent):
    event: Literal["status-changed"] = "status-changed"
    data: SystemStatus


LiveEvent = Annotated[
    Union[ReadingsSnapshot, ReadingCreated, AlertsCreated, StatusChanged],
    Field(discriminator="event"),
]

_event_adapter = TypeAdapter(LiveEvent)


def parse_event(message: Dict[str, Any]) -> Union[ReadingsSnapshot, ReadingCreated, AlertsCreated, StatusChanged]:
    return _event_adapter.validate_python(message)
