from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Union


@dataclass
class EventTimeRange:
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[str] = None


@dataclass(kw_only=True)
class Event:
    day: Optional[str] = None
    time_range: Optional[EventTimeRange] = None
    description: str
    location: Optional[str] = None
    participants: list[str] = field(default_factory=list)


# Properties the requester uses to refer to an existing event.
@dataclass
class EventReference:
    day: Optional[str] = None
    day_range: Optional[str] = None
    time_range: Optional[EventTimeRange] = None
    description: Optional[str] = None
    location: Optional[str] = None
    participants: list[str] = field(default_factory=list)


@dataclass
class AddEventAction:
    action_type: Literal["add event"]
    event: Event


@dataclass
class RemoveEventAction:
    action_type: Literal["remove event"]
    event_reference: EventReference


@dataclass
class AddParticipantsAction:
    action_type: Literal["add participants"]
    event_reference: EventReference
    participants: list[str]


@dataclass
class ChangeTimeRangeAction:
    action_type: Literal["change time range"]
    event_reference: EventReference
    time_range: EventTimeRange


@dataclass
class ChangeDescriptionAction:
    action_type: Literal["change description"]
    event_reference: EventReference
    description: str


@dataclass
class FindEventsAction:
    action_type: Literal["find events"]
    event_reference: EventReference


# Used when the request cannot be understood as a calendar action.
@dataclass
class UnknownAction:
    action_type: Literal["unknown"]
    text: str


Action = Union[
    AddEventAction,
    RemoveEventAction,
    AddParticipantsAction,
    ChangeTimeRangeAction,
    ChangeDescriptionAction,
    FindEventsAction,
    UnknownAction,
]


@dataclass
class CalendarActions:
    """A list of requested calendar actions."""

    actions: list[Action]
