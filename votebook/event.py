'''Notifications emitted by the election ledger.

Every successful mutating ledger operation emits exactly one notification.
The notification names and the order of their fields are an external
contract for subscribers (user interfaces, audit logs, indexers) and must
not change:

-   :class:`CandidateAdded` - ``id``, ``name``, ``proposal``
-   :class:`VoterRegistered` - ``address``, ``name``
-   :class:`ElectionStarted` - no fields
-   :class:`DelegationRecorded` - ``delegator``, ``delegatee``
-   :class:`VoteCast` - ``voter``, ``candidate_id``
-   :class:`ElectionEnded` - no fields

The ledger appends its notifications to an :class:`EventLog` and passes
them to any subscribed listeners, in the order the operations were applied.
'''

from __future__ import annotations

import dataclasses
import collections.abc
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union


@dataclasses.dataclass(frozen=True)
class CandidateAdded:
    id: int
    name: str
    proposal: str


@dataclasses.dataclass(frozen=True)
class VoterRegistered:
    address: Any
    name: Optional[str]


@dataclasses.dataclass(frozen=True)
class ElectionStarted:
    pass


@dataclasses.dataclass(frozen=True)
class DelegationRecorded:
    delegator: Any
    delegatee: Any


@dataclasses.dataclass(frozen=True)
class VoteCast:
    voter: Any
    candidate_id: int


@dataclasses.dataclass(frozen=True)
class ElectionEnded:
    pass


Event = Union[
    CandidateAdded, VoterRegistered, ElectionStarted,
    DelegationRecorded, VoteCast, ElectionEnded,
]

EVENTS: Dict[str, type] = {
    cls.__name__: cls for cls in (
        CandidateAdded, VoterRegistered, ElectionStarted,
        DelegationRecorded, VoteCast, ElectionEnded,
    )
}


def event_name(event: Event) -> str:
    return type(event).__name__


def event_to_dict(event: Event) -> Dict[str, Any]:
    '''Serialize a notification into a flat dictionary.

    The ``event`` key holds the notification name, followed by the fields in
    their contractual order.
    '''
    out_dict = {'event': event_name(event)}
    for field in dataclasses.fields(event):
        out_dict[field.name] = getattr(event, field.name)
    return out_dict


def event_from_dict(value: Dict[str, Any]) -> Event:
    '''Reconstruct a notification serialized by :func:`event_to_dict`.'''
    try:
        cls = EVENTS[value['event']]
    except (KeyError, TypeError) as e:
        raise ValueError(f'invalid event def: {value!r}') from e
    fields = {key: val for key, val in value.items() if key != 'event'}
    field_names = [field.name for field in dataclasses.fields(cls)]
    if set(fields) != set(field_names):
        raise ValueError(
            f'invalid {cls.__name__} fields: {sorted(fields)}, '
            f'must be {field_names}'
        )
    return cls(**fields)


class EventLog(collections.abc.Sequence):
    '''An append-only in-memory record of emitted notifications.

    Only the ledger appends to the log; to outside readers it behaves as a
    read-only sequence.

    :param events: Notifications to start the log with.
    '''
    def __init__(self, events: Iterable[Event] = ()):
        self._events: List[Event] = list(events)

    def _append(self, event: Event) -> None:
        self._events.append(event)

    def __getitem__(self, index):
        return self._events[index]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))

    def of_type(self, event_type: type) -> List[Event]:
        '''Return all logged notifications of the given type, in order.'''
        return [event for event in self._events if isinstance(event, event_type)]

    def to_dict(self) -> Dict[str, Any]:
        return {'events': [event_to_dict(event) for event in self._events]}

    @classmethod
    def from_dict(cls, value: Dict[str, Any]) -> EventLog:
        return cls(event_from_dict(event) for event in value['events'])

    def __repr__(self) -> str:
        return f'<EventLog({len(self._events)} events)>'
