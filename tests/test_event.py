
import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import votebook.event
from votebook.event import CandidateAdded, VoterRegistered, ElectionStarted, \
    DelegationRecorded, VoteCast, ElectionEnded, EventLog


@pytest.mark.parametrize(('event', 'expected'), [
    (CandidateAdded(1, 'A', 'parks'),
     [('event', 'CandidateAdded'), ('id', 1), ('name', 'A'),
      ('proposal', 'parks')]),
    (VoterRegistered('v1', None),
     [('event', 'VoterRegistered'), ('address', 'v1'), ('name', None)]),
    (ElectionStarted(), [('event', 'ElectionStarted')]),
    (DelegationRecorded('v1', 'v2'),
     [('event', 'DelegationRecorded'), ('delegator', 'v1'),
      ('delegatee', 'v2')]),
    (VoteCast('v1', 2),
     [('event', 'VoteCast'), ('voter', 'v1'), ('candidate_id', 2)]),
    (ElectionEnded(), [('event', 'ElectionEnded')]),
])
def test_event_schema(event, expected):
    serialized = votebook.event.event_to_dict(event)
    assert list(serialized.items()) == expected
    assert votebook.event.event_from_dict(serialized) == event


def test_fieldless_events_differ():
    assert ElectionStarted() != ElectionEnded()


@pytest.mark.parametrize('value', [
    {'event': 'Nonsense'},
    {'name': 'A'},
    {'event': 'VoteCast', 'voter': 'v1'},
    {'event': 'VoteCast', 'voter': 'v1', 'candidate_id': 1, 'extra': 0},
    ['VoteCast'],
])
def test_invalid_event_defs(value):
    with pytest.raises(ValueError):
        votebook.event.event_from_dict(value)


def test_event_log_sequence():
    log = EventLog([
        ElectionStarted(), VoteCast('v1', 1), VoteCast('v2', 1),
    ])
    assert len(log) == 3
    assert log[0] == ElectionStarted()
    assert log[-1] == VoteCast('v2', 1)
    assert log.of_type(VoteCast) == [VoteCast('v1', 1), VoteCast('v2', 1)]
    assert EventLog.from_dict(log.to_dict())[:] == log[:]


def test_event_log_iteration_is_stable():
    log = EventLog([ElectionStarted()])
    seen = []
    for event in log:
        seen.append(event)
        log._append(ElectionEnded())
    assert seen == [ElectionStarted()]
    assert len(log) == 2
