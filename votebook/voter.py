'''Voter records and profiles.

A voter can do exactly one of two things during the election: vote for a
candidate, or delegate their vote to another registered voter. The record
keeps track of which, if any, has happened.
'''

from __future__ import annotations

import copy
from typing import Any, NamedTuple, Optional

from votebook.persist import simple_serialization

NO_CANDIDATE: int = 0
'''The ``voted_for`` value of a voter who has not voted.'''


class VoterProfile(NamedTuple):
    '''A read-only view of a voter, as returned by profile lookups.'''
    name: Optional[str] = None
    voted_for: int = NO_CANDIDATE
    has_delegated: bool = False

    def to_dict(self):
        return self._asdict()


EMPTY_PROFILE = VoterProfile()


@simple_serialization
class Voter:
    '''A voter registered by the election administrator.

    :param address: Identity of the voter as supplied by the hosting layer.
    :param name: Name of the voter, if known.
    :param voted_for: Id of the candidate voted for, or ``NO_CANDIDATE``.
    :param has_delegated: Whether the voter has delegated their vote.
    :param delegate: Identity the vote was delegated to, if any.
    '''
    def __init__(self,
                 address: Any,
                 name: Optional[str] = None,
                 voted_for: int = NO_CANDIDATE,
                 has_delegated: bool = False,
                 delegate: Any = None,
                 ):
        if voted_for != NO_CANDIDATE and has_delegated:
            raise ValueError(
                f'voter {address!r} cannot both vote and delegate'
            )
        if has_delegated != (delegate is not None):
            raise ValueError(
                f'voter {address!r} delegation flag does not match delegate'
            )
        self.address = address
        self.name = name
        self.voted_for = voted_for
        self.has_delegated = has_delegated
        self.delegate = delegate

    @property
    def has_voted(self) -> bool:
        return self.voted_for != NO_CANDIDATE

    def profile(self) -> VoterProfile:
        return VoterProfile(self.name, self.voted_for, self.has_delegated)

    def copy(self) -> Voter:
        return copy.copy(self)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Voter):
            return NotImplemented
        return self._fields() == other._fields()

    def _fields(self) -> tuple:
        return (
            self.address, self.name, self.voted_for,
            self.has_delegated, self.delegate,
        )

    def __repr__(self) -> str:
        if self.has_voted:
            status = f'voted {self.voted_for}'
        elif self.has_delegated:
            status = f'delegated {self.delegate!r}'
        else:
            status = 'pending'
        return f'<Voter({self.address!r},{status})>'
