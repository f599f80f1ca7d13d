'''Candidates standing in the election.'''

from __future__ import annotations

import copy

from votebook.persist import simple_serialization


@simple_serialization
class Candidate:
    '''A candidate registered by the election administrator.

    Candidates are numbered from 1 in the order they were added; the id
    never changes once assigned. Only the vote counter changes afterwards,
    and only by the ledger.

    :param id: Candidate number, 1-based.
    :param name: Name of the candidate.
    :param proposal: The candidate's proposal or manifesto.
    :param votes: Number of votes cast directly for the candidate.
    '''
    def __init__(self, id: int, name: str, proposal: str, votes: int = 0):
        if not isinstance(id, int) or isinstance(id, bool) or id < 1:
            raise ValueError(f'candidate id must be a positive int, got {id!r}')
        if not isinstance(votes, int) or isinstance(votes, bool) or votes < 0:
            raise ValueError(
                f'candidate vote count must be a non-negative int, got {votes!r}'
            )
        self.id = id
        self.name = name
        self.proposal = proposal
        self.votes = votes

    def copy(self) -> Candidate:
        return copy.copy(self)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Candidate):
            return NotImplemented
        return (
            (self.id, self.name, self.proposal, self.votes)
            == (other.id, other.name, other.proposal, other.votes)
        )

    def __repr__(self) -> str:
        return f'<Candidate({self.id},{self.name},{self.votes})>'
