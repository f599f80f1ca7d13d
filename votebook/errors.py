'''Errors raised by the election ledger.

Every error is a permanent rejection of a single ledger call given the
current state of the election; the ledger is left unchanged whenever one
is raised.
'''

from typing import Any, Optional


class ElectionError(Exception):
    '''A ledger operation was rejected.'''
    pass


class Unauthorized(ElectionError):
    '''The caller lacks the privilege or registration the operation needs.

    :param caller: Identity that attempted the operation.
    :param operation: Name of the rejected operation.
    :param reason: What the caller was expected to be.
    '''
    def __init__(self, caller: Any, operation: str, reason: str = 'admin'):
        self.caller = caller
        self.operation = operation
        self.reason = reason
        super().__init__(
            f'{caller!r} not allowed to {operation}, must be {reason}'
        )


class InvalidState(ElectionError):
    '''The operation is illegal in the current state of the election.

    :param state: State the election is in.
    :param operation: Name of the rejected operation.
    :param expected: State the operation requires.
    '''
    def __init__(self, state: Any, operation: str, expected: Any = None):
        self.state = state
        self.operation = operation
        self.expected = expected
        message = f'cannot {operation} when election is {state.value}'
        if expected is not None:
            message += f', must be {expected.value}'
        super().__init__(message)


class AlreadyRegistered(ElectionError):
    '''The identity is registered as a voter already.'''
    def __init__(self, identity: Any):
        self.identity = identity
        super().__init__(f'voter {identity!r} already registered')


class AlreadyVoted(ElectionError):
    '''The voter has cast a vote already.

    :param voter: Identity of the voter.
    :param voted_for: Candidate id the earlier vote went to.
    '''
    def __init__(self, voter: Any, voted_for: int):
        self.voter = voter
        self.voted_for = voted_for
        super().__init__(
            f'voter {voter!r} already voted for candidate {voted_for}'
        )


class AlreadyDelegated(ElectionError):
    '''The voter has delegated their vote already.'''
    def __init__(self, voter: Any, delegate: Any):
        self.voter = voter
        self.delegate = delegate
        super().__init__(
            f'voter {voter!r} already delegated to {delegate!r}'
        )


class SelfDelegation(ElectionError):
    '''A voter tried to delegate their vote to themselves.'''
    def __init__(self, voter: Any):
        self.voter = voter
        super().__init__(f'voter {voter!r} cannot delegate to themselves')


class DelegateNotRegistered(ElectionError):
    '''The delegation target is not a registered voter.'''
    def __init__(self, delegatee: Any):
        self.delegatee = delegatee
        super().__init__(f'delegate {delegatee!r} is not a registered voter')


class DelegatedAway(ElectionError):
    '''The voter cannot vote because they delegated their vote.'''
    def __init__(self, voter: Any, delegate: Any):
        self.voter = voter
        self.delegate = delegate
        super().__init__(
            f'voter {voter!r} delegated their vote to {delegate!r}'
        )


class InvalidCandidate(ElectionError):
    '''The candidate id does not point to an existing candidate.

    :param candidate_id: The id that was asked for.
    :param count: Number of candidates in the election.
    '''
    def __init__(self, candidate_id: Any, count: Optional[int] = None):
        self.candidate_id = candidate_id
        self.count = count
        message = f'invalid candidate id: {candidate_id!r}'
        if count is not None:
            message += (
                f', must be between 1 and {count}' if count
                else ', there are no candidates'
            )
        super().__init__(message)


class VoterNotFound(ElectionError):
    '''The identity is not a registered voter.'''
    def __init__(self, identity: Any):
        self.identity = identity
        super().__init__(f'no voter registered as {identity!r}')
