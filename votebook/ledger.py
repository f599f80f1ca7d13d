'''The election ledger: state machine and vote tally of a single election.

The ledger runs exactly one election with a single administrator. The
administrator adds candidates and registers voters, opens voting and closes
it again; registered voters either cast one vote or delegate it to another
registered voter in between. The election moves strictly forward through
the states of :class:`ElectionState` and nothing is ever deleted or reset;
a new election needs a new ledger.

The ledger does not authenticate anyone. Each operation receives the
identity of its caller as verified by the hosting layer, and compares it to
the administrator identity or looks it up among the registered voters.

All operations run under a single reentrant lock. Mutations are therefore
applied one at a time, reads see a consistent state, and notifications are
logged and passed to listeners in the order of the mutations that caused
them. An operation either succeeds completely and emits exactly one
notification, or raises a subclass of
:class:`votebook.errors.ElectionError` and leaves the ledger untouched.

Delegation is a single hop: the ledger records who delegated to whom but
never follows delegation chains, and a delegated vote is not counted for
any candidate.
'''

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from votebook.candidate import Candidate
from votebook.event import Event, EventLog, CandidateAdded, VoterRegistered, \
    ElectionStarted, DelegationRecorded, VoteCast, ElectionEnded
from votebook.errors import Unauthorized, InvalidState, AlreadyRegistered, \
    AlreadyVoted, AlreadyDelegated, SelfDelegation, DelegateNotRegistered, \
    DelegatedAway, InvalidCandidate, VoterNotFound
from votebook.voter import Voter, VoterProfile, EMPTY_PROFILE
import votebook.persist

logger = logging.getLogger(__name__)

Listener = Callable[[Event], Any]


class ElectionState(enum.Enum):
    '''Phases of the election, in the only order they can occur.'''
    NOT_STARTED = 'not started'
    ONGOING = 'ongoing'
    ENDED = 'ended'


class ElectionLedger:
    '''Ledger of a single election run by a single administrator.

    :param admin: Identity of the administrator. Only this identity can add
        candidates and voters and start or end the election.
    :param listeners: Callables to pass every emitted notification to.
    '''
    def __init__(self, admin: Any, listeners: Iterable[Listener] = ()):
        self._admin = admin
        self._state = ElectionState.NOT_STARTED
        self._candidates: List[Candidate] = []
        self._voters: Dict[Any, Voter] = {}
        self._registered: Dict[Any, bool] = {}
        self._events = EventLog()
        self._listeners: List[Listener] = list(listeners)
        self._lock = threading.RLock()

    @property
    def admin(self) -> Any:
        return self._admin

    @property
    def state(self) -> ElectionState:
        with self._lock:
            return self._state

    @property
    def candidate_count(self) -> int:
        with self._lock:
            return len(self._candidates)

    @property
    def events(self) -> EventLog:
        '''All notifications emitted so far, in emission order.'''
        return self._events

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def add_candidate(self, caller: Any, name: str, proposal: str) -> int:
        '''Add a candidate to the ballot.

        :param caller: Identity of the caller; must be the administrator.
        :param name: Name of the candidate.
        :param proposal: The candidate's proposal.
        :returns: Id of the new candidate.
        :raises Unauthorized: If the caller is not the administrator.
        :raises InvalidState: If the election has already started.
        '''
        with self._lock:
            self._check_admin(caller, 'add candidate')
            self._check_state(ElectionState.NOT_STARTED, 'add candidate')
            candidate = Candidate(len(self._candidates) + 1, name, proposal)
            self._candidates.append(candidate)
            logger.debug('added candidate %d: %s', candidate.id, name)
            self._emit(CandidateAdded(candidate.id, name, proposal))
            return candidate.id

    def add_voter(self, caller: Any, identity: Any,
                  name: Optional[str] = None,
                  ) -> None:
        '''Register a voter.

        :param caller: Identity of the caller; must be the administrator.
        :param identity: Identity of the voter to register.
        :param name: Name of the voter, if known.
        :raises ValueError: If the identity is None, which marks an absent
            delegate in voter records.
        :raises AlreadyRegistered: If the identity is registered already.
        '''
        with self._lock:
            self._check_admin(caller, 'add voter')
            self._check_state(ElectionState.NOT_STARTED, 'add voter')
            if identity is None:
                raise ValueError('voter identity cannot be None')
            if self._registered.get(identity, False):
                raise AlreadyRegistered(identity)
            self._voters[identity] = Voter(identity, name)
            self._registered[identity] = True
            logger.debug('registered voter %r', identity)
            self._emit(VoterRegistered(identity, name))

    def start_election(self, caller: Any) -> None:
        with self._lock:
            self._check_admin(caller, 'start election')
            self._check_state(ElectionState.NOT_STARTED, 'start election')
            self._state = ElectionState.ONGOING
            logger.info(
                'election started with %d candidates and %d voters',
                len(self._candidates), len(self._voters)
            )
            self._emit(ElectionStarted())

    def delegate_vote(self, delegator: Any, delegatee: Any) -> None:
        '''Delegate the caller's vote to another registered voter.

        Only the delegation itself is recorded. The delegatee may have voted
        or delegated themselves already; no chain is followed.

        :param delegator: Identity of the caller, a registered voter.
        :param delegatee: Identity of the registered voter to delegate to.
        '''
        with self._lock:
            self._check_state(ElectionState.ONGOING, 'delegate vote')
            voter = self._voters.get(delegator)
            if voter is None:
                raise Unauthorized(delegator, 'delegate vote',
                                   'a registered voter')
            if delegatee == delegator:
                raise SelfDelegation(delegator)
            if voter.has_delegated:
                raise AlreadyDelegated(delegator, voter.delegate)
            if voter.has_voted:
                raise AlreadyVoted(delegator, voter.voted_for)
            if not self._registered.get(delegatee, False):
                raise DelegateNotRegistered(delegatee)
            voter.has_delegated = True
            voter.delegate = delegatee
            logger.debug('voter %r delegated to %r', delegator, delegatee)
            self._emit(DelegationRecorded(delegator, delegatee))

    def cast_vote(self, voter: Any, candidate_id: int) -> None:
        '''Cast the caller's vote for a candidate.

        :param voter: Identity of the caller, a registered voter.
        :param candidate_id: Id of the candidate to vote for.
        :raises Unauthorized: If the caller is not a registered voter.
        :raises AlreadyVoted: If the caller has voted already.
        :raises DelegatedAway: If the caller has delegated their vote.
        :raises InvalidCandidate: If there is no candidate with the id.
        '''
        with self._lock:
            record = self._voters.get(voter)
            if record is None:
                raise Unauthorized(voter, 'cast vote', 'a registered voter')
            self._check_state(ElectionState.ONGOING, 'cast vote')
            if record.has_voted:
                raise AlreadyVoted(voter, record.voted_for)
            if record.has_delegated:
                raise DelegatedAway(voter, record.delegate)
            candidate = self._candidate(candidate_id)
            candidate.votes += 1
            record.voted_for = candidate.id
            logger.debug('voter %r voted for candidate %d', voter, candidate.id)
            self._emit(VoteCast(voter, candidate.id))

    def end_election(self, caller: Any) -> None:
        with self._lock:
            self._check_admin(caller, 'end election')
            self._check_state(ElectionState.ONGOING, 'end election')
            self._state = ElectionState.ENDED
            logger.info(
                'election ended, %d votes cast', self._votes_cast()
            )
            self._emit(ElectionEnded())

    def get_candidate(self, candidate_id: int) -> Candidate:
        '''Return a copy of the candidate with the given id.'''
        with self._lock:
            return self._candidate(candidate_id).copy()

    def get_candidates(self) -> List[Candidate]:
        with self._lock:
            return [candidate.copy() for candidate in self._candidates]

    def get_results(self, candidate_id: int) -> int:
        '''Return the current number of votes for the candidate.

        The count is available at any time, including while voting is still
        in progress.
        '''
        with self._lock:
            return self._candidate(candidate_id).votes

    def get_tally(self) -> Dict[int, int]:
        '''Return current vote counts of all candidates, keyed by id.'''
        with self._lock:
            return {cand.id: cand.votes for cand in self._candidates}

    def get_winner(self) -> Candidate:
        '''Return the candidate with the most votes once the election ended.

        Ties go to the candidate with the lowest id. If no votes were cast,
        this is the first candidate, with zero votes.

        :raises InvalidState: If the election has not ended.
        :raises InvalidCandidate: If there are no candidates at all.
        '''
        with self._lock:
            self._check_state(ElectionState.ENDED, 'get winner')
            if not self._candidates:
                raise InvalidCandidate(1, 0)
            winner = self._candidates[0]
            for candidate in self._candidates[1:]:
                if candidate.votes > winner.votes:
                    winner = candidate
            return winner.copy()

    def get_voter_profile(self, identity: Any) -> VoterProfile:
        '''Return the name and voting status of a voter.

        Identities that were never registered get an empty profile instead
        of an error.
        '''
        with self._lock:
            voter = self._voters.get(identity)
            if voter is None:
                return EMPTY_PROFILE
            return voter.profile()

    def get_voter(self, identity: Any) -> Voter:
        '''Return a copy of the full voter record.

        :raises VoterNotFound: If the identity is not a registered voter.
        '''
        with self._lock:
            try:
                return self._voters[identity].copy()
            except KeyError:
                raise VoterNotFound(identity) from None

    def get_voters(self) -> List[Voter]:
        with self._lock:
            return [voter.copy() for voter in self._voters.values()]

    def get_delegate(self, identity: Any) -> Any:
        with self._lock:
            voter = self._voters.get(identity)
            return None if voter is None else voter.delegate

    def is_registered(self, identity: Any) -> bool:
        with self._lock:
            return self._registered.get(identity, False)

    def get_turnout(self) -> Tuple[int, int, int]:
        '''Return numbers of votes cast, delegations and registered voters.'''
        with self._lock:
            n_delegated = sum(
                1 for voter in self._voters.values() if voter.has_delegated
            )
            return self._votes_cast(), n_delegated, len(self._voters)

    def to_dict(self) -> Dict[str, Any]:
        '''Serialize the complete state of the ledger, including its log.'''
        with self._lock:
            return {
                'class': votebook.persist.scoped_class_name(self),
                'admin': votebook.persist.serialize_value(self._admin),
                'state': votebook.persist.serialize_value(self._state),
                'candidates': [
                    cand.to_dict() for cand in self._candidates
                ],
                'voters': [voter.to_dict() for voter in self._voters.values()],
                'events': self._events.to_dict()['events'],
            }

    @classmethod
    def from_dict(cls, value: Dict[str, Any]) -> ElectionLedger:
        '''Restore a ledger serialized by :meth:`to_dict`.

        The restored ledger is a new instance without listeners.

        :raises ValueError: If the serialized state is inconsistent.
        '''
        try:
            ledger = cls(votebook.persist.deserialize_value(value['admin']))
            state = votebook.persist.deserialize_value(value['state'])
            candidates = [
                votebook.persist.deserialize_value(cand_def)
                for cand_def in value['candidates']
            ]
            voters = [
                votebook.persist.deserialize_value(voter_def)
                for voter_def in value['voters']
            ]
            events = EventLog.from_dict(value)
        except (KeyError, TypeError) as e:
            raise ValueError(f'invalid ledger snapshot: {e}') from e
        if not isinstance(state, ElectionState):
            raise ValueError(f'invalid election state: {value["state"]!r}')
        _check_consistency(state, candidates, voters)
        ledger._state = state
        ledger._candidates = candidates
        for voter in voters:
            ledger._voters[voter.address] = voter
            ledger._registered[voter.address] = True
        ledger._events = events
        return ledger

    def _check_admin(self, caller: Any, operation: str) -> None:
        if caller != self._admin:
            raise Unauthorized(caller, operation)

    def _check_state(self, expected: ElectionState, operation: str) -> None:
        if self._state is not expected:
            raise InvalidState(self._state, operation, expected)

    def _candidate(self, candidate_id: int) -> Candidate:
        if (
            not isinstance(candidate_id, int)
            or isinstance(candidate_id, bool)
            or not 1 <= candidate_id <= len(self._candidates)
        ):
            raise InvalidCandidate(candidate_id, len(self._candidates))
        return self._candidates[candidate_id - 1]

    def _votes_cast(self) -> int:
        return sum(1 for voter in self._voters.values() if voter.has_voted)

    def _emit(self, event: Event) -> None:
        self._events._append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception('listener %r failed on %r', listener, event)

    def __repr__(self) -> str:
        return (
            f'<ElectionLedger({self._state.value},'
            f'{len(self._candidates)} candidates,'
            f'{len(self._voters)} voters)>'
        )


def _check_consistency(state: ElectionState,
                       candidates: List[Candidate],
                       voters: List[Voter],
                       ) -> None:
    for i, candidate in enumerate(candidates):
        if not isinstance(candidate, Candidate) or candidate.id != i + 1:
            raise ValueError(f'candidate at position {i} must have id {i + 1}')
    addresses = set()
    tally = {candidate.id: 0 for candidate in candidates}
    for voter in voters:
        if not isinstance(voter, Voter):
            raise ValueError(f'invalid voter record: {voter!r}')
        if voter.address in addresses:
            raise ValueError(f'voter {voter.address!r} recorded twice')
        addresses.add(voter.address)
        if voter.has_voted:
            if voter.voted_for not in tally:
                raise ValueError(
                    f'voter {voter.address!r} voted for unknown candidate'
                    f' {voter.voted_for}'
                )
            tally[voter.voted_for] += 1
    for voter in voters:
        if voter.has_delegated and voter.delegate not in addresses:
            raise ValueError(
                f'voter {voter.address!r} delegated to unregistered'
                f' {voter.delegate!r}'
            )
    for candidate in candidates:
        if candidate.votes != tally[candidate.id]:
            raise ValueError(
                f'candidate {candidate.id} has {candidate.votes} votes but'
                f' {tally[candidate.id]} voters voted for it'
            )
    if state is ElectionState.NOT_STARTED and any(
        voter.has_voted or voter.has_delegated for voter in voters
    ):
        raise ValueError('votes recorded before the election started')
