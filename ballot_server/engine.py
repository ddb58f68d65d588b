import logging
import threading
import time
import uuid

from . import config
from . import errors
from .errors import AuthorizationError, DuplicateError, PhaseError, StateError, ValidationError
from .events import (
    CANDIDATE_REGISTERED,
    CANDIDATE_WON,
    USER_VOTED,
    VOTER_REGISTERED,
    VOTING_CLOSED,
    VOTING_OPENED,
    EventLog,
)
from .state import ElectionState, VotingStats

logger = logging.getLogger("server.engine")


class BallotEngine:
    """State machine for a single election.

    Every operation runs under one lock, so a command either applies all of
    its effects or raises a :class:`~ballot_server.errors.BallotError` and
    leaves the state as it was. ``clock`` returns the current time in epoch
    seconds and is only read, never stored.
    """

    def __init__(self, administrator, clock=time.time, events=None,
                 max_voting_duration=config.MAX_VOTING_DURATION, engine_id=None):
        if not administrator:
            raise ValueError("administrator identity is required")
        self.engine_id = engine_id or uuid.uuid4().hex
        self.clock = clock
        self.events = events if events is not None else EventLog(clock)
        self.max_voting_duration = max_voting_duration
        self.lock = threading.RLock()
        self._state = ElectionState(administrator)
        logger.info(f"Ballot engine {self.engine_id} created, administrator {administrator}")

    # --- guards ---

    def _reject(self, error_cls, code, caller=None):
        logger.warning(f"Rejected ({code}) for caller {caller}")
        raise error_cls(code)

    def _only_administrator(self, caller):
        if caller != self._state.administrator:
            self._reject(AuthorizationError, errors.NOT_ADMINISTRATOR, caller)

    def _commit(self, event_name, /, **payload):
        return self.events.append(event_name, **payload)

    # --- phase control ---

    def register_candidate(self, name, caller):
        with self.lock:
            self._only_administrator(caller)
            if not isinstance(name, str) or name == "":
                self._reject(ValidationError, errors.EMPTY_NAME, caller)
            if self._state.voting_open:
                self._reject(PhaseError, errors.VOTING_CURRENTLY_OPEN, caller)

            payload = {"name": name, "id": self._state.next_candidate_id}
            candidate = self._state.add_candidate(name)
            self._commit(CANDIDATE_REGISTERED, **payload)
        logger.info(f"Candidate #{candidate.id} registered: {candidate.name}")
        self.events.deliver()
        return candidate.id

    def open_voting(self, duration_seconds, caller):
        with self.lock:
            self._only_administrator(caller)
            if (isinstance(duration_seconds, bool)
                    or not isinstance(duration_seconds, (int, float))
                    or not 0 < duration_seconds <= self.max_voting_duration):
                self._reject(ValidationError, errors.INVALID_DURATION, caller)
            if self._state.next_candidate_id <= 1:
                self._reject(PhaseError, errors.NO_CANDIDATES, caller)
            if self._state.voting_open:
                self._reject(PhaseError, errors.ALREADY_OPEN, caller)
            if self._state.closed:
                self._reject(PhaseError, errors.VOTING_CLOSED, caller)

            self._state.voting_open = True
            self._state.voting_end_time = self.clock() + duration_seconds
            deadline = self._state.voting_end_time
            self._commit(VOTING_OPENED, deadline=deadline)
        logger.info(f"Voting opened for {duration_seconds} seconds, deadline {deadline}")
        self.events.deliver()
        return deadline

    def close_voting(self, caller):
        with self.lock:
            self._only_administrator(caller)
            if not self._state.voting_open:
                self._reject(PhaseError, errors.NOT_OPEN, caller)

            self._state.voting_open = False
            self._state.closed = True
            self._commit(VOTING_CLOSED)
        logger.info("Voting closed")
        self.events.deliver()

    def is_voting_active(self):
        with self.lock:
            return self._state.voting_open and self.clock() < self._state.voting_end_time

    def get_remaining_time(self):
        with self.lock:
            if not self.is_voting_active():
                return 0
            return self._state.voting_end_time - self.clock()

    # --- voters ---

    def register_voter(self, caller):
        with self.lock:
            if self._state.registered_voters.get(caller):
                self._reject(DuplicateError, errors.ALREADY_REGISTERED, caller)

            self._state.registered_voters[caller] = True
            self._commit(VOTER_REGISTERED, voter=caller)
        logger.info(f"Voter {caller} registered")
        self.events.deliver()

    def check_if_voter_is_registered(self, identity):
        with self.lock:
            return self._state.registered_voters.get(identity, False)

    def has_voted(self, identity):
        with self.lock:
            return self._state.has_voted.get(identity, False)

    def vote_for_candidate(self, candidate_id, caller):
        with self.lock:
            if not self._state.registered_voters.get(caller):
                self._reject(AuthorizationError, errors.VOTER_NOT_REGISTERED, caller)
            if not self.is_voting_active():
                self._reject(PhaseError, errors.VOTING_NOT_ACTIVE, caller)
            if self._state.has_voted.get(caller):
                self._reject(DuplicateError, errors.ALREADY_VOTED, caller)
            if (isinstance(candidate_id, bool) or not isinstance(candidate_id, int)
                    or not self._state.is_valid_candidate_id(candidate_id)):
                self._reject(ValidationError, errors.INVALID_CANDIDATE_ID, caller)

            payload = {"voter": caller, "candidate_id": candidate_id,
                       "candidate_name": self._state.candidate(candidate_id).name}
            self._state.record_vote(caller, candidate_id)
            self._commit(USER_VOTED, **payload)
        logger.info(f"Vote accepted from {caller}")
        self.events.deliver()

    # --- tally ---

    def get_total_votes(self):
        with self.lock:
            return self._state.total_votes_cast

    def get_candidate(self, candidate_id):
        with self.lock:
            if (isinstance(candidate_id, bool) or not isinstance(candidate_id, int)
                    or not self._state.is_valid_candidate_id(candidate_id)):
                raise ValidationError(errors.INVALID_CANDIDATE_ID)
            return self._state.candidate(candidate_id)

    def get_candidates(self):
        with self.lock:
            return list(self._state.candidates)

    def get_voting_stats(self):
        with self.lock:
            return VotingStats(
                total_candidates=self._state.next_candidate_id - 1,
                total_votes=self._state.total_votes_cast,
                is_open=self.is_voting_active(),
                time_remaining=self.get_remaining_time(),
            )

    def get_candidate_with_highest_vote(self):
        with self.lock:
            if self._state.next_candidate_id <= 1:
                raise PhaseError(errors.NO_CANDIDATES)
            leader = self._state.candidates[0]
            for candidate in self._state.candidates[1:]:
                # strictly greater: ties stay with the lowest id
                if candidate.score > leader.score:
                    leader = candidate
            return leader

    def declare_winner(self, caller):
        """Flag the leading candidate as winner.

        Calling it again once voting has ended re-affirms the same winner and
        emits ``CandidateWon`` again.
        """
        with self.lock:
            self._only_administrator(caller)
            if self.is_voting_active():
                self._reject(PhaseError, errors.VOTING_STILL_ACTIVE, caller)
            if self._state.total_votes_cast == 0:
                self._reject(StateError, errors.NO_VOTES_CAST, caller)

            leader = self.get_candidate_with_highest_vote()
            payload = {"name": leader.name, "id": leader.id}
            winner = self._state.mark_winner(leader.id)
            self._commit(CANDIDATE_WON, **payload)
        logger.info(f"Winner declared: #{winner.id} {winner.name} with {winner.score} votes")
        self.events.deliver()
        return winner

    def get_winner(self):
        with self.lock:
            if not self._state.winner_id:
                return None
            return self._state.candidate(self._state.winner_id)

    # --- raw state ---

    @property
    def administrator(self):
        return self._state.administrator

    @property
    def candidate_count(self):
        with self.lock:
            return self._state.next_candidate_id

    @property
    def voting_open(self):
        with self.lock:
            return self._state.voting_open

    @property
    def voting_end_time(self):
        with self.lock:
            return self._state.voting_end_time

    @property
    def phase(self):
        with self.lock:
            return self._state.phase
