from typing import NamedTuple

CREATED = "CREATED"
OPEN = "OPEN"
CLOSED = "CLOSED"


class Candidate(NamedTuple):
    id: int
    name: str
    score: int = 0
    winner: bool = False

    def to_dict(self):
        return self._asdict()


class VotingStats(NamedTuple):
    total_candidates: int
    total_votes: int
    is_open: bool
    time_remaining: float

    def to_dict(self):
        return self._asdict()


class ElectionState:
    """Everything one election knows. Only the engine touches it, under its lock."""

    def __init__(self, administrator):
        self.administrator = administrator
        self.voting_open = False
        self.voting_end_time = 0.0
        self.closed = False
        self.total_votes_cast = 0
        self.next_candidate_id = 1
        # index i holds candidate id i + 1
        self.candidates = []
        self.registered_voters = {}
        self.has_voted = {}
        self.winner_id = 0

    @property
    def phase(self):
        if self.voting_open:
            return OPEN
        if self.closed:
            return CLOSED
        return CREATED

    def is_valid_candidate_id(self, candidate_id):
        return 1 <= candidate_id < self.next_candidate_id

    def candidate(self, candidate_id):
        return self.candidates[candidate_id - 1]

    def replace_candidate(self, candidate):
        self.candidates[candidate.id - 1] = candidate

    def add_candidate(self, name):
        assert self.next_candidate_id == len(self.candidates) + 1
        candidate = Candidate(self.next_candidate_id, name)
        self.candidates.append(candidate)
        self.next_candidate_id += 1
        return candidate

    def record_vote(self, voter, candidate_id):
        assert self.registered_voters.get(voter) and not self.has_voted.get(voter)
        before = self.candidate(candidate_id)
        after = before._replace(score=before.score + 1)
        self.replace_candidate(after)
        self.has_voted[voter] = True
        self.total_votes_cast += 1
        return after

    def mark_winner(self, candidate_id):
        assert self.winner_id in (0, candidate_id), "winner changed after voting ended"
        winner = self.candidate(candidate_id)._replace(winner=True)
        self.replace_candidate(winner)
        self.winner_id = winner.id
        return winner
