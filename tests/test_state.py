import pytest

from ballot_server.state import CLOSED, CREATED, OPEN, Candidate, ElectionState

from conftest import ADMIN


@pytest.fixture
def state():
    state = ElectionState(ADMIN)
    for name in ("Alice", "Bob", "Charlie"):
        state.add_candidate(name)
    return state


def test_add_candidate_assigns_next_id(state):
    candidate = state.add_candidate("Dave")
    assert candidate == Candidate(4, "Dave")
    assert state.next_candidate_id == 5
    assert state.candidate(4) is candidate


class TestRecordVote:
    def test_only_the_chosen_candidate_changes(self, state):
        state.registered_voters["v1"] = True
        untouched = [state.candidate(1), state.candidate(3)]

        updated = state.record_vote("v1", 2)

        assert updated == Candidate(2, "Bob", score=1)
        assert state.total_votes_cast == 1
        assert state.has_voted == {"v1": True}
        assert [state.candidate(1), state.candidate(3)] == untouched
        assert state.candidate(1) is untouched[0]

    def test_large_electorate_keeps_running_total(self, state):
        voters = [f"v{i}" for i in range(3000)]
        for voter in voters:
            state.registered_voters[voter] = True
        for i, voter in enumerate(voters):
            state.record_vote(voter, 1 + i % 3)
        assert state.total_votes_cast == 3000
        assert [c.score for c in state.candidates] == [1000, 1000, 1000]

    def test_refuses_unregistered_voter(self, state):
        with pytest.raises(AssertionError):
            state.record_vote("ghost", 1)
        assert state.total_votes_cast == 0
        assert state.candidate(1).score == 0


def test_mark_winner_keeps_first_winner(state):
    assert state.mark_winner(2).winner is True
    assert state.mark_winner(2).id == 2
    with pytest.raises(AssertionError):
        state.mark_winner(1)
    assert state.winner_id == 2
    assert state.candidate(1).winner is False


def test_phase(state):
    assert state.phase == CREATED
    state.voting_open = True
    assert state.phase == OPEN
    state.voting_open, state.closed = False, True
    assert state.phase == CLOSED
