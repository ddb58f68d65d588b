NOT_ADMINISTRATOR = "caller-not-administrator"
VOTER_NOT_REGISTERED = "voter-not-registered"

EMPTY_NAME = "empty-name"
INVALID_CANDIDATE_ID = "invalid-candidate-id"
INVALID_DURATION = "invalid-duration"

VOTING_CURRENTLY_OPEN = "voting-currently-open"
VOTING_NOT_ACTIVE = "voting-not-active"
VOTING_STILL_ACTIVE = "voting-still-active"
ALREADY_OPEN = "already-open"
NOT_OPEN = "not-open"
NO_CANDIDATES = "no-candidates"
VOTING_CLOSED = "voting-closed"

ALREADY_REGISTERED = "already-registered"
ALREADY_VOTED = "already-voted"

NO_VOTES_CAST = "no-votes-cast"

MESSAGES = {
    NOT_ADMINISTRATOR: "Only owner can perform this action",
    VOTER_NOT_REGISTERED: "Voter is not registered",
    EMPTY_NAME: "Candidate name cannot be empty",
    INVALID_CANDIDATE_ID: "Invalid candidate ID",
    INVALID_DURATION: "Voting duration is out of range",
    VOTING_CURRENTLY_OPEN: "Cannot register candidates while voting is open",
    VOTING_NOT_ACTIVE: "Voting is not currently open",
    VOTING_STILL_ACTIVE: "Voting is still open",
    ALREADY_OPEN: "Voting is already open",
    NOT_OPEN: "Voting is not open",
    NO_CANDIDATES: "Must have at least one candidate",
    VOTING_CLOSED: "Voting has already been closed for this election",
    ALREADY_REGISTERED: "Already registered",
    ALREADY_VOTED: "You have already voted",
    NO_VOTES_CAST: "No votes were cast",
}


class BallotError(Exception):
    """A command was rejected by a business rule.

    ``code`` is stable and meant to be matched on; ``message`` is for humans.
    The engine state is unchanged whenever one of these is raised.
    """
    category = "BallotError"

    def __init__(self, code, message=None):
        self.code = code
        self.message = message or MESSAGES.get(code, code)
        super().__init__(f"{self.code}: {self.message}")


class AuthorizationError(BallotError):
    category = "AuthorizationError"


class ValidationError(BallotError):
    category = "ValidationError"


class PhaseError(BallotError):
    category = "PhaseError"


class DuplicateError(BallotError):
    category = "DuplicateError"


class StateError(BallotError):
    category = "StateError"
