import json
import logging

from .errors import BallotError
from .identity import import_public_key, new_challenge, principal_for, verify_challenge

logger = logging.getLogger("server.handler")

MALFORMED_PACKET = "malformed-packet"
UNKNOWN_COMMAND = "unknown-command"
NOT_AUTHENTICATED = "not-authenticated"
HANDSHAKE_FAILED = "handshake-failed"
INTERNAL_ERROR = "internal-error"

RECV_SIZE = 4096
MAX_PACKET = 64 * 1024


def ok(value=None):
    return f"OK|{json.dumps(value)}\n"


def error(code, message):
    message = message.replace("\n", " ")
    return f"ERROR|{code}|{message}\n"


def parse_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class Session:
    """One client connection: handshake state plus command dispatch.

    Commands that act on behalf of the caller need a finished
    ``HELLO``/``AUTH`` handshake; queries can be sent straight away.
    """

    def __init__(self, engine, peer="local"):
        self.engine = engine
        self.peer = peer
        self.principal = None
        self._pending_key = None
        self._challenge = None
        self.commands = {
            "RC": self.register_candidate,
            "OV": self.open_voting,
            "CV": self.close_voting,
            "RV": self.register_voter,
            "VT": self.vote,
            "DW": self.declare_winner,
            "WHO": self.who,
        }
        self.queries = {
            "OW": lambda args: engine.administrator,
            "VA": lambda args: engine.is_voting_active(),
            "RT": lambda args: engine.get_remaining_time(),
            "TV": lambda args: engine.get_total_votes(),
            "CC": lambda args: engine.candidate_count,
            "LC": lambda args: [c.to_dict() for c in engine.get_candidates()],
            "ST": lambda args: engine.get_voting_stats().to_dict(),
            "HW": lambda args: engine.get_candidate_with_highest_vote().to_dict(),
            "GC": self.get_candidate,
            "CR": self.check_registered,
            "HV": self.has_voted,
        }

    def handle(self, packet):
        packet = packet.strip()
        if not packet:
            return error(MALFORMED_PACKET, "Empty packet")
        code, _, rest = packet.partition("|")
        code = code.upper()
        try:
            if code == "HELLO":
                return self.hello(rest)
            if code == "AUTH":
                return self.auth(rest)
            if code in self.queries:
                return ok(self.queries[code](rest))
            if code in self.commands:
                if self.principal is None:
                    return error(NOT_AUTHENTICATED, "Authenticate with HELLO/AUTH first")
                return ok(self.commands[code](rest))
        except BallotError as e:
            return error(e.code, e.message)
        return error(UNKNOWN_COMMAND, f"Unknown command {code}")

    # --- handshake ---

    def hello(self, pubkey_hex):
        try:
            self._pending_key = import_public_key(pubkey_hex)
        except (ValueError, IndexError, TypeError):
            logger.warning(f"[{self.peer}] HELLO with unreadable public key")
            return error(HANDSHAKE_FAILED, "Public key could not be read")
        self._challenge = new_challenge()
        return ok(self._challenge.hex())

    def auth(self, signature_hex):
        if self._pending_key is None or self._challenge is None:
            return error(HANDSHAKE_FAILED, "Send HELLO first")
        key, challenge = self._pending_key, self._challenge
        self._pending_key = self._challenge = None
        if not verify_challenge(key, challenge, signature_hex):
            logger.warning(f"[{self.peer}] challenge signature rejected")
            return error(HANDSHAKE_FAILED, "Challenge signature is invalid")
        self.principal = principal_for(key)
        logger.info(f"[{self.peer}] authenticated as {self.principal}")
        return ok(self.principal)

    # --- commands ---

    def who(self, args):
        return self.principal

    def register_candidate(self, name):
        return self.engine.register_candidate(name, self.principal)

    def open_voting(self, duration):
        return self.engine.open_voting(self._int_arg(duration), self.principal)

    def close_voting(self, args):
        self.engine.close_voting(self.principal)

    def register_voter(self, args):
        self.engine.register_voter(self.principal)

    def vote(self, candidate_id):
        self.engine.vote_for_candidate(self._int_arg(candidate_id), self.principal)

    def declare_winner(self, args):
        return self.engine.declare_winner(self.principal).to_dict()

    # --- queries ---

    def get_candidate(self, candidate_id):
        return self.engine.get_candidate(self._int_arg(candidate_id)).to_dict()

    def check_registered(self, identity):
        return self.engine.check_if_voter_is_registered(identity)

    def has_voted(self, identity):
        return self.engine.has_voted(identity)

    def _int_arg(self, value):
        # the engine turns non-integers into its own validation errors
        parsed = parse_int(value)
        return value if parsed is None else parsed


def recv_line(conn, buffer):
    """Read one newline-terminated packet; returns (line, rest) or (None, rest) on EOF."""
    while b"\n" not in buffer:
        if len(buffer) > MAX_PACKET:
            raise ValueError("packet too large")
        data = conn.recv(RECV_SIZE)
        if not data:
            return None, buffer
        buffer += data
    line, _, rest = buffer.partition(b"\n")
    return line, rest


def handle_client(conn, addr, engine):
    peer = f"{addr[0]}:{addr[1]}"
    session = Session(engine, peer)
    buffer = b""
    try:
        while True:
            try:
                line, buffer = recv_line(conn, buffer)
            except ValueError:
                conn.sendall(error(MALFORMED_PACKET, "Packet too large").encode())
                break
            if line is None:
                break
            packet = line.decode(errors="replace")
            logger.info(f"[client {peer}] {packet[:80]}")
            try:
                response = session.handle(packet)
            except Exception as e:
                logger.exception(f"[client {peer}] failed handling packet")
                response = error(INTERNAL_ERROR, str(e))
            conn.sendall(response.encode())
    except OSError as e:
        logger.error(f"Connection with {peer} failed: {e}")
    finally:
        logger.info(f"Connection with {peer} closed.")
        conn.close()
