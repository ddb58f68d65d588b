import json
import logging
import socket
import ssl

logger = logging.getLogger("client.connection")

RECV_SIZE = 4096


class CommandRejected(Exception):
    """The server answered ``ERROR|code|message``; ``code`` is stable."""

    def __init__(self, code, message=""):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class ProtocolError(Exception):
    pass


def parse_response(response_text):
    status, _, rest = response_text.strip().partition("|")
    if status == "OK":
        try:
            return json.loads(rest) if rest else None
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Malformed OK response from server: {rest[:80]}") from e
    if status == "ERROR":
        code, _, message = rest.partition("|")
        raise CommandRejected(code, message)
    raise ProtocolError(f"Unexpected response from server: {response_text[:80]}")


class TLSTransport:
    """One TLS connection to the ballot server, newline-framed packets."""

    def __init__(self, host, port, ca_cert):
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=ca_cert)
        context.check_hostname = True
        self.host = host
        sock = socket.create_connection((host, port))
        self.ssock = context.wrap_socket(sock, server_hostname=host)
        self._buffer = b""

    def send(self, packet):
        self.ssock.sendall(packet.encode() + b"\n")
        while b"\n" not in self._buffer:
            data = self.ssock.recv(RECV_SIZE)
            if not data:
                raise ConnectionError("Server closed the connection.")
            self._buffer += data
        line, _, self._buffer = self._buffer.partition(b"\n")
        return line.decode()

    def close(self):
        self.ssock.close()


class LocalTransport:
    """Talks to an in-process ``ballot_server.handler.Session`` without sockets."""

    def __init__(self, session):
        self.session = session

    def send(self, packet):
        return self.session.handle(packet).rstrip("\n")


class BallotClient:
    """Authenticated command client on top of any ``send(packet) -> str`` transport."""

    def __init__(self, transport, wallet):
        self.transport = transport
        self.wallet = wallet
        self.principal = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        close = getattr(self.transport, "close", None)
        if close:
            close()

    def request(self, packet):
        response = self.transport.send(packet)
        logger.debug(f"{packet[:40]} -> {response[:80]}")
        return response

    def call(self, code, *args):
        packet = "|".join([code] + [str(a) for a in args])
        return parse_response(self.request(packet))

    def authenticate(self):
        challenge_hex = self.call("HELLO", self.wallet.public_key_hex())
        signature = self.wallet.sign(bytes.fromhex(challenge_hex))
        self.principal = self.call("AUTH", signature)
        self.wallet.remember_principal(self.principal)
        logger.info(f"Authenticated as {self.principal}")
        return self.principal

    # --- commands ---

    def register_candidate(self, name):
        return self.call("RC", name)

    def open_voting(self, duration_seconds):
        return self.call("OV", duration_seconds)

    def close_voting(self):
        return self.call("CV")

    def register_voter(self):
        return self.call("RV")

    def vote(self, candidate_id):
        return self.call("VT", candidate_id)

    def declare_winner(self):
        return self.call("DW")

    # --- queries ---

    def owner(self):
        return self.call("OW")

    def is_voting_active(self):
        return self.call("VA")

    def remaining_time(self):
        return self.call("RT")

    def is_registered(self, identity):
        return self.call("CR", identity)

    def has_voted(self, identity):
        return self.call("HV", identity)

    def total_votes(self):
        return self.call("TV")

    def candidate_count(self):
        return self.call("CC")

    def candidate(self, candidate_id):
        return self.call("GC", candidate_id)

    def candidates(self):
        return self.call("LC")

    def stats(self):
        return self.call("ST")

    def highest(self):
        return self.call("HW")


def connect(wallet, host, port, ca_cert):
    client = BallotClient(TLSTransport(host, port, ca_cert), wallet)
    try:
        client.authenticate()
    except Exception:
        client.close()
        raise
    return client
