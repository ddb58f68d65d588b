import logging
import threading
import time
from typing import NamedTuple

CANDIDATE_REGISTERED = "CandidateRegistered"
VOTING_OPENED = "VotingOpened"
VOTING_CLOSED = "VotingClosed"
VOTER_REGISTERED = "VoterRegistered"
USER_VOTED = "UserVoted"
CANDIDATE_WON = "CandidateWon"

logger = logging.getLogger("server.events")


class Event(NamedTuple):
    sequence: int
    name: str
    payload: dict
    timestamp: float

    def to_dict(self):
        return {
            "sequence": self.sequence,
            "name": self.name,
            "payload": dict(self.payload),
            "timestamp": self.timestamp,
        }


class EventLog:
    """Append-only notification log that observers can tail or subscribe to.

    ``append`` only records; ``deliver`` hands every not yet delivered event
    to the subscribers, in sequence order. The engine appends while holding
    its lock and delivers after releasing it, so subscribers may call back
    into the engine.
    """

    def __init__(self, clock=time.time):
        self.clock = clock
        self.lock = threading.Lock()
        # reentrant: a subscriber may trigger another command and its delivery
        self.delivery_lock = threading.RLock()
        self._events = []
        self._subscribers = []
        self._delivered = 0

    def append(self, event_name, /, **payload):
        with self.lock:
            event = Event(len(self._events) + 1, event_name, payload, self.clock())
            self._events.append(event)
        return event

    def _next_undelivered(self):
        with self.lock:
            if self._delivered >= len(self._events):
                return None, []
            event = self._events[self._delivered]
            self._delivered += 1
            return event, list(self._subscribers)

    def deliver(self):
        with self.delivery_lock:
            while True:
                event, subscribers = self._next_undelivered()
                if event is None:
                    return
                for callback in subscribers:
                    try:
                        callback(event)
                    except Exception:
                        logger.exception(f"Subscriber {callback!r} failed on {event.name} #{event.sequence}")

    def subscribe(self, callback):
        with self.lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self.lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    def since(self, sequence=0):
        with self.lock:
            return [e for e in self._events if e.sequence > sequence]

    def all(self):
        return self.since(0)

    def __len__(self):
        with self.lock:
            return len(self._events)
