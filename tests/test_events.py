import logging
import threading

from ballot_server.events import EventLog

from conftest import ADMIN


def test_append_assigns_sequence(clock):
    log = EventLog(clock)
    first = log.append("VotingClosed")
    second = log.append("VoterRegistered", voter="v1")
    assert (first.sequence, second.sequence) == (1, 2)
    assert second.timestamp == clock.now
    assert len(log) == 2


def test_since_returns_newer_events(clock):
    log = EventLog(clock)
    for voter in ("a", "b", "c"):
        log.append("VoterRegistered", voter=voter)
    assert [e.payload["voter"] for e in log.since(1)] == ["b", "c"]
    assert log.since(3) == []


def test_subscribers_receive_delivered_events(clock):
    log = EventLog(clock)
    seen = []
    unsubscribe = log.subscribe(seen.append)
    event = log.append("VotingClosed")
    assert seen == []
    log.deliver()
    assert seen == [event]
    unsubscribe()
    log.append("VotingClosed")
    log.deliver()
    assert seen == [event]


def test_failing_subscriber_does_not_stop_others(clock, caplog):
    log = EventLog(clock)
    seen = []

    def broken(event):
        raise RuntimeError("observer down")

    log.subscribe(broken)
    log.subscribe(seen.append)
    with caplog.at_level(logging.ERROR, logger="server.events"):
        log.append("VotingClosed")
        log.deliver()
    assert len(seen) == 1
    assert "VotingClosed" in caplog.text


def test_engine_delivers_after_commit(engine):
    observed = []

    def observer(event):
        # queries from inside a subscriber see the committed state
        observed.append((event.name, engine.candidate_count))

    engine.events.subscribe(observer)
    engine.register_candidate("Alice", ADMIN)
    assert observed == [("CandidateRegistered", 2)]


def test_to_dict(clock):
    event = EventLog(clock).append("CandidateWon", name="Alice", id=1)
    assert event.to_dict() == {
        "sequence": 1,
        "name": "CandidateWon",
        "payload": {"name": "Alice", "id": 1},
        "timestamp": clock.now,
    }


def test_append_takes_payload_field_called_name(clock):
    event = EventLog(clock).append("CandidateRegistered", name="Alice", id=1)
    assert event.name == "CandidateRegistered"
    assert event.payload == {"name": "Alice", "id": 1}


def test_deliver_drains_pending_events_in_order(clock):
    log = EventLog(clock)
    seen = []
    log.subscribe(lambda event: seen.append(event.sequence))
    for voter in ("a", "b", "c"):
        log.append("VoterRegistered", voter=voter)
    log.deliver()
    log.deliver()
    assert seen == [1, 2, 3]


def test_nested_commands_are_delivered_in_sequence(engine):
    seen = []

    def observer(event):
        seen.append(event.sequence)
        if event.name == "CandidateRegistered" and event.payload["id"] == 1:
            engine.register_candidate("Bob", ADMIN)

    engine.events.subscribe(observer)
    engine.register_candidate("Alice", ADMIN)
    assert seen == [1, 2]


def test_racing_commands_reach_subscribers_in_sequence(engine):
    seen = []
    engine.events.subscribe(lambda event: seen.append(event.sequence))

    def register(prefix):
        for i in range(25):
            engine.register_candidate(f"{prefix}{i}", ADMIN)

    threads = [threading.Thread(target=register, args=(p,)) for p in "abcd"]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert seen == list(range(1, 101))
