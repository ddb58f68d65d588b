"""Pass/fail checks of the election rules, each on the protocol surface.

Every scenario either expects success or a specific stable error code. The
elections are deployed in-process so each run starts from a fresh engine.
"""
import argparse
import logging
import time
from typing import NamedTuple

from ballot_server.engine import BallotEngine
from ballot_server.handler import Session
from ballot_server.identity import import_public_key, principal_for

from .connection import BallotClient, CommandRejected, LocalTransport
from .interact import load_wallets

logger = logging.getLogger("client.scenarios")


class ScenarioResult(NamedTuple):
    description: str
    passed: bool
    detail: str


class ShouldHaveFailed(Exception):
    pass


def local_election(admin_wallet, clock=time.time):
    """Deploy a fresh engine administered by ``admin_wallet``.

    Returns ``(engine, connect_as)`` where ``connect_as(wallet)`` gives an
    authenticated client with its own session.
    """
    engine = BallotEngine(principal_for(import_public_key(admin_wallet.public_key_hex())), clock=clock)

    def connect_as(wallet):
        client = BallotClient(LocalTransport(Session(engine, peer=wallet.path)), wallet)
        client.authenticate()
        return client
    return engine, connect_as


def rejected_with(code, action):
    try:
        action()
    except CommandRejected as e:
        if e.code != code:
            raise ShouldHaveFailed(f"expected {code}, got {e.code}") from e
        return
    raise ShouldHaveFailed(f"expected {code}, command was accepted")


def run_scenario(description, check, out):
    out(f"\nTesting: {description}")
    try:
        check()
    except (ShouldHaveFailed, CommandRejected) as e:
        out(f"FAILED: {e}")
        return ScenarioResult(description, False, str(e))
    out("PASSED")
    return ScenarioResult(description, True, "")


def build_scenarios(admin_wallet, voter_wallets, new_election=local_election):
    _, connect_as = new_election(admin_wallet)
    owner = connect_as(admin_wallet)
    voter1 = connect_as(voter_wallets[0])
    voter2 = connect_as(voter_wallets[1])

    def fresh_owner():
        _, connect_fresh = new_election(admin_wallet)
        return connect_fresh(admin_wallet)

    def open_without_candidates():
        rejected_with("no-candidates", lambda: fresh_owner().open_voting(300))

    def vote_without_registration():
        owner.open_voting(300)
        rejected_with("voter-not-registered", lambda: voter1.vote(1))

    def registered_voter_votes():
        voter1.register_voter()
        voter1.vote(1)

    def vote_after_close():
        voter2.register_voter()
        owner.close_voting()
        rejected_with("voting-not-active", lambda: voter2.vote(1))

    def winner_declared():
        winner = owner.declare_winner()
        if winner["id"] != 1 or not winner["winner"]:
            raise ShouldHaveFailed(f"unexpected winner {winner}")

    def no_votes_no_winner():
        fresh = fresh_owner()
        fresh.register_candidate("Alice")
        fresh.open_voting(300)
        fresh.close_voting()
        rejected_with("no-votes-cast", fresh.declare_winner)

    return [
        ("Non-owner cannot register candidate",
         lambda: rejected_with("caller-not-administrator", lambda: voter1.register_candidate("Alice"))),
        ("Owner can register candidate", lambda: owner.register_candidate("Alice")),
        ("Cannot open voting without candidates", open_without_candidates),
        ("Cannot vote without voter registration", vote_without_registration),
        ("Cannot register candidate while voting is open",
         lambda: rejected_with("voting-currently-open", lambda: owner.register_candidate("Bob"))),
        ("Registered voter can vote successfully", registered_voter_votes),
        ("Voter cannot vote twice", lambda: rejected_with("already-voted", lambda: voter1.vote(1))),
        ("Cannot vote after voting closed", vote_after_close),
        ("Non-owner cannot declare winner",
         lambda: rejected_with("caller-not-administrator", voter1.declare_winner)),
        ("Owner declares the winner", winner_declared),
        ("Cannot declare a winner without votes", no_votes_no_winner),
    ]


def run_scenarios(admin_wallet, voter_wallets, new_election=local_election, out=print):
    results = [run_scenario(description, check, out)
               for description, check in build_scenarios(admin_wallet, voter_wallets, new_election)]
    passed = sum(1 for r in results if r.passed)
    out("\n" + "=" * 50)
    out(f"Test Results: {passed}/{len(results)} passed")
    out("=" * 50)
    if passed == len(results):
        out("All tests passed!")
    else:
        out(f"{len(results) - passed} test(s) failed")
    return results


def main():
    parser = argparse.ArgumentParser(description="Run the election rule scenarios on fresh in-process engines")
    parser.add_argument("--wallet-dir", default="wallets")
    args = parser.parse_args()
    logging.basicConfig(level=logging.ERROR, format="%(asctime)s %(levelname)s %(message)s")
    admin, voters = load_wallets(args.wallet_dir)
    results = run_scenarios(admin, voters)
    return 0 if all(r.passed for r in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
