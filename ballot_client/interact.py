"""Drive a deployed election through one complete voting cycle.

Reads the deployment record written by the server to find it, then acts as
the administrator and five voters: registers Alice, Bob and Charlie, opens
voting, casts three votes, shows that double voting, unregistered voting and
late voting are refused, closes voting and declares the winner.
"""
import argparse
import json
import logging
import os

from ballot_server.deploy import DeploymentError, load_deployment_record

from .connection import CommandRejected, connect
from .wallet import open_wallet

logger = logging.getLogger("client.interact")

CANDIDATES = ["Alice", "Bob", "Charlie"]
VOTING_DURATION = 600
VOTERS_NEEDED = 5


class InteractionError(Exception):
    pass


def expect_rejection(action, code, out):
    try:
        action()
    except CommandRejected as e:
        if e.code != code:
            raise InteractionError(f"Expected {code}, server said {e.code}") from e
        out(f"  Correctly prevented: {e.message} ({e.code})")
        return e
    raise InteractionError(f"Expected {code}, but the server accepted the command")


def run_election_cycle(connect_as, admin_wallet, voter_wallets, duration=VOTING_DURATION, out=print):
    """Run the demo against ``connect_as(wallet) -> BallotClient``.

    Needs five voter wallets: three who vote, one who never registers and
    one who registers after voting has closed. Returns the final statistics
    and the declared winner.
    """
    if len(voter_wallets) < VOTERS_NEEDED:
        raise InteractionError(f"Need {VOTERS_NEEDED} voter wallets, got {len(voter_wallets)}")
    clients = []
    try:
        clients.append(connect_as(admin_wallet))
        clients.extend(connect_as(w) for w in voter_wallets[:VOTERS_NEEDED])
        return _drive_election(clients[0], clients[1:], admin_wallet, duration, out)
    finally:
        for client in clients:
            client.close()


def _drive_election(owner, voters, admin_wallet, duration, out):
    voter1, voter2, voter3, unregistered, late_voter = voters

    if owner.owner() != owner.principal:
        raise InteractionError(f"Wallet {admin_wallet.path} is not the election administrator")

    out("Accounts:")
    out(f"  Owner:  {owner.principal}")
    for i, voter in enumerate(voters[:3], start=1):
        out(f"  Voter{i}: {voter.principal}")
    out("")

    out("STEP 1: Registering Candidates")
    for name in CANDIDATES:
        candidate_id = owner.register_candidate(name)
        out(f"  {name} registered with id {candidate_id}")
    out(f"  Total candidates registered: {owner.candidate_count() - 1}")
    out("")

    out("STEP 2: Opening Voting")
    owner.open_voting(duration)
    out(f"  Voting opened for {duration} seconds ({duration / 60:g} minutes)")
    out(f"  Voting active: {owner.is_voting_active()}")
    out(f"  Time remaining: {int(owner.remaining_time())} seconds")
    out("")

    out("STEP 3: Registering Voters")
    for i, voter in enumerate(voters[:3], start=1):
        voter.register_voter()
        out(f"  Voter{i} registered: {voter.is_registered(voter.principal)}")
    out("")

    out("STEP 4: Casting Votes")
    for i, (voter, candidate_id) in enumerate(zip(voters[:3], (1, 1, 2)), start=1):
        voter.vote(candidate_id)
        out(f"  Voter{i} voted for {owner.candidate(candidate_id)['name']}")
    out("")

    out("STEP 5: Current Results")
    for candidate in owner.candidates():
        out(f"  {candidate['name']}: {candidate['score']} votes")
    out(f"  Total votes cast: {owner.total_votes()}")
    out("")

    out("STEP 6: Testing Security")
    out("  Test: Voter1 trying to vote again...")
    expect_rejection(lambda: voter1.vote(2), "already-voted", out)
    out("  Test: Unregistered user trying to vote...")
    expect_rejection(lambda: unregistered.vote(1), "voter-not-registered", out)
    out("")

    out("STEP 7: Closing Voting")
    owner.close_voting()
    out("  Voting closed")
    out(f"  Voting active: {owner.is_voting_active()}")
    out("")

    out("STEP 8: Testing Voting After Close")
    late_voter.register_voter()
    out("  Test: Trying to vote after voting closed...")
    expect_rejection(lambda: late_voter.vote(1), "voting-not-active", out)
    out("")

    out("STEP 9: Declaring Winner")
    leader = owner.highest()
    out(f"  Winner: {leader['name']} with {leader['score']} votes")
    winner = owner.declare_winner()
    out("  Winner officially declared")
    out("")

    stats = owner.stats()
    out("FINAL SUMMARY")
    out(f"  Total Candidates: {stats['total_candidates']}")
    out(f"  Total Votes: {stats['total_votes']}")
    out(f"  Voting Open: {stats['is_open']}")
    out(f"  Time Remaining: {int(stats['time_remaining'])} seconds")
    out("")
    out("All interactions completed successfully!")
    return {"stats": stats, "winner": winner}


def load_wallets(wallet_dir, create=True):
    admin = open_wallet(os.path.join(wallet_dir, "admin.json"), create=create)
    voters = [open_wallet(os.path.join(wallet_dir, f"voter{i}.json"), create=create)
              for i in range(1, VOTERS_NEEDED + 1)]
    return admin, voters


def main():
    parser = argparse.ArgumentParser(description="Run a complete election cycle against a running server")
    parser.add_argument("--wallet-dir", default="wallets",
                        help="Directory with admin.json and voter1..5.json (created when missing)")
    parser.add_argument("--record", default="deployment-info.json")
    parser.add_argument("--ca-cert", default="ballot_server/cert.pem")
    parser.add_argument("--duration", type=int, default=VOTING_DURATION)
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(message)s")

    try:
        record = load_deployment_record(args.record)
    except DeploymentError as e:
        logger.error(str(e))
        return 1
    host, _, port = record["network"].rpartition(":")
    print(f"Starting interaction with engine {record['engine_id']} at {record['network']}\n")

    admin, voters = load_wallets(args.wallet_dir)
    try:
        result = run_election_cycle(
            lambda wallet: connect(wallet, host, int(port), args.ca_cert),
            admin, voters, duration=args.duration,
        )
    except (InteractionError, CommandRejected, OSError) as e:
        logger.error(f"Error occurred: {e}")
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
