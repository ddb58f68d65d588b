import pytest

from ballot_client.connection import CommandRejected
from ballot_client.interact import InteractionError, load_wallets, run_election_cycle
from ballot_client.scenarios import local_election


def test_full_cycle(admin_wallet, voter_wallets, clock):
    engine, connect_as = local_election(admin_wallet, clock=clock)
    lines = []
    result = run_election_cycle(connect_as, admin_wallet, voter_wallets, out=lines.append)

    assert result["winner"]["name"] == "Alice"
    assert result["winner"]["score"] == 2
    assert result["stats"] == {"total_candidates": 3, "total_votes": 3, "is_open": False, "time_remaining": 0}
    assert engine.get_winner().name == "Alice"
    assert "All interactions completed successfully!" in lines
    assert sum(1 for line in lines if "Correctly prevented" in line) == 3


def test_needs_five_voters(admin_wallet, voter_wallets):
    _, connect_as = local_election(admin_wallet)
    with pytest.raises(InteractionError, match="Need 5 voter wallets"):
        run_election_cycle(connect_as, admin_wallet, voter_wallets[:4], out=lambda line: None)


def test_wrong_administrator_wallet(admin_wallet, voter_wallets):
    _, connect_as = local_election(admin_wallet)
    with pytest.raises(InteractionError, match="not the election administrator"):
        run_election_cycle(connect_as, voter_wallets[0], voter_wallets, out=lambda line: None)


def test_load_wallets_creates_missing(tmp_path):
    admin, voters = load_wallets(str(tmp_path))
    assert admin.is_initialized()
    assert len(voters) == 5
    assert (tmp_path / "voter5.json").exists()


def test_connections_closed_when_cycle_fails(admin_wallet, voter_wallets):
    engine, connect_as = local_election(admin_wallet)
    engine.register_candidate("Zed", engine.administrator)
    engine.open_voting(600, engine.administrator)
    closed = []

    def tracked(wallet):
        client = connect_as(wallet)
        client.close = lambda: closed.append(wallet.path)
        return client

    with pytest.raises(CommandRejected) as exc:
        run_election_cycle(tracked, admin_wallet, voter_wallets, out=lambda line: None)
    assert exc.value.code == "voting-currently-open"
    assert len(closed) == 6
