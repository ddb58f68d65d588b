import argparse
import json
import logging
import os

from .connection import CommandRejected, ProtocolError, connect
from .prompt import get_user_message, print_help, split_command
from .wallet import WalletError, open_wallet

logger = logging.getLogger("client.main")

HOST = os.environ.get("BALLOT_HOST", "127.0.0.1")
PORT = int(os.environ.get("BALLOT_PORT", "8443"))
CA_CERT = os.environ.get("BALLOT_CA_CERT", "ballot_server/cert.pem")

# command -> (packet code, number of arguments)
COMMAND_PACKET_MAP = {
    "who": ("WHO", 0),
    "owner": ("OW", 0),
    "register_candidate": ("RC", 1),
    "open": ("OV", 1),
    "close": ("CV", 0),
    "declare": ("DW", 0),
    "register": ("RV", 0),
    "vote": ("VT", 1),
    "active": ("VA", 0),
    "remaining": ("RT", 0),
    "is_registered": ("CR", 1),
    "has_voted": ("HV", 1),
    "total": ("TV", 0),
    "count": ("CC", 0),
    "candidate": ("GC", 1),
    "candidates": ("LC", 0),
    "stats": ("ST", 0),
    "winner": ("HW", 0),
}


def run_command(client, command, options):
    """Send one command; returns True when the server accepted it."""
    if command not in COMMAND_PACKET_MAP:
        logger.error(f"Unknown command: {command}")
        return False
    code, arity = COMMAND_PACKET_MAP[command]
    if len(options) != arity:
        logger.error(f"'{command}' takes {arity} argument(s), got {len(options)}")
        return False
    try:
        result = client.call(code, *options)
    except CommandRejected as e:
        logger.warning(f"Server rejected {command}: {e.code} ({e.message})")
        return False
    print(json.dumps(result, indent=2))
    return True


def interactive(client):
    logger.info("TLS established. Type 'help' for commands. Ctrl+D (or Ctrl+Z) to exit.")
    while True:
        message = get_user_message()
        if message is None or message.strip().lower() == "exit":
            logger.info("Exiting client.")
            break
        command, options = split_command(message)
        if command is None:
            continue
        if command == "help":
            print_help()
            continue
        run_command(client, command, options)


def main():
    parser = argparse.ArgumentParser(description="Ballot client")
    parser.add_argument("wallet", help="Path to wallet JSON file")
    parser.add_argument("command", nargs="?", help="Command to run; interactive prompt when omitted")
    parser.add_argument("options", nargs="*", help="Command arguments")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--ca-cert", default=CA_CERT)
    parser.add_argument("--create-wallet", action="store_true",
                        help="Initialize the wallet if it has no key yet")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    try:
        wallet = open_wallet(args.wallet, create=args.create_wallet)
    except WalletError as e:
        logger.error(str(e))
        return 1
    try:
        with connect(wallet, args.host, args.port, args.ca_cert) as client:
            if args.command:
                options = [" ".join(args.options)] if args.command == "register_candidate" else args.options
                return 0 if run_command(client, args.command, options) else 1
            interactive(client)
    except (OSError, ProtocolError, CommandRejected) as e:
        logger.error(f"Could not talk to server: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
