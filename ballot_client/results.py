import argparse
import json
import logging

import requests

logger = logging.getLogger("client.results")


def fetch_board(server_url, timeout=10):
    board_url = f"{server_url.rstrip('/')}/api/board"
    logger.info(f"--- Fetching bulletin data from {board_url} ---")
    response = requests.get(board_url, timeout=timeout)
    response.raise_for_status()
    return response.json()


def format_results(board):
    lines = [f"{'#':<4} {'Candidate':<30} | {'Votes'}", "-" * 44]
    ranked = sorted(board.get("candidates", []), key=lambda c: (-c["score"], c["id"]))
    for candidate in ranked:
        name = candidate["name"] + (" (winner)" if candidate.get("winner") else "")
        lines.append(f"{candidate['id']:<4} {name:<30} | {candidate['score']}")
    if not ranked:
        lines.append("No candidates registered.")
    lines.append("-" * 44)
    stats = board.get("stats", {})
    lines.append(f"Total votes: {stats.get('total_votes', 0)}   "
                 f"Voting open: {stats.get('is_open', False)}   "
                 f"Time remaining: {int(stats.get('time_remaining', 0))}s")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Ballot results viewer")
    parser.add_argument("--server-url", required=True,
                        help="URL of the bulletin board server (e.g., http://localhost:5000).")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        board = fetch_board(args.server_url)
    except requests.exceptions.RequestException as e:
        logger.error(f"Could not fetch data from server: {e}")
        return 1
    except json.JSONDecodeError:
        logger.error("Could not parse JSON response from server.")
        return 1
    print("\n--- VOTE COUNT RESULTS ---")
    print(format_results(board))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
