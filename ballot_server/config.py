import os

HOST = os.environ.get("BALLOT_HOST", "127.0.0.1")
PORT = int(os.environ.get("BALLOT_PORT", "8443"))
CERT = os.environ.get("BALLOT_CERT", "ballot_server/cert.pem")
KEY = os.environ.get("BALLOT_KEY", "ballot_server/key.pem")

BULLETIN_HOST = os.environ.get("BALLOT_BULLETIN_HOST", "0.0.0.0")
BULLETIN_PORT = int(os.environ.get("BALLOT_BULLETIN_PORT", "5000"))

DEPLOYMENT_RECORD = os.environ.get("BALLOT_DEPLOYMENT_RECORD", "deployment-info.json")
ADMIN_WALLET = os.environ.get("BALLOT_ADMIN_WALLET", "wallets/admin.json")

# Upper bound for open_voting, in seconds (30 days)
MAX_VOTING_DURATION = int(os.environ.get("BALLOT_MAX_VOTING_DURATION", str(30 * 24 * 3600)))

LOG_LEVEL = os.environ.get("BALLOT_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
