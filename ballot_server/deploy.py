import json
import logging
import os
import time
from datetime import datetime, timezone

from . import config
from .engine import BallotEngine

logger = logging.getLogger("server.deploy")

RECORD_FIELDS = ("engine_id", "administrator", "deployment_time", "network", "bulletin_url")


class DeploymentError(Exception):
    pass


def deploy(administrator, record_path=config.DEPLOYMENT_RECORD, host=config.HOST,
           port=config.PORT, bulletin_port=config.BULLETIN_PORT, clock=time.time):
    """Create the election engine and write its deployment record.

    Returns ``(engine, record)``; the record is what later tools read to find
    the running election.
    """
    logger.info(f"Deploying ballot engine for administrator {administrator}")
    engine = BallotEngine(administrator, clock=clock)
    record = {
        "engine_id": engine.engine_id,
        "administrator": engine.administrator,
        "deployment_time": datetime.fromtimestamp(clock(), tz=timezone.utc).isoformat(),
        "network": f"{host}:{port}",
        "bulletin_url": f"http://{host}:{bulletin_port}",
    }
    save_deployment_record(record, record_path)
    return engine, record


def save_deployment_record(record, path):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(record, f, indent=2)
    logger.info(f"Deployment info saved to {path}")


def load_deployment_record(path=config.DEPLOYMENT_RECORD):
    if not os.path.exists(path):
        raise DeploymentError(f"No deployment record at {path}. Start the server first.")
    try:
        with open(path, "r") as f:
            record = json.load(f)
    except json.JSONDecodeError as e:
        raise DeploymentError(f"Deployment record {path} is not valid JSON: {e}") from e
    missing = [field for field in RECORD_FIELDS if field not in record]
    if missing:
        raise DeploymentError(f"Deployment record {path} is missing {', '.join(missing)}")
    return record
