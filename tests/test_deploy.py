import json

import pytest

from ballot_server.deploy import DeploymentError, deploy, load_deployment_record

from conftest import ADMIN


def test_deploy_writes_record(tmp_path, clock):
    path = tmp_path / "records" / "deployment-info.json"
    engine, record = deploy(ADMIN, str(path), host="127.0.0.1", port=9443, bulletin_port=5001, clock=clock)

    assert engine.administrator == ADMIN
    assert record["engine_id"] == engine.engine_id
    assert record["network"] == "127.0.0.1:9443"
    assert record["bulletin_url"] == "http://127.0.0.1:5001"
    assert record["deployment_time"].startswith("2023-11-14T22:13:20")
    assert json.loads(path.read_text()) == record


def test_record_round_trip(tmp_path, clock):
    path = str(tmp_path / "deployment-info.json")
    _, record = deploy(ADMIN, path, clock=clock)
    assert load_deployment_record(path) == record


def test_each_deploy_is_a_new_engine(tmp_path, clock):
    path = str(tmp_path / "deployment-info.json")
    first, _ = deploy(ADMIN, path, clock=clock)
    second, record = deploy(ADMIN, path, clock=clock)
    assert first.engine_id != second.engine_id
    assert load_deployment_record(path)["engine_id"] == second.engine_id


def test_missing_record(tmp_path):
    with pytest.raises(DeploymentError, match="No deployment record"):
        load_deployment_record(str(tmp_path / "absent.json"))


def test_malformed_record(tmp_path):
    path = tmp_path / "deployment-info.json"
    path.write_text("{not json")
    with pytest.raises(DeploymentError, match="not valid JSON"):
        load_deployment_record(str(path))


def test_incomplete_record(tmp_path):
    path = tmp_path / "deployment-info.json"
    path.write_text(json.dumps({"engine_id": "abc"}))
    with pytest.raises(DeploymentError, match="administrator"):
        load_deployment_record(str(path))
