from fastapi.testclient import TestClient
from backend.app import main
from backend.app.main import app

client = TestClient(app)


def test_api_step_limit_through_run(monkeypatch):
    # request settings that would normally allow many steps but server caps them
    monkeypatch.setattr(main.runner, "max_steps", 5)
    payload = {"code": "10 GOTO 10", "settings": {"max_steps": 1000000}}
    r = client.post("/run", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert body.get("errors") is not None
    assert body["errors"]["code"] == "STEP_LIMIT"
    assert body["steps"] == 5


def test_api_output_limit_through_run(monkeypatch):
    # reduce server-side output cap so the run will hit the limit
    monkeypatch.setattr(main.runner, "max_output_chars", 10)
    payload = {"code": '10 PRINT "abcdefghij"\n20 GOTO 10', "settings": {"max_output_chars": 1000000}}
    r = client.post("/run", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert body.get("errors") is not None
    assert body["errors"]["code"] == "OUTPUT_LIMIT"
    assert len(body["output"]) == 10


def test_api_default_caps_stop_endless_loop():
    r = client.post("/run", json={"code": "10 GOTO 10"})
    body = r.json()
    assert body["errors"]["code"] in ("STEP_LIMIT", "TIMEOUT")
