"""Concurrency-focused tests exercising the API's per-request isolation."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from fastapi.testclient import TestClient
from backend.app.main import app

client = TestClient(app)


def _post_run(payload):
    r = client.post("/run", json=payload)
    return r.status_code, r.json()


def test_concurrent_runs_isolated():
    # Three different jobs with small caps; each response must reflect only
    # its own request's settings and memory
    jobs = [
        {"code": "10 GOTO 10", "settings": {"max_steps": 50}},
        {"code": '10 PRINT "x"\n20 GOTO 10', "settings": {"max_output_chars": 10}},
        {"code": "10 PEEK 1, A\n20 POKE 2, A\n30 PRINT A", "memory": {"1": 3}},
    ]

    results = []
    with ThreadPoolExecutor(max_workers=3) as ex:
        futures = [ex.submit(_post_run, j) for j in jobs]
        for fut in as_completed(futures):
            results.append(fut.result())

    assert len(results) == 3
    assert all(code == 200 for code, _ in results)

    by_code = {}
    for _, body in results:
        assert "output" in body and "errors" in body and "memory" in body
        key = body["errors"]["code"] if body["errors"] else None
        by_code[key] = body

    assert set(by_code) == {"STEP_LIMIT", "OUTPUT_LIMIT", None}
    assert by_code["STEP_LIMIT"]["steps"] == 50
    assert by_code["OUTPUT_LIMIT"]["output"] == "x" * 10
    assert by_code[None]["output"] == "3"
    assert by_code[None]["memory"] == {"1": 3, "2": 3}
    assert by_code["STEP_LIMIT"]["memory"] == {}
