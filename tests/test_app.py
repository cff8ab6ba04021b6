from fastapi.testclient import TestClient

from lazyset.app import app


def test_root():
    with TestClient(app) as client:
        r = client.get("/")
        assert r.status_code == 200
        assert r.json()["ok"] is True


def test_health():
    with TestClient(app) as client:
        r = client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["healthy"] is True
        assert body["registry_frozen"] is True
        assert body["total_operations"] > 0
        assert body["total_methods"] > 0


def test_list_operations():
    with TestClient(app) as client:
        r = client.get("/operations")
        assert r.status_code == 200
        body = r.json()
        names = {op["name"] for op in body["operations"]}
        assert {"add", "zip", "take"} <= names
        assert body["total_operations"] == len(body["operations"])
        assert body["frozen"] is True


def test_list_operations_by_kind():
    with TestClient(app) as client:
        r = client.get("/operations", params={"kind": "method"})
        assert r.status_code == 200
        kinds = {op["kind"] for op in r.json()["operations"]}
        assert kinds == {"method"}


def test_describe_operation():
    with TestClient(app) as client:
        r = client.get("/operations/add")
        assert r.status_code == 200
        assert r.json()["kind"] == "operation"
        assert r.json()["arity"] == "binary"

        r = client.get("/operations/take")
        assert r.json()["kind"] == "builtin"

        r = client.get("/operations/frobnicate")
        assert r.status_code == 404


def test_evaluate_broadcast():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={
            "source": [1, 2, 3],
            "steps": [{"name": "add", "args": [10]}]
        })
        assert r.status_code == 200
        body = r.json()
        assert body["result"] == [11, 12, 13]
        assert body["is_sequence"] is True
        assert body["count"] == 3
        assert body["steps_applied"] == ["add"]


def test_evaluate_scalar_result():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={"source": 5, "steps": [{"name": "add", "args": [3]}]})
        assert r.status_code == 200
        assert r.json()["result"] == 8
        assert r.json()["is_sequence"] is False


def test_evaluate_range_and_named_callback():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={
            "range": [0, 20],
            "steps": [{"name": "filter", "args": ["is_prime"]}, {"name": "map", "args": ["sq"]}]
        })
        assert r.status_code == 200
        assert r.json()["result"] == [4, 9, 25, 49, 121, 169, 289, 361]


def test_evaluate_reduction():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={"range": [1, 101], "steps": [{"name": "sum"}]})
        assert r.json()["result"] == 5050


def test_evaluate_limit():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={"range": [0, 1000], "limit": 5})
        assert r.json()["result"] == [0, 1, 2, 3, 4]
        assert r.json()["count"] == 5


def test_evaluate_unknown_step():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={"source": [1], "steps": [{"name": "frobnicate"}]})
        assert r.status_code == 400
        body = r.json()
        assert body["ok"] is False
        assert body["error_type"] == "AccessError"
        assert body["error_code"] == "ACCESS_ERROR"
        assert body["details"]["key"] == "frobnicate"


def test_evaluate_unknown_callback():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={"source": [1], "steps": [{"name": "map", "args": ["nope"]}]})
        assert r.status_code == 400
        assert r.json()["error_code"] == "ACCESS_ERROR"


def test_evaluate_failing_callback():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={"source": [1, 0], "steps": [{"name": "inv"}]})
        assert r.status_code == 400
        assert "Evaluation failed" in r.json()["detail"]


def test_evaluate_validation():
    with TestClient(app) as client:
        r = client.post("/evaluate", json={"source": [1], "steps": [{"name": "  "}]})
        assert r.status_code == 422

        r = client.post("/evaluate", json={"source": [1], "limit": 0})
        assert r.status_code == 422


def test_metrics_cycle():
    with TestClient(app) as client:
        assert client.delete("/metrics").status_code == 200
        assert client.get("/metrics").json()["summary"]["total_operations"] == 0

        client.post("/evaluate", json={"source": [1, 2], "steps": [{"name": "sq"}]})
        body = client.get("/metrics").json()
        assert body["summary"]["total_operations"] == 1
        assert body["operations"][0]["operation"] == "chain[sq]"
