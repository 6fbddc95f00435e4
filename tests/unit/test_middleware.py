"""Tests for the request middleware stack and the request metrics collector."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.middleware import MetricsCollector, metrics_collector, setup_middleware


def _app():
    app = FastAPI()
    setup_middleware(app)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    @app.get("/items/{item_id}")
    async def item(item_id: str):
        return {"item_id": item_id}

    return app


class TestErrorHandling:
    def test_unhandled_error_carries_request_id(self):
        client = TestClient(_app())

        response = client.get("/boom", headers={"X-Request-ID": "req-1"})

        assert response.status_code == 500
        assert response.json()["request_id"] == "req-1"
        assert response.headers["X-Request-ID"] == "req-1"

    def test_generated_request_id_on_error(self):
        response = TestClient(_app()).get("/boom")

        assert response.status_code == 500
        assert response.json()["request_id"] == response.headers["X-Request-ID"]

    def test_security_headers_on_error(self):
        response = TestClient(_app()).get("/boom")
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestRequestMetrics:
    def test_recorded_under_route_template(self):
        client = TestClient(_app())
        for item_id in ("a", "b", "c:d"):
            client.get(f"/items/{item_id}")

        assert metrics_collector.get_metrics()["requests"]["by_endpoint"] == {
            "GET /items/{item_id} 200": 3,
        }

    def test_unmatched_paths_share_one_label(self):
        client = TestClient(_app())
        client.get("/nowhere/1")
        client.get("/nowhere/2")

        assert metrics_collector.get_metrics()["requests"]["by_endpoint"] == {
            "GET <unmatched> 404": 2,
        }

    def test_colon_in_path_renders(self):
        collector = MetricsCollector()
        collector.record_request("GET", "/api/routes/R:1", 500, 0.01)

        text = collector.get_prometheus_metrics()

        assert 'fueleu_requests_total{method="GET",path="/api/routes/R:1",status="500"} 1' in text
        assert 'fueleu_errors_total{method="GET",path="/api/routes/R:1"} 1' in text
