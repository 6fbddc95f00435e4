"""
Integration tests for the FuelEU compliance API.

Fixtures (db, seeded_db, client, add_route) provided by tests/conftest.py.
"""
import pytest


@pytest.fixture
def seeded_client(seeded_db, client):
    return client


# ============================================================================
# Public Endpoint Tests
# ============================================================================

def test_root_endpoint(client):
    """Test API root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "FuelEU Compliance API"
    assert data["version"] == "1.0.0"
    assert data["status"] == "operational"


def test_health_check(client):
    """Database is the in-memory SQLite engine, Redis is disabled."""
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("healthy", "degraded", "unhealthy")
    assert "database" in data["components"]
    assert "timestamp" in data


def test_liveness(client):
    response = client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_request_id_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_metrics_include_operations(seeded_client):
    seeded_client.post("/api/banking/bank", json={"route_id": "R002", "year": 2024})
    response = seeded_client.get("/api/metrics")
    assert response.status_code == 200
    assert 'fueleu_operations_total{operation="ledger_banked"} 1' in response.text


def test_metrics_label_route_templates(seeded_client):
    seeded_client.get("/api/routes/R:1", params={"year": 2024})
    for i in range(3):
        seeded_client.get(f"/api/routes/X{i}", params={"year": 2024})

    response = seeded_client.get("/api/metrics")
    assert response.status_code == 200
    assert (
        'fueleu_requests_total{method="GET",path="/api/routes/{route_id}",status="404"} 4'
        in response.text
    )
    assert "R:1" not in response.text

    data = seeded_client.get("/api/metrics/json").json()
    assert data["requests"]["by_endpoint"] == {"GET /api/routes/{route_id} 404": 4}


def test_metrics_json(client):
    response = client.get("/api/metrics/json")
    assert response.status_code == 200
    data = response.json()
    assert "requests" in data
    assert "operations" in data


# ============================================================================
# Route Endpoint Tests
# ============================================================================

def test_list_routes(seeded_client):
    response = seeded_client.get("/api/routes")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 5
    assert data["routes"][1]["route_id"] == "R002"
    assert data["routes"][1]["ghg_intensity"] == 88.0


def test_list_routes_filtered(seeded_client):
    response = seeded_client.get("/api/routes", params={"year": 2025, "vessel_type": "RoRo"})
    assert response.status_code == 200
    assert [r["route_id"] for r in response.json()["routes"]] == ["R004"]


def test_get_route(seeded_client):
    response = seeded_client.get("/api/routes/R001", params={"year": 2024})
    assert response.status_code == 200
    assert response.json()["fuel_type"] == "HFO"


def test_get_route_not_found(seeded_client):
    response = seeded_client.get("/api/routes/R001", params={"year": 2031})
    assert response.status_code == 404
    assert response.json()["error"] == "RouteNotFound"


def test_set_baseline_and_compare(seeded_client):
    response = seeded_client.post("/api/routes/R002/baseline", params={"year": 2024})
    assert response.status_code == 200
    assert response.json()["is_baseline"] is True

    baseline = seeded_client.get("/api/routes/baseline", params={"year": 2024})
    assert baseline.json()["route_id"] == "R002"

    response = seeded_client.get("/api/routes/comparison", params={"year": 2024})
    assert response.status_code == 200
    data = response.json()
    assert data["baseline"]["route_id"] == "R002"
    assert data["target"] == pytest.approx(89.3368)
    rows = {c["route_id"]: c for c in data["comparisons"]}
    assert rows["R001"]["percent_diff"] == pytest.approx(3.40909, abs=1e-5)
    assert rows["R003"]["compliant"] is False


def test_comparison_without_baseline(seeded_client):
    response = seeded_client.get("/api/routes/comparison", params={"year": 2025})
    assert response.status_code == 404
    assert response.json()["error"] == "BaselineNotSet"


# ============================================================================
# Compliance Endpoint Tests
# ============================================================================

def test_compliance_balance(seeded_client):
    response = seeded_client.get("/api/compliance/cb", params={"route_id": "R002", "year": 2024})
    assert response.status_code == 200
    data = response.json()
    assert data["cb"] == 263082240
    assert data["ghg_target"] == pytest.approx(89.3368)
    assert data["energy_mj"] == 196800000
    assert data["banked"] == 0
    assert data["status"] == "surplus"


def test_compliance_balance_unknown_route(seeded_client):
    response = seeded_client.get("/api/compliance/cb", params={"route_id": "R999", "year": 2024})
    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "RouteNotFound"
    assert "R999" in data["detail"]


def test_compliance_balance_requires_year(seeded_client):
    response = seeded_client.get("/api/compliance/cb", params={"route_id": "R002"})
    assert response.status_code == 422


def test_limits(client):
    response = client.get("/api/compliance/limits")
    assert response.status_code == 200
    data = response.json()
    assert data["reference_ghg"] == pytest.approx(91.16)
    assert data["lcv_mj_per_t"] == 41000
    first = data["limits"][0]
    assert first["year"] == 2025
    assert first["reduction_pct"] == 2.0
    assert first["ghg_target"] == pytest.approx(89.3368)


# ============================================================================
# Banking Endpoint Tests
# ============================================================================

def test_bank_surplus(seeded_client):
    response = seeded_client.post("/api/banking/bank", json={"route_id": "R002", "year": 2024})
    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "banked"
    assert data["amount"] == 263082240

    cb = seeded_client.get("/api/compliance/cb", params={"route_id": "R002", "year": 2024}).json()
    assert cb["banked"] == 263082240
    assert cb["adjusted_cb"] == 526164480


def test_bank_deficit_rejected(seeded_client):
    response = seeded_client.post("/api/banking/bank", json={"route_id": "R001", "year": 2024})
    assert response.status_code == 400
    assert response.json()["error"] == "NegativeBalanceError"

    records = seeded_client.get("/api/banking/records").json()
    assert records["total"] == 0


def test_apply_banked(seeded_client):
    seeded_client.post("/api/banking/bank", json={"route_id": "R002", "year": 2024})
    response = seeded_client.post(
        "/api/banking/apply",
        json={"route_id": "R002", "year": 2024, "amount": 100000000},
    )
    assert response.status_code == 200
    assert response.json()["kind"] == "applied"

    records = seeded_client.get("/api/banking/records", params={"route_id": "R002"}).json()
    assert [r["kind"] for r in records["entries"]] == ["banked", "applied"]


def test_apply_exceeding_banked(seeded_client):
    response = seeded_client.post(
        "/api/banking/apply",
        json={"route_id": "R002", "year": 2024, "amount": 1},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "InsufficientBankedError"


def test_apply_non_positive_amount(seeded_client):
    response = seeded_client.post(
        "/api/banking/apply",
        json={"route_id": "R002", "year": 2024, "amount": 0},
    )
    assert response.status_code == 422


# ============================================================================
# Pooling Endpoint Tests
# ============================================================================

def test_create_and_get_pool(seeded_client, add_route):
    add_route("R006", 2025, "80.0")
    response = seeded_client.post(
        "/api/pools", json={"year": 2025, "route_ids": ["R004", "R005", "R006"]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["total_adjusted_cb"] == 174220480
    assert [a["route_id"] for a in data["allocations"]] == ["R006", "R004", "R005"]
    assert data["allocations"][2]["after"] == 0

    stored = seeded_client.get(f"/api/pools/{data['pool_id']}")
    assert stored.status_code == 200
    assert stored.json()["allocations"] == data["allocations"]


def test_invalid_pool(seeded_client):
    response = seeded_client.post("/api/pools", json={"year": 2025, "route_ids": ["R004", "R005"]})
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is False
    assert data["total_adjusted_cb"] == -208588320


def test_pool_needs_two_routes(seeded_client):
    response = seeded_client.post("/api/pools", json={"year": 2025, "route_ids": ["R004", "R004"]})
    assert response.status_code == 400
    assert response.json()["error"] == "InsufficientMembers"


def test_pool_unknown_route(seeded_client):
    response = seeded_client.post("/api/pools", json={"year": 2025, "route_ids": ["R004", "R999"]})
    assert response.status_code == 404


def test_get_missing_pool(client):
    response = client.get("/api/pools/999")
    assert response.status_code == 404
    assert response.json()["error"] == "PoolNotFound"
