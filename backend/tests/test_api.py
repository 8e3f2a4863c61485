"""
Integration tests for API endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
def rows():
    return [
        {"amount": v, "country": "US" if v % 5 else "UK", "date": f"2024-01-{(v % 28) + 1:02d}"}
        for v in list(range(1, 60)) + [10000]
    ]


@pytest.mark.integration
def test_health_check(client):
    """Test the health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.integration
def test_root_endpoint(client):
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "firstlook API is running"}


@pytest.mark.integration
def test_analyze_rows(client, rows):
    """Analyzing rows returns every section of the result."""
    response = client.post("/api/analyze", json={"rows": rows, "file_kind": "csv"})

    assert response.status_code == 200
    data = response.json()
    assert data["meta"] == {"row_count": 60, "column_count": 3, "missing_count": 0, "file_kind": "csv"}
    assert set(data["profile"]["columns"]) == {"amount", "country", "date"}
    assert data["profile"]["columns"]["amount"]["type"] == "numeric"
    assert data["profile"]["columns"]["date"]["type"] == "date"
    assert data["kpis"][0] == {"label": "Rows", "value": "60", "type": "count", "column": None}
    assert all("type" in chart for chart in data["charts"])
    assert any(i["id"] == "outlier-amount" for i in data["insights"])
    assert "X-Correlation-ID" in response.headers
    assert "X-Response-Time" in response.headers


@pytest.mark.integration
def test_correlation_id_is_echoed(client):
    """A caller-supplied correlation id comes back on the response."""
    response = client.get("/api/health", headers={"X-Correlation-ID": "test-123"})
    assert response.headers["X-Correlation-ID"] == "test-123"


@pytest.mark.integration
def test_analyze_empty_rows(client):
    """An empty dataset is rejected with a structured error."""
    response = client.post("/api/analyze", json={"rows": []})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "EMPTY_DATASET"
    assert detail["message"]
    assert detail["suggestion"]
    assert detail["correlation_id"]


@pytest.mark.integration
@pytest.mark.parametrize("bad_rows", [
    [1, 2, 3],
    [{"a": 1}, "not a row"],
    [{"a": {"nested": True}}],
    [{"a": [1, 2]}],
])
def test_analyze_invalid_rows(client, bad_rows):
    """Rows must be flat objects of scalar cells."""
    response = client.post("/api/analyze", json={"rows": bad_rows})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_ROWS"


@pytest.mark.integration
def test_analyze_too_many_columns(client):
    """Column count is limited."""
    limit = app.state.settings.max_columns
    wide = [{f"c{i}": i for i in range(limit + 1)}]
    response = client.post("/api/analyze", json={"rows": wide})

    assert response.status_code == 413
    assert response.json()["detail"]["code"] == "TOO_MANY_COLUMNS"


@pytest.mark.integration
def test_analyze_missing_rows_field(client):
    """A body without rows fails request validation."""
    response = client.post("/api/analyze", json={"file_kind": "csv"})
    assert response.status_code == 422


@pytest.mark.integration
def test_ask_question(client, rows):
    """Questions are answered from the rows sent with them."""
    response = client.post("/api/ask", json={"question": "explain amount", "rows": rows})

    assert response.status_code == 200
    data = response.json()
    assert "10,000" in data["answer"]
    assert data["meta"]["row_count"] == 60


@pytest.mark.integration
def test_ask_time_question(client, rows):
    """Time questions see the date column."""
    response = client.post("/api/ask", json={"question": "what is the time coverage", "rows": rows})

    assert response.status_code == 200
    assert response.json()["answer"].startswith("The dataset spans from 2024-01-01")


@pytest.mark.integration
def test_ask_empty_question(client, rows):
    """Blank questions are rejected."""
    response = client.post("/api/ask", json={"question": "   ", "rows": rows})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "EMPTY_QUESTION"


@pytest.mark.integration
def test_ask_question_too_long(client, rows):
    """Over-long questions are rejected."""
    question = "x" * (app.state.settings.max_question_length + 1)
    response = client.post("/api/ask", json={"question": question, "rows": rows})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "QUESTION_TOO_LONG"


@pytest.mark.integration
def test_metrics_endpoint(client, rows):
    """Stage timings are exposed after an analysis."""
    client.post("/api/analyze", json={"rows": rows})
    response = client.get("/api/metrics")

    assert response.status_code == 200
    performance = response.json()["performance"]
    assert performance["analyze"]["count"] >= 1
    assert "request_duration" in performance


@pytest.mark.integration
def test_repeated_requests_stay_under_rate_limit(client):
    """Each request counts once against the per-minute limit."""
    for _ in range(10):
        response = client.post("/api/ask", json={"question": "", "rows": [{"a": 1}]})
        assert response.status_code == 400


@pytest.mark.integration
def test_analyze_values_near_float_limit(client):
    """Huge magnitudes still produce a JSON-encodable result."""
    rows = [{"v": -1e308 if i < 50 else 1e308, "amount": (i * 37) % 50 + 5} for i in range(100)]
    response = client.post("/api/analyze", json={"rows": rows})

    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["columns"]["v"]["type"] == "numeric"
    assert all(k["label"] != "Total v" for k in data["kpis"])
    histogram = next(c for c in data["charts"] if c["type"] == "histogram" and c["column"] == "v")
    assert histogram["edges"][0] == -1e308
    assert histogram["edges"][-1] == 1e308
