# tests/test_api.py
import io
import logging

import pandas as pd
import pytest
import yaml
from fastapi.testclient import TestClient

from digipin_api.main import create_app

API_PREFIX = "/api/digipin"


@pytest.fixture(scope="module")
def client():
    return TestClient(create_app())


# ---------------------------------------------------------------------------
# System routes
# ---------------------------------------------------------------------------


def test_root_points_at_docs(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "DigiPin API" in resp.text
    assert "/api-docs" in resp.text


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_openapi_yaml_lists_routes(client):
    resp = client.get("/openapi.yaml")
    assert resp.status_code == 200
    document = yaml.safe_load(resp.text)
    assert f"{API_PREFIX}/encode" in document["paths"]
    assert f"{API_PREFIX}/decode" in document["paths"]


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def test_encode_get(client):
    resp = client.get(f"{API_PREFIX}/encode", params={"latitude": 28.622788, "longitude": 77.213033})
    assert resp.status_code == 200
    assert resp.json() == {"digipin": "39J-49L-L8T4"}


def test_encode_get_without_hyphens(client):
    resp = client.get(
        f"{API_PREFIX}/encode",
        params={"latitude": 28.622788, "longitude": 77.213033, "includeHyphens": "false"},
    )
    assert resp.json() == {"digipin": "39J49LL8T4"}


def test_encode_post(client):
    resp = client.post(f"{API_PREFIX}/encode", json={"latitude": 28.622788, "longitude": 77.213033})
    assert resp.status_code == 200
    assert resp.json() == {"digipin": "39J-49L-L8T4"}


def test_encode_post_accepts_numeric_strings(client):
    resp = client.post(
        f"{API_PREFIX}/encode",
        json={"latitude": "28.622788", "longitude": "77.213033", "includeHyphens": False},
    )
    assert resp.json() == {"digipin": "39J49LL8T4"}


@pytest.mark.parametrize("params", [{}, {"latitude": 20}, {"longitude": 80}])
def test_encode_requires_both_coordinates(client, params):
    resp = client.get(f"{API_PREFIX}/encode", params=params)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Latitude and longitude are required"}


def test_encode_post_without_body(client):
    resp = client.post(f"{API_PREFIX}/encode")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Latitude and longitude are required"}


def test_encode_rejects_non_numeric(client):
    resp = client.get(f"{API_PREFIX}/encode", params={"latitude": "north", "longitude": 80})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid latitude or longitude"}


def test_encode_out_of_region(client):
    resp = client.post(f"{API_PREFIX}/encode", json={"latitude": 0, "longitude": 80})
    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "OutOfRangeError"
    assert "minLat" in body["error"]


def test_encode_rejects_boolean_coordinate(client):
    resp = client.post(f"{API_PREFIX}/encode", json={"latitude": True, "longitude": 80})
    assert resp.status_code == 400
    body = resp.json()
    assert body == {"kind": "OutOfRangeError", "error": "Latitude must be a valid number"}


def test_encode_malformed_json(client):
    resp = client.post(
        f"{API_PREFIX}/encode",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert "error" in resp.json()


# ---------------------------------------------------------------------------
# Decode / validate
# ---------------------------------------------------------------------------


def test_decode_get(client):
    resp = client.get(f"{API_PREFIX}/decode", params={"digipin": "39J-49L-L8T4"})
    assert resp.status_code == 200
    assert resp.json() == {"latitude": "28.622793", "longitude": "77.213049"}


def test_decode_is_hyphen_insensitive(client):
    hyphenated = client.post(f"{API_PREFIX}/decode", json={"digipin": "39J-49L-L8T4"})
    plain = client.post(f"{API_PREFIX}/decode", json={"digipin": "39J49LL8T4"})
    assert hyphenated.status_code == plain.status_code == 200
    assert hyphenated.json() == plain.json()


def test_decode_requires_code(client):
    resp = client.get(f"{API_PREFIX}/decode")
    assert resp.status_code == 400
    assert resp.json() == {"error": "DigiPin code is required"}


def test_decode_rejects_invalid_code(client):
    resp = client.get(f"{API_PREFIX}/decode", params={"digipin": "AAA-AAA-AAAA"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid DigiPin format"}


def test_validate(client):
    resp = client.get(f"{API_PREFIX}/validate", params={"digipin": "39J49LL8T4"})
    assert resp.json() == {"digipin": "39J49LL8T4", "valid": True, "formatted": "39J-49L-L8T4"}

    resp = client.get(f"{API_PREFIX}/validate", params={"digipin": "AAA-AAA-AAAA"})
    assert resp.json()["valid"] is False
    assert resp.json()["formatted"] is None


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


def test_encode_batch(client):
    csv_text = "name,Latitude,Longitude\ndak bhawan,28.622788,77.213033\nocean,0,0\n"
    resp = client.post(
        f"{API_PREFIX}/encode-batch",
        files={"file": ("coords.csv", csv_text.encode(), "text/csv")},
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    result = pd.read_csv(io.StringIO(resp.text))
    assert result.loc[0, "digipin"] == "39J-49L-L8T4"
    assert pd.isna(result.loc[1, "digipin"])


def test_decode_batch(client):
    csv_text = "digipin\n39J-49L-L8T4\nAAA-AAA-AAAA\n"
    resp = client.post(
        f"{API_PREFIX}/decode-batch",
        files={"file": ("codes.csv", csv_text.encode(), "text/csv")},
    )
    assert resp.status_code == 200
    result = pd.read_csv(io.StringIO(resp.text), dtype=str)
    assert result.loc[0, "decoded_latitude"] == "28.622793"
    assert result.loc[0, "decoded_longitude"] == "77.213049"
    assert pd.isna(result.loc[1, "decoded_latitude"])


def test_encode_batch_missing_column(client):
    resp = client.post(
        f"{API_PREFIX}/encode-batch",
        files={"file": ("coords.csv", b"lat,lon\n20,80\n", "text/csv")},
    )
    assert resp.status_code == 400
    assert "Latitude" in resp.json()["error"]


def test_encode_batch_empty_upload(client):
    resp = client.post(
        f"{API_PREFIX}/encode-batch",
        files={"file": ("coords.csv", b"", "text/csv")},
    )
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Could not read CSV upload")


def test_failed_request_is_still_logged(caplog):
    app = create_app()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("boom")

    failing_client = TestClient(app, raise_server_exceptions=False)
    with caplog.at_level(logging.INFO, logger="digipin_api"):
        resp = failing_client.get("/boom")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error"}
    assert "GET /boom failed" in caplog.text
