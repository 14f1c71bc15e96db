import importlib

import pytest
from fastapi.testclient import TestClient

from analytics.ranking import MINIMUM_SESSIONS_FOR_ML
from db.engine import Base
from journal.errors import ConfigurationError


# We import the server AFTER monkeypatching env when needed
def make_app(monkeypatch, repo, api_token=None):
    if api_token is not None:
        monkeypatch.setenv("API_TOKEN", api_token)
    else:
        monkeypatch.delenv("API_TOKEN", raising=False)
    monkeypatch.setenv("VAPELOG_TZ", "UTC")

    server_main = importlib.import_module("server.main")
    importlib.reload(server_main)
    server_main.app.dependency_overrides[server_main.get_repository] = lambda: repo
    return server_main.app


@pytest.fixture
def client(monkeypatch, repo):
    return TestClient(make_app(monkeypatch, repo))


def _product(client, **overrides):
    payload = {"name": "Blue Dream", "type": "flower", "route": "inhalation", "thcPercent": 21.0}
    payload.update(overrides)
    r = client.post("/products", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def _session(client, product_id, **overrides):
    payload = {"productId": product_id, "dateTime": "2024-07-01T19:30:00Z"}
    payload.update(overrides)
    r = client.post("/sessions", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def _check_in(client, session_id, **ratings):
    payload = {"sessionId": session_id, "minutesAfter": 30, **ratings}
    r = client.post("/check-ins", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_auth_enabled_blocks_without_header(monkeypatch, repo):
    client = TestClient(make_app(monkeypatch, repo, api_token="secrettoken"))
    assert client.get("/products").status_code == 401
    assert client.get("/health").status_code == 200


def test_auth_enabled_allows_with_header(monkeypatch, repo):
    client = TestClient(make_app(monkeypatch, repo, api_token="secrettoken"))
    r = client.get("/products", headers={"Authorization": "Bearer secrettoken"})
    assert r.status_code == 200
    assert r.json() == []


def test_product_crud_uses_camel_case(client):
    created = _product(client, myrcene=1.4)
    assert created["thcPercent"] == 21.0
    assert "createdAt" in created

    r = client.put(
        f"/products/{created['id']}",
        json={**created, "name": "Blue Dream #2", "cbdPercent": 0.5},
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Blue Dream #2"
    assert client.get(f"/products/{created['id']}").json()["cbdPercent"] == 0.5

    assert client.delete(f"/products/{created['id']}").status_code == 204
    assert client.get(f"/products/{created['id']}").status_code == 404


def test_validation_errors(client):
    assert client.post("/products", json={"name": "x", "type": "flower"}).status_code == 422
    product = _product(client)
    session = _session(client, product["id"])
    r = client.post("/check-ins", json={"sessionId": session["id"], "minutesAfter": 30, "awake": 11})
    assert r.status_code == 422
    r = client.post("/sessions", json={"productId": product["id"], "dateTime": "99999999999999999999999"})
    assert r.status_code == 422


def test_orphans_are_rejected(client):
    r = client.post("/sessions", json={"productId": 999})
    assert r.status_code == 409
    r = client.post("/check-ins", json={"sessionId": 999, "minutesAfter": 30})
    assert r.status_code == 409


def test_session_listing_and_check_ins(client):
    a = _product(client, name="A")
    b = _product(client, name="B")
    s1 = _session(client, a["id"], dateTime="2024-07-01T10:00:00Z")
    _session(client, b["id"], dateTime="2024-07-02T10:00:00Z")
    _check_in(client, s1["id"], minutesAfter=120, awake=3)
    _check_in(client, s1["id"], minutesAfter=30, awake=7)

    assert len(client.get("/sessions").json()) == 2
    only_a = client.get("/sessions", params={"productId": a["id"]}).json()
    assert [s["id"] for s in only_a] == [s1["id"]]
    only_a = client.get("/sessions", params={"product_id": a["id"]}).json()
    assert [s["id"] for s in only_a] == [s1["id"]]
    assert len(client.get(f"/products/{a['id']}/sessions").json()) == 1
    recent = client.get("/sessions", params={"since": "2024-07-02T00:00:00"}).json()
    assert len(recent) == 1

    check_ins = client.get(f"/sessions/{s1['id']}/check-ins").json()
    assert [c["minutesAfter"] for c in check_ins] == [30, 120]


def test_unknown_time_zone_stops_startup(monkeypatch, repo):
    monkeypatch.setenv("VAPELOG_TZ", "Not/AZone")
    server_main = importlib.import_module("server.main")
    with pytest.raises(ConfigurationError):
        importlib.reload(server_main)


def test_bad_since_returns_400(client):
    r = client.get("/sessions", params={"since": "not-a-date"})
    assert r.status_code == 400


def test_delete_product_cascades_over_http(client):
    product = _product(client)
    session = _session(client, product["id"])
    ci = _check_in(client, session["id"], awake=5)

    assert client.delete(f"/products/{product['id']}").status_code == 204
    assert client.get(f"/sessions/{session['id']}").status_code == 404
    assert client.get(f"/check-ins/{ci['id']}").status_code == 404


def test_recommendations_gated_until_enough_sessions(client):
    product = _product(client)
    session = _session(client, product["id"])
    _check_in(client, session["id"], awake=8, tired=2)

    body = client.get("/recommendations").json()
    assert body["ready"] is False
    assert body["sessionsUntilReady"] == MINIMUM_SESSIONS_FOR_ML - 1
    assert body["recommendations"] == []

    for _ in range(MINIMUM_SESSIONS_FOR_ML - 1):
        _session(client, product["id"])

    body = client.get("/recommendations", params={"limit": 5}).json()
    assert body["ready"] is True
    assert body["sessionsUntilReady"] == 0
    [rec] = body["recommendations"]
    assert rec["product"]["id"] == product["id"]
    assert rec["score"] == pytest.approx(6.0)
    assert rec["confidence"] == "High"
    assert rec["reason"] == "Based on 21.0% THC matching your preferences"


def test_insights(client):
    product = _product(client, limonene=2.0)
    for _ in range(MINIMUM_SESSIONS_FOR_ML):
        _session(client, product["id"])
    body = client.get("/insights").json()
    assert body["ready"] is True
    assert body["mostCommonTimeOfDay"] == "Evening (5-9 PM)"
    assert body["favoriteTerpene"] == "Limonene"
    assert body["bestResultsFor"] == "Relaxation & Sleep"
    assert body["recommendations"] == []


def test_terpene_reference(client):
    terpenes = client.get("/terpenes").json()
    assert [t["name"] for t in terpenes][:2] == ["Myrcene", "Limonene"]
    assert client.get("/terpenes/linalool").json()["aroma"] == "Floral, lavender, sweet"
    assert client.get("/terpenes/bisabolol").status_code == 404


def test_scan_to_product(client):
    scan = client.post("/scan/extract", json={"text": "THC: 23.5%\nMyrcene: 2.1%"}).json()
    assert scan["cannabinoids"] == {"THC": 23.5}
    r = client.post(
        "/products/from-scan",
        json={"scan": scan, "name": "Scanned", "type": "vape", "route": "inhalation"},
    )
    assert r.status_code == 201
    assert r.json()["thcPercent"] == 23.5
    assert r.json()["myrcene"] == 2.1


def test_export_then_import(monkeypatch, tmp_path, client):
    from db.repository import create_repository

    product = _product(client)
    session = _session(client, product["id"])
    _check_in(client, session["id"], euphoric=6)
    exported = client.get("/export").json()
    assert len(exported["checkIns"]) == 1

    other = TestClient(make_app(monkeypatch, create_repository(f"sqlite:///{tmp_path / 'other.db'}")))
    r = other.post("/import", json=exported)
    assert r.status_code == 200
    assert r.json()["imported"] == {"products": 1, "sessions": 1, "checkIns": 1}
    assert other.get("/products").json()[0]["name"] == "Blue Dream"


def test_storage_failure_returns_503(client, repo):
    Base.metadata.drop_all(repo.engine)
    r = client.get("/recommendations")
    assert r.status_code == 503
    assert client.get("/products").status_code == 503
