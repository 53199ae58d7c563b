import pytest


@pytest.mark.smoke
def test_api_health_smoke(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["database"] == "ok"
    assert body["storage"] == "ok"


@pytest.mark.smoke
def test_ruta_inexistente_devuelve_sobre_de_error(client):
    resp = client.get("/no-existe")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
