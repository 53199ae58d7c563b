"""
Tests de hojas de vida: guardado, plantilla, permisos y exportación.
"""
import base64
import json

import pytest

from app.services.hoja_vida_service import FUNCIONES_ACM, limpiar_datos

HOJA = {
    "datos_personales": {
        "nombres_completos": "JUAN PÉREZ",
        "cedula": "0912345678",
        "telefono": "",
        "direccion": "Cdla. Kennedy Norte",
    },
    "formacion_academica": [
        {"nivel": "Secundaria", "institucion": "Colegio Vicente Rocafuerte", "titulo": "Bachiller"},
        {"nivel": "", "institucion": "", "titulo": ""},
    ],
    "experiencia_laboral": [
        {"empresa": "Municipio de Guayaquil", "cargo": "Agente de Control Municipal",
         "funciones": ["Control del espacio público", ""]},
    ],
    "habilidades": {"tecnicas": ["Primeros auxilios"], "blandas": [], "idiomas": []},
    "referencias": [],
}


@pytest.fixture
def hoja_guardada(client, headers_acm):
    resp = client.post("/hojas-vida", json=HOJA, headers=headers_acm)
    assert resp.status_code == 200
    return resp.json()["data"]


def test_limpiar_datos_recursivo():
    datos = {
        "a": "",
        "b": None,
        "c": [],
        "d": {"x": "", "y": {}},
        "e": [{"k": ""}, {"k": "v"}, ""],
        "f": False,
        "g": 0,
        "h": "ok",
    }

    assert limpiar_datos(datos) == {"e": [{"k": "v"}], "f": False, "g": 0, "h": "ok"}


def test_guardar_descarta_vacios(hoja_guardada, usuario_acm):
    assert hoja_guardada["usuario_id"] == usuario_acm.id
    assert "telefono" not in hoja_guardada["datos_personales"]
    assert len(hoja_guardada["formacion_academica"]) == 1
    assert hoja_guardada["experiencia_laboral"][0]["funciones"] == ["Control del espacio público"]
    assert hoja_guardada["habilidades"] == {"tecnicas": ["Primeros auxilios"]}


def test_guardar_reemplaza_la_existente(client, headers_acm, hoja_guardada):
    nueva = {"datos_personales": {"nombres_completos": "JUAN PÉREZ", "cedula": "0912345678"}}

    data = client.post("/hojas-vida", json=nueva, headers=headers_acm).json()["data"]

    assert data["id"] == hoja_guardada["id"]
    assert data["formacion_academica"] == []


def test_guardar_requiere_nombre_y_cedula(client, headers_acm):
    resp = client.post(
        "/hojas-vida", json={"datos_personales": {"nombres_completos": ""}}, headers=headers_acm
    )

    assert resp.status_code == 400
    assert set(resp.json()["errores"]) == {"nombres_completos", "cedula"}


def test_guardar_requiere_sesion(client):
    assert client.post("/hojas-vida", json=HOJA).status_code == 401


def test_mi_hoja_vida_plantilla(client, headers_acm):
    data = client.get("/hojas-vida/mi-hoja-vida", headers=headers_acm).json()["data"]

    assert data["es_plantilla"] is True
    assert data["datos_personales"]["nombres_completos"] == "JUAN PÉREZ"
    assert data["datos_personales"]["email"] == "acm1@seguraep.gob.ec"
    assert [f["nivel"] for f in data["formacion_academica"]] == ["Primaria", "Secundaria", "Universitaria"]


def test_mi_hoja_vida_guardada_completa_contacto(client, headers_acm, hoja_guardada):
    data = client.get("/hojas-vida/mi-hoja-vida", headers=headers_acm).json()["data"]

    assert data["es_plantilla"] is False
    assert data["datos_personales"]["email"] == "acm1@seguraep.gob.ec"
    assert data["datos_personales"]["direccion"] == "Cdla. Kennedy Norte"


def test_generar_plantilla(client, headers_acm):
    data = client.get("/hojas-vida/generar-plantilla", headers=headers_acm).json()["data"]

    assert data["experiencia_laboral"][0]["funciones"] == FUNCIONES_ACM
    assert {"idioma": "Español", "nivel": "Nativo"} in data["habilidades"]["idiomas"]
    assert len(data["cursos_capacitaciones"]) == 2


# =========================================================
# PERMISOS
# =========================================================

def test_todas_y_buscar_solo_admin(client, headers_acm, headers_admin, hoja_guardada):
    assert client.get("/hojas-vida/todas", headers=headers_acm).status_code == 403

    assert client.get("/hojas-vida/todas", headers=headers_admin).json()["total"] == 1
    por_nombre = client.get("/hojas-vida/buscar", params={"nombre": "juan"}, headers=headers_admin)
    assert por_nombre.json()["total"] == 1
    por_cedula = client.get("/hojas-vida/buscar", params={"cedula": "0999999999"}, headers=headers_admin)
    assert por_cedula.json()["total"] == 0


def test_hoja_ajena_prohibida(client, headers_otro, usuario_acm, hoja_guardada):
    resp = client.get(f"/hojas-vida/usuario/{usuario_acm.id}", headers=headers_otro)

    assert resp.status_code == 403


def test_admin_consulta_hoja_ajena(client, headers_admin, usuario_acm, hoja_guardada):
    resp = client.get(f"/hojas-vida/usuario/{usuario_acm.id}", headers=headers_admin)

    assert resp.status_code == 200
    assert resp.json()["data"]["usuario"]["cedula"] == "0912345678"


def test_hoja_inexistente(client, headers_acm, usuario_acm):
    resp = client.get(f"/hojas-vida/usuario/{usuario_acm.id}", headers=headers_acm)

    assert resp.status_code == 404


def test_eliminar_hoja(client, headers_acm, usuario_acm, hoja_guardada):
    assert client.delete(f"/hojas-vida/usuario/{usuario_acm.id}", headers=headers_acm).status_code == 200
    assert client.get(f"/hojas-vida/usuario/{usuario_acm.id}", headers=headers_acm).status_code == 404


# =========================================================
# EXPORTACIÓN
# =========================================================

def test_descargar_pdf(client, headers_acm, usuario_acm, hoja_guardada):
    resp = client.get(f"/hojas-vida/usuario/{usuario_acm.id}/descargar-pdf", headers=headers_acm)

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="hoja-vida-0912345678.pdf"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def test_descargar_word(client, headers_acm, usuario_acm, hoja_guardada):
    resp = client.get(f"/hojas-vida/usuario/{usuario_acm.id}/descargar-word", headers=headers_acm)

    assert resp.status_code == 200
    assert 'filename="hoja-vida-0912345678.docx"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"PK")


def test_exportar_varios_formatos(client, headers_acm, usuario_acm, hoja_guardada):
    resp = client.post(
        f"/hojas-vida/usuario/{usuario_acm.id}/exportar",
        json={"formatos": ["pdf", "json"]},
        headers=headers_acm,
    )

    data = resp.json()["data"]
    assert data["formatos_generados"] == ["pdf", "json"]
    assert base64.b64decode(data["archivos"]["pdf"]).startswith(b"%PDF")
    exportada = json.loads(data["archivos"]["json"])
    assert exportada["datos_personales"]["cedula"] == "0912345678"
    assert data["hoja_vida"]["usuario"] == "JUAN PÉREZ"


def test_exportar_formato_invalido(client, headers_acm, usuario_acm, hoja_guardada):
    resp = client.post(
        f"/hojas-vida/usuario/{usuario_acm.id}/exportar",
        json={"formatos": ["xlsx"]},
        headers=headers_acm,
    )

    assert resp.status_code == 400
