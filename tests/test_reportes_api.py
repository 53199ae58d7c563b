"""
Tests de los endpoints de reportes: creación (con y sin sesión), acceso,
búsqueda, estadísticas, coordenadas, edición, borrado y documentos.
"""
import json
from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import StorageException
from app.core.init_db import cargar_catalogo
from app.models.ley_norma import LeyNorma
from app.models.reporte import ImagenReporte, Reporte
from app.services.reporte_service import ReporteService
from app.services.storage_service import StorageService

CAMPOS_PRIVADOS = {"usuario_id", "cedula", "url_documento_word", "url_documento_pdf", "version"}


def _imagen(nombre, contenido, content_type="image/png"):
    return (nombre, contenido, content_type)


# =========================================================
# CREACIÓN
# =========================================================

@pytest.mark.smoke
def test_crear_reporte_anonimo(client, crear_reporte, db_session):
    """Test: Sin token el reporte queda como Usuario Público."""
    data = crear_reporte()

    assert data["id"].startswith("REP-")
    assert data["nombre_completo"] == "Usuario Público"
    assert data["estado"] == "pendiente"
    assert data["tipo_reporte"] == "encargado_cuadra"
    assert data["reporta"] is None
    assert data["usuario"] is None
    assert CAMPOS_PRIVADOS.isdisjoint(data)

    db_session.expire_all()
    reporte = db_session.query(Reporte).filter(Reporte.id == data["id"]).one()
    assert reporte.usuario_id is None
    assert reporte.cedula == "0000000000"
    assert reporte.version == 1


def test_crear_reporte_con_sesion(crear_reporte, headers_acm, usuario_acm):
    """Test: Con token el autor es el usuario de la sesión."""
    data = crear_reporte(headers=headers_acm)

    assert data["usuario_id"] == usuario_acm.id
    assert data["nombre_completo"] == "JUAN PÉREZ"
    assert data["cedula"] == "0912345678"
    assert data["reporta"] == "ACM JUAN PÉREZ"
    assert data["version"] == 1
    assert data["usuario"] == {
        "id": usuario_acm.id,
        "nombre_completo": "JUAN PÉREZ",
        "email": "acm1@seguraep.gob.ec",
        "rol": "acm",
    }


def test_crear_reporte_genera_documentos(client, crear_reporte, headers_acm, storage):
    data = crear_reporte(headers=headers_acm)
    detalle = client.get(f"/reportes/{data['id']}", headers=headers_acm).json()["data"]

    for columna, extension in (("url_documento_word", "docx"), ("url_documento_pdf", "pdf")):
        url = detalle[columna]
        assert url == f"/storage/documentos/reportes/{data['id']}/reporte-{data['id']}.{extension}"
        assert storage.leer(storage.ruta_desde_url(url))


def test_crear_reporte_respeta_reporta_enviado(crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm, reporta="Sgto. Ramírez")

    assert data["reporta"] == "Sgto. Ramírez"


def test_crear_reporte_con_imagenes_en_orden(crear_reporte, png, storage):
    data = crear_reporte(imagenes=[_imagen("frente.png", png), _imagen("lateral.png", png)])

    imagenes = data["imagenes"]
    assert [i["orden"] for i in imagenes] == [1, 2]
    assert [i["nombre_archivo"] for i in imagenes] == ["frente.png", "lateral.png"]
    for imagen in imagenes:
        assert imagen["url_storage"].startswith(f"/storage/reportes/{data['id']}/")
        assert storage.leer(storage.ruta_desde_url(imagen["url_storage"])) == png


def test_imagenes_con_el_mismo_nombre_no_se_pisan(crear_reporte, png):
    data = crear_reporte(imagenes=[_imagen("foto.png", png), _imagen("foto.png", png)])

    urls = [i["url_storage"] for i in data["imagenes"]]
    assert len(set(urls)) == 2


def test_crear_reporte_fallo_de_storage_revierte(client, datos_reporte, png, db_session, storage,
                                                 monkeypatch):
    """Test: Si falla la segunda imagen no queda reporte, fila de imagen ni archivo."""
    subir_original = StorageService.subir
    llamadas = []

    def subir_falla_en_la_segunda(self, ruta, contenido):
        llamadas.append(ruta)
        if len(llamadas) == 2:
            raise StorageException()
        return subir_original(self, ruta, contenido)

    monkeypatch.setattr(StorageService, "subir", subir_falla_en_la_segunda)

    resp = client.post(
        "/reportes",
        data=datos_reporte,
        files=[("imagenes", _imagen("frente.png", png)), ("imagenes", _imagen("lateral.png", png))],
    )

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Error al guardar los archivos"}
    assert len(llamadas) == 2
    db_session.expire_all()
    assert db_session.query(Reporte).count() == 0
    assert db_session.query(ImagenReporte).count() == 0
    assert [p for p in storage.root.rglob("*") if p.is_file()] == []


def test_crear_reporte_campos_faltantes(client, db_session):
    resp = client.post("/reportes", data={"zona": "Norte"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Campos requeridos faltantes"
    assert body["errores"]["distrito"] == "Campo requerido"
    assert body["errores"]["novedad"] == "Campo requerido"
    assert "zona" not in body["errores"]
    assert db_session.query(Reporte).count() == 0


def test_crear_reporte_archivo_no_imagen(client, datos_reporte, db_session):
    resp = client.post(
        "/reportes",
        data=datos_reporte,
        files=[("imagenes", ("notas.txt", b"hola", "text/plain"))],
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "Solo se permiten archivos de imagen"
    assert db_session.query(Reporte).count() == 0


def test_crear_reporte_demasiadas_imagenes(client, datos_reporte, png):
    files = [("imagenes", _imagen(f"foto{i}.png", png)) for i in range(11)]

    resp = client.post("/reportes", data=datos_reporte, files=files)

    assert resp.status_code == 400
    assert resp.json()["errores"]["imagenes"] == "Demasiadas imágenes"


def test_crear_reporte_imagen_demasiado_grande(client, datos_reporte):
    grande = b"\x00" * (5 * 1024 * 1024 + 1)

    resp = client.post("/reportes", data=datos_reporte, files=[("imagenes", _imagen("g.png", grande))])

    assert resp.status_code == 400


def test_crear_reporte_token_invalido(client, datos_reporte):
    """Test: Un token inválido no se degrada a reporte anónimo."""
    resp = client.post("/reportes", data=datos_reporte, headers={"Authorization": "Bearer caducado"})

    assert resp.status_code == 401


def test_crear_reporte_fecha_invalida(client, datos_reporte):
    resp = client.post("/reportes", data={**datos_reporte, "fecha": "10/05/2024"})

    assert resp.status_code == 400
    assert "fecha" in resp.json()["errores"]


# =========================================================
# ACCESO Y PROYECCIONES
# =========================================================

def test_obtener_reporte_ajeno_prohibido(client, crear_reporte, headers_acm, headers_otro, headers_admin):
    ajeno = crear_reporte(headers=headers_otro)

    assert client.get(f"/reportes/{ajeno['id']}", headers=headers_acm).status_code == 403
    assert client.get(f"/reportes/{ajeno['id']}", headers=headers_admin).status_code == 200


def test_obtener_reporte_dos_veces_sin_cambios(client, crear_reporte, headers_acm, png):
    data = crear_reporte(headers=headers_acm, imagenes=[_imagen("frente.png", png)])

    primera = client.get(f"/reportes/{data['id']}", headers=headers_acm)
    segunda = client.get(f"/reportes/{data['id']}", headers=headers_acm)

    assert primera.status_code == segunda.status_code == 200
    assert primera.json() == segunda.json()


def test_reporte_anonimo_visible_con_sesion(client, crear_reporte, headers_acm):
    anonimo = crear_reporte()

    resp = client.get(f"/reportes/{anonimo['id']}", headers=headers_acm)

    assert resp.status_code == 200
    assert resp.json()["data"]["cedula"] == "0000000000"


def test_reporte_no_encontrado(client, headers_acm):
    resp = client.get("/reportes/REP-0-NOEXISTE", headers=headers_acm)

    assert resp.status_code == 404
    assert resp.json()["message"] == "Reporte no encontrado"


def test_obtener_reporte_requiere_sesion(client, crear_reporte):
    data = crear_reporte()

    assert client.get(f"/reportes/{data['id']}").status_code == 401


def test_proyeccion_publica_oculta_datos_privados(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    # Aunque llegue token, la ruta pública devuelve la proyección pública
    resp = client.get(f"/reportes/{data['id']}/publico", headers=headers_acm)

    publico = resp.json()["data"]
    assert CAMPOS_PRIVADOS.isdisjoint(publico)
    assert publico["usuario"] == {"nombre_completo": "JUAN PÉREZ", "rol": "acm"}
    assert publico["novedad"] == data["novedad"]


# =========================================================
# BÚSQUEDA
# =========================================================

def test_busqueda_filtros_and(client, crear_reporte, headers_admin):
    crear_reporte(zona="Norte", fecha="2024-05-10")
    crear_reporte(zona="Norte", fecha="2024-06-01")
    crear_reporte(zona="Sur", distrito="Urdaneta", fecha="2024-05-15")

    resp = client.get(
        "/reportes/buscar",
        params={"zona": "Norte", "fecha_desde": "2024-05-01", "fecha_hasta": "2024-05-31"},
        headers=headers_admin,
    )

    body = resp.json()
    assert body["total"] == 1
    assert body["data"][0]["fecha"] == "2024-05-10"


def test_busqueda_sin_filtros_devuelve_todo(client, crear_reporte, headers_acm, headers_admin):
    creados = {crear_reporte()["id"], crear_reporte(headers=headers_acm)["id"]}

    resp = client.get("/reportes/buscar", headers=headers_admin)

    body = resp.json()
    assert resp.status_code == 200
    assert body["total"] == 2
    assert {r["id"] for r in body["data"]} == creados


def test_busqueda_no_admin_solo_propios(client, crear_reporte, headers_acm, headers_otro, otro_acm):
    propio = crear_reporte(headers=headers_acm)
    crear_reporte(headers=headers_otro)
    crear_reporte()

    resp = client.get(
        "/reportes/buscar", params={"usuario_id": otro_acm.id}, headers=headers_acm
    )

    body = resp.json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == propio["id"]


def test_busqueda_admin_por_usuario(client, crear_reporte, headers_admin, headers_otro, otro_acm):
    crear_reporte(headers=headers_otro)
    crear_reporte()

    resp = client.get("/reportes/buscar", params={"usuario_id": otro_acm.id}, headers=headers_admin)

    assert resp.json()["total"] == 1


def test_busqueda_rango_de_fechas_invertido(client, headers_acm):
    resp = client.get(
        "/reportes/buscar",
        params={"fecha_desde": "2024-06-01", "fecha_hasta": "2024-05-01"},
        headers=headers_acm,
    )

    assert resp.status_code == 400


def test_busqueda_estado_invalido(client, headers_acm):
    resp = client.get("/reportes/buscar", params={"estado": "borrado"}, headers=headers_acm)

    assert resp.status_code == 400
    assert "estado" in resp.json()["errores"]


def test_busqueda_publica_paginada(client, crear_reporte, headers_acm):
    for _ in range(3):
        crear_reporte(headers=headers_acm)

    resp = client.get("/reportes/buscar-publico", params={"limit": 2, "offset": 2})

    body = resp.json()
    assert body["total"] == 3
    assert len(body["data"]) == 1
    assert body["pagina_actual"] == 2
    assert body["total_paginas"] == 2
    assert CAMPOS_PRIVADOS.isdisjoint(body["data"][0])


def test_busqueda_publica_limita_el_tamano_de_pagina(client, crear_reporte):
    crear_reporte()

    body = client.get("/reportes/buscar-publico", params={"limit": 500}).json()

    assert body["total_paginas"] == 1
    assert body["pagina_actual"] == 1


def test_mis_reportes(client, crear_reporte, headers_acm, headers_otro):
    crear_reporte(headers=headers_acm)
    crear_reporte(headers=headers_otro)

    body = client.get("/reportes/mis-reportes", headers=headers_acm).json()

    assert body["total"] == 1
    assert body["data"][0]["nombre_completo"] == "JUAN PÉREZ"


def test_zonas_guayaquil(client):
    data = client.get("/zonas-guayaquil").json()["data"]

    assert set(data) == {"Norte", "Sur", "Centro", "Oeste", "Este"}
    assert "N1" in data["Norte"]["circuitos"]


# =========================================================
# ESTADÍSTICAS
# =========================================================

def test_estadisticas_por_alcance(client, crear_reporte, headers_acm, headers_otro, headers_admin):
    crear_reporte(headers=headers_acm, zona="Norte")
    crear_reporte(headers=headers_acm, zona="Sur")
    crear_reporte(headers=headers_otro, zona="Norte")

    propias = client.get("/reportes/estadisticas", headers=headers_acm).json()["data"]
    assert propias["total"] == 2
    assert propias["por_zona"] == {"Norte": 1, "Sur": 1}

    todas = client.get("/reportes/estadisticas", headers=headers_admin).json()["data"]
    assert todas["total"] == 3
    assert todas["por_estado"] == {"pendiente": 3}
    assert todas["por_mes"] == {"2024-05": 3}


def test_estadisticas_fallo_de_bd_devuelve_ceros(client, headers_acm, monkeypatch):
    def _falla(self, ctx, usuario_id=None):
        raise SQLAlchemyError("base de datos caída")

    monkeypatch.setattr(ReporteService, "_query_alcance", _falla)

    resp = client.get("/reportes/estadisticas", headers=headers_acm)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 0
    assert data["por_zona"] == {}
    assert data["por_estado"] == {}


def test_estadisticas_publicas(client, crear_reporte, headers_acm):
    crear_reporte(headers=headers_acm)
    crear_reporte()

    data = client.get("/reportes/estadisticas-publicas").json()["data"]

    assert data["total"] == 2
    assert data["pendientes"] == 2
    assert data["completados"] == 0
    assert data["ultima_semana"] == 2
    assert len(data["recientes"]) == 2
    assert all(CAMPOS_PRIVADOS.isdisjoint(r) for r in data["recientes"])


# =========================================================
# COORDENADAS
# =========================================================

def test_actualizar_coordenadas(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    resp = client.post(
        f"/reportes/{data['id']}/coordenadas",
        json={"latitud": -2.19, "longitud": -79.88},
        headers=headers_acm,
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["coordenadas"] == "POINT(-79.88 -2.19)"


def test_coordenadas_fuera_de_rango(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    resp = client.post(
        f"/reportes/{data['id']}/coordenadas",
        json={"latitud": 95, "longitud": -79.88},
        headers=headers_acm,
    )

    assert resp.status_code == 400
    assert "latitud" in resp.json()["errores"]


def test_coordenadas_de_reporte_ajeno(client, crear_reporte, headers_acm, headers_otro):
    data = crear_reporte(headers=headers_otro)

    resp = client.post(
        f"/reportes/{data['id']}/coordenadas",
        json={"latitud": -2.19, "longitud": -79.88},
        headers=headers_acm,
    )

    assert resp.status_code == 403


def test_reportes_cercanos(client, crear_reporte, headers_admin):
    cerca = crear_reporte(latitud="-2.19", longitud="-79.88")
    crear_reporte(latitud="-2.30", longitud="-79.90")
    crear_reporte()

    resp = client.get(
        "/reportes/ubicacion/cercanos",
        params={"latitud": -2.19, "longitud": -79.88, "radio_km": 5},
        headers=headers_admin,
    )

    body = resp.json()
    assert body["total"] == 1
    assert body["radio_km"] == 5
    assert body["data"][0]["id"] == cerca["id"]
    assert body["data"][0]["distancia_km"] == 0


def test_reportes_cercanos_sin_coordenadas(client, headers_admin):
    resp = client.get("/reportes/ubicacion/cercanos", headers=headers_admin)

    assert resp.status_code == 400


# =========================================================
# EDICIÓN Y BORRADO
# =========================================================

def test_cambiar_estado_no_incrementa_version(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    resp = client.put(f"/reportes/{data['id']}", data={"estado": "revisado"}, headers=headers_acm)

    assert resp.status_code == 200
    actualizado = resp.json()["data"]
    assert actualizado["estado"] == "revisado"
    assert actualizado["version"] == 1


def test_cambiar_novedad_incrementa_version(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    resp = client.put(
        f"/reportes/{data['id']}",
        data={"novedad": "Comerciante retirado tras la notificación"},
        headers=headers_acm,
    )

    actualizado = resp.json()["data"]
    assert actualizado["version"] == 2
    assert actualizado["novedad"] == "Comerciante retirado tras la notificación"


def test_actualizar_estado_invalido(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    resp = client.put(f"/reportes/{data['id']}", data={"estado": "borrado"}, headers=headers_acm)

    assert resp.status_code == 400
    assert resp.json()["errores"] == {"estado": "Estado inválido"}


def test_actualizar_reporte_ajeno(client, crear_reporte, headers_acm, headers_otro, headers_admin):
    data = crear_reporte(headers=headers_otro)

    assert client.put(
        f"/reportes/{data['id']}", data={"estado": "revisado"}, headers=headers_acm
    ).status_code == 403
    assert client.put(
        f"/reportes/{data['id']}", data={"estado": "completado"}, headers=headers_admin
    ).status_code == 200


def test_actualizar_agrega_imagenes_al_final(client, crear_reporte, headers_acm, png):
    data = crear_reporte(headers=headers_acm, imagenes=[_imagen("antes.png", png)])

    resp = client.put(
        f"/reportes/{data['id']}",
        files=[("nuevas_imagenes", _imagen("despues.png", png))],
        headers=headers_acm,
    )

    imagenes = resp.json()["data"]["imagenes"]
    assert [(i["orden"], i["nombre_archivo"]) for i in imagenes] == [
        (1, "antes.png"),
        (2, "despues.png"),
    ]


def test_eliminar_reporte_solo_admin(client, crear_reporte, headers_acm, headers_admin, png, storage):
    data = crear_reporte(headers=headers_acm, imagenes=[_imagen("foto.png", png)])
    ruta = storage.ruta_desde_url(data["imagenes"][0]["url_storage"])

    assert client.delete(f"/reportes/{data['id']}", headers=headers_acm).status_code == 403

    resp = client.delete(f"/reportes/{data['id']}", headers=headers_admin)
    assert resp.status_code == 200
    assert client.get(f"/reportes/{data['id']}", headers=headers_admin).status_code == 404
    assert storage.leer(ruta) is None


# =========================================================
# DOCUMENTOS E IMPRESIÓN
# =========================================================

def test_descargar_pdf(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    resp = client.get(f"/reportes/{data['id']}/descargar-pdf", headers=headers_acm)

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert f"reporte-{data['id']}-{date.today().isoformat()}.pdf" in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def test_descargar_word_publico(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm)

    resp = client.get(f"/reportes/{data['id']}/descargar-word-publico")

    assert resp.status_code == 200
    assert resp.headers["content-disposition"].endswith('.docx"')
    assert resp.content.startswith(b"PK")


def test_descargar_pdf_con_imagen(client, crear_reporte, png):
    data = crear_reporte(imagenes=[_imagen("foto.png", png)])

    resp = client.get(f"/reportes/{data['id']}/descargar-pdf-publico")

    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")


def test_descargar_reporte_ajeno(client, crear_reporte, headers_acm, headers_otro):
    data = crear_reporte(headers=headers_otro)

    resp = client.get(f"/reportes/{data['id']}/descargar-word", headers=headers_acm)

    assert resp.status_code == 403


def test_vista_impresion(client, crear_reporte, headers_acm):
    data = crear_reporte(headers=headers_acm, novedad="<script>alert(1)</script> en la vereda")

    privada = client.get(f"/reportes/{data['id']}/imprimir", headers=headers_acm)
    publica = client.get(f"/reportes/{data['id']}/imprimir-publico")

    assert privada.headers["content-type"].startswith("text/html")
    assert "&lt;script&gt;" in privada.text
    assert "<script>" not in privada.text
    assert "C.I. 0912345678" in privada.text
    assert "0912345678" not in publica.text


# =========================================================
# LEYES DEL REPORTE
# =========================================================

@pytest.fixture
def catalogo(db_session):
    cargar_catalogo(db_session)
    db_session.commit()
    return db_session.query(LeyNorma).order_by(LeyNorma.nombre).all()


def test_crear_reporte_con_leyes_descarta_invalidas(client, crear_reporte, catalogo):
    ley = catalogo[0]
    articulo = ley.articulos[0]
    otra_ley = catalogo[1]
    leyes = [
        {"ley_norma_id": ley.id, "articulo_id": articulo.id},
        {"ley_norma_id": otra_ley.id, "articulo_id": articulo.id},
        {"ley_norma_id": "no-existe"},
    ]

    data = crear_reporte(leyes_normas=json.dumps(leyes))

    assert len(data["leyes_normas"]) == 1
    asociacion = data["leyes_normas"][0]
    assert asociacion["ley_norma"]["id"] == ley.id
    assert asociacion["articulo"]["numero_articulo"] == articulo.numero_articulo


def test_leyes_normas_json_invalido(client, datos_reporte):
    resp = client.post("/reportes", data={**datos_reporte, "leyes_normas": "[no es json"})

    assert resp.status_code == 400
    assert "leyes_normas" in resp.json()["errores"]


def test_leyes_publico_es_solo_lectura(client, crear_reporte, catalogo):
    data = crear_reporte(leyes_normas=json.dumps([catalogo[0].id]))

    resp = client.post(f"/reportes/{data['id']}/leyes-publico")

    assert resp.status_code == 200
    assert [a["ley_norma"]["id"] for a in resp.json()["data"]] == [catalogo[0].id]


def test_asociar_y_desasociar_leyes(client, crear_reporte, headers_acm, catalogo):
    data = crear_reporte(headers=headers_acm)
    ley = catalogo[2]

    resp = client.post(
        f"/reportes/{data['id']}/leyes-normas",
        json={"leyes": [{"ley_norma_id": ley.id}, {"ley_norma_id": ley.id}]},
        headers=headers_acm,
    )
    assert resp.json()["data"]["nuevas"] == 1

    leyes = client.get(f"/reportes/{data['id']}/leyes-normas", headers=headers_acm).json()["data"]
    assert len(leyes) == 1

    url = f"/reportes/{data['id']}/leyes-normas/{ley.id}"
    assert client.delete(url, headers=headers_acm).status_code == 200
    assert client.delete(url, headers=headers_acm).status_code == 404
