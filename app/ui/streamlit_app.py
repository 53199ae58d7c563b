"""
UI Web del Sistema de Reportes ACM con Streamlit.

Interfaz mínima para agentes y administradores:
- Iniciar sesión / registrarse
- Panel con estadísticas y reportes recientes
- Crear reportes (también sin sesión)
- Buscar reportes y descargar PDF / Word

Toda la lógica vive en AcmApiClient; esta capa solo pinta estado.
"""
from datetime import date

import streamlit as st

from app.core.logger import get_logger
from app.ui.api_client import (
    AcmApiClient,
    AcmAPIError,
    ConflictoError,
    SesionCliente,
    SesionExpiradaError,
    ValidacionAPIError,
)
from app.ui.debounce import VerificadorDisponibilidad
from app.ui.estado import BusquedaState, RegistroState

# Configuración de la página
st.set_page_config(
    page_title="Sistema de Reportes ACM",
    page_icon="🛡️",
    layout="wide",
    initial_sidebar_state="expanded",
)

logger = get_logger()

ESTADOS = ["", "pendiente", "completado", "revisado", "archivado"]


# =========================================================
# ESTADO DE SESIÓN
# =========================================================

if "sesion" not in st.session_state:
    st.session_state["sesion"] = SesionCliente()
if "busqueda" not in st.session_state:
    st.session_state["busqueda"] = BusquedaState()
if "registro" not in st.session_state:
    st.session_state["registro"] = RegistroState()

cliente = AcmApiClient(sesion=st.session_state["sesion"])

if "verificador" not in st.session_state:
    st.session_state["verificador"] = VerificadorDisponibilidad(
        cliente, st.session_state["registro"]
    )


def ir_a_login(error: SesionExpiradaError):
    # La página se cambia en la siguiente ejecución, antes de crear el radio
    st.session_state["ir_a"] = "🔐 Iniciar sesión"
    st.session_state["aviso"] = error.mensaje
    st.rerun()


def mostrar_errores(errores: dict):
    for campo, mensaje in errores.items():
        st.error(f"❌ {campo}: {mensaje}")


# =========================================================
# SIDEBAR
# =========================================================

with st.sidebar:
    st.title("🛡️ Reportes ACM")
    usuario = cliente.sesion.usuario
    if cliente.sesion.activa and usuario:
        st.write(f"**{usuario.get('nombre_completo')}**")
        st.caption(usuario.get("rol", ""))
        paginas = ["📊 Panel", "📝 Nuevo reporte", "🔎 Buscar reportes"]
        if st.button("Cerrar sesión"):
            cliente.logout()
            st.rerun()
    else:
        paginas = ["🔐 Iniciar sesión", "🆕 Registrarse", "📝 Nuevo reporte", "🔎 Buscar reportes"]

    if st.session_state.get("ir_a") in paginas:
        st.session_state["pagina"] = st.session_state.pop("ir_a")
    pagina = st.radio("Navegación", paginas, key="pagina")

if st.session_state.get("aviso"):
    st.warning(f"⚠️ {st.session_state.pop('aviso')}")


# ======================================
# PÁGINA: LOGIN
# ======================================

if pagina == "🔐 Iniciar sesión":
    st.header("Iniciar sesión")

    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Contraseña", type="password")
        submit = st.form_submit_button("Ingresar")

    if submit:
        try:
            usuario = cliente.login(email, password)
            st.success(f"✅ Bienvenido, {usuario['nombre_completo']}")
            st.rerun()
        except ValidacionAPIError as e:
            mostrar_errores(e.errores)
        except AcmAPIError as e:
            st.error(f"❌ {e.mensaje}")

# ======================================
# PÁGINA: REGISTRO
# ======================================

elif pagina == "🆕 Registrarse":
    st.header("Registro de agente")
    registro: RegistroState = st.session_state["registro"]
    verificador: VerificadorDisponibilidad = st.session_state["verificador"]

    email = st.text_input("Email")
    cedula = st.text_input("Cédula", max_chars=10)
    if email != registro.email:
        verificador.email_cambiado(email)
    if cedula != registro.cedula:
        verificador.cedula_cambiada(cedula)

    for mensaje in registro.mensajes.values():
        st.warning(f"⚠️ {mensaje}")
    if registro.verificando_email or registro.verificando_cedula:
        st.caption("Verificando disponibilidad...")

    with st.form("registro_form"):
        nombre = st.text_input("Nombre completo")
        password = st.text_input("Contraseña", type="password")
        confirmar = st.text_input("Confirmar contraseña", type="password")
        telefono = st.text_input("Teléfono")
        cargo = st.text_input("Cargo")
        anio = st.text_input("Año de graduación", max_chars=4)
        submit = st.form_submit_button("Registrarse", disabled=not registro.puede_enviar)

    if submit:
        try:
            cliente.registrar(
                {
                    "email": email,
                    "password": password,
                    "confirmar_password": confirmar,
                    "nombre_completo": nombre,
                    "cedula": cedula,
                    "telefono": telefono,
                    "cargo": cargo,
                    "anio_graduacion": anio,
                }
            )
            verificador.cancelar()
            del st.session_state["registro"]
            del st.session_state["verificador"]
            st.success("✅ Cuenta creada")
            st.rerun()
        except ValidacionAPIError as e:
            mostrar_errores(e.errores)
        except ConflictoError as e:
            st.error(f"❌ {e.mensaje}")
            if e.usuario_existente:
                st.caption(f"Registrada a nombre de {e.usuario_existente.get('nombre')}")
        except AcmAPIError as e:
            st.error(f"❌ {e.mensaje}")

# ======================================
# PÁGINA: PANEL
# ======================================

elif pagina == "📊 Panel":
    st.header("Panel principal")

    try:
        panel = cliente.cargar_dashboard()
    except SesionExpiradaError as e:
        ir_a_login(e)

    for parte, mensaje in panel.errores.items():
        st.warning(f"⚠️ No se pudo cargar {parte}: {mensaje}")

    estadisticas = panel.estadisticas
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Reportes", estadisticas.get("total", 0))
    with col2:
        st.metric("Pendientes", estadisticas.get("por_estado", {}).get("pendiente", 0))
    with col3:
        st.metric("Zonas", len(estadisticas.get("por_zona", {})))

    if estadisticas.get("por_zona"):
        st.subheader("Reportes por zona")
        st.bar_chart(estadisticas["por_zona"])

    st.subheader("Reportes recientes")
    if not panel.reportes_recientes:
        st.info("ℹ️ No hay reportes todavía.")
    for reporte in panel.reportes_recientes:
        st.write(f"**{reporte['id']}** · {reporte['fecha']} · {reporte['zona']} · {reporte['estado']}")

# ======================================
# PÁGINA: NUEVO REPORTE
# ======================================

elif pagina == "📝 Nuevo reporte":
    st.header("Nuevo reporte de encargado de cuadra")
    if not cliente.sesion.activa:
        st.info("ℹ️ Sin sesión: el reporte se registrará como Usuario Público.")

    try:
        zonas = cliente.zonas_guayaquil()
        leyes = cliente.listar_leyes(publico=True)
    except AcmAPIError as e:
        st.error(f"❌ {e.mensaje}")
        zonas, leyes = {}, []

    with st.form("reporte_form"):
        col1, col2, col3 = st.columns(3)
        with col1:
            zona = st.selectbox("Zona", [""] + list(zonas))
        with col2:
            distrito = st.text_input("Distrito")
        with col3:
            circuito = st.text_input("Circuito")
        direccion = st.text_input("Dirección")
        col1, col2, col3 = st.columns(3)
        with col1:
            horario = st.text_input("Horario de jornada")
        with col2:
            hora = st.text_input("Hora del reporte")
        with col3:
            fecha = st.date_input("Fecha", value=date.today())
        novedad = st.text_area("Descripción de la novedad")
        seleccion = st.multiselect(
            "Leyes y normas aplicables", leyes, format_func=lambda ley: ley["nombre"]
        )
        archivos = st.file_uploader(
            "Imágenes", type=["png", "jpg", "jpeg", "webp"], accept_multiple_files=True
        )
        submit = st.form_submit_button("Enviar reporte")

    if submit:
        datos = {
            "zona": zona,
            "distrito": distrito,
            "circuito": circuito,
            "direccion": direccion,
            "horario_jornada": horario,
            "hora_reporte": hora,
            "fecha": fecha,
            "novedad": novedad,
        }
        imagenes = [(a.name, a.getvalue(), a.type) for a in archivos or []]
        try:
            reporte = cliente.crear_reporte(
                datos, imagenes, [{"ley_norma_id": ley["id"]} for ley in seleccion]
            )
            st.success(f"✅ Reporte {reporte['id']} creado")
        except ValidacionAPIError as e:
            mostrar_errores(e.errores)
        except SesionExpiradaError as e:
            ir_a_login(e)
        except AcmAPIError as e:
            st.error(f"❌ {e.mensaje}")

# ======================================
# PÁGINA: BÚSQUEDA
# ======================================

elif pagina == "🔎 Buscar reportes":
    st.header("Buscar reportes")
    busqueda: BusquedaState = st.session_state["busqueda"]
    publico = not cliente.sesion.activa

    with st.form("busqueda_form"):
        col1, col2 = st.columns(2)
        with col1:
            fecha_desde = st.date_input("Desde", value=None)
        with col2:
            fecha_hasta = st.date_input("Hasta", value=None)
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            zona = st.text_input("Zona")
        with col2:
            distrito = st.text_input("Distrito")
        with col3:
            circuito = st.text_input("Circuito")
        with col4:
            estado = st.selectbox("Estado", ESTADOS)
        submit = st.form_submit_button("Buscar")

    if submit:
        busqueda.filtros = {
            "fecha_desde": fecha_desde,
            "fecha_hasta": fecha_hasta,
            "zona": zona,
            "distrito": distrito,
            "circuito": circuito,
            "estado": estado,
        }
        busqueda.cargando = True
        try:
            if publico:
                cuerpo = cliente.buscar_reportes_publico(**busqueda.filtros)
            else:
                cuerpo = cliente.buscar_reportes(**busqueda.filtros)
            busqueda.aplicar(cuerpo.get("data") or [], cuerpo.get("total"))
        except SesionExpiradaError as e:
            ir_a_login(e)
        except AcmAPIError as e:
            busqueda.fallar(e.mensaje)

    if busqueda.error:
        st.error(f"❌ {busqueda.error}")
    elif busqueda.filtros:
        st.caption(f"{busqueda.total} reporte(s)")

    for reporte in busqueda.resultados:
        with st.expander(f"{reporte['id']} · {reporte['fecha']} · {reporte['zona']}"):
            st.write(reporte["novedad"])
            st.caption(f"Estado: {reporte['estado']} · Dirección: {reporte['direccion']}")
            col1, col2 = st.columns(2)
            for columna, formato, mime, extension in (
                (col1, "pdf", "application/pdf", "pdf"),
                (col2, "word", "application/vnd.openxmlformats-officedocument.wordprocessingml.document", "docx"),
            ):
                with columna:
                    try:
                        contenido = cliente.descargar_reporte(reporte["id"], formato, publico=publico)
                    except AcmAPIError as e:
                        st.error(f"❌ {e.mensaje}")
                        continue
                    st.download_button(
                        label=f"⬇️ Descargar {formato.upper()}",
                        data=contenido,
                        file_name=f"reporte-{reporte['id']}.{extension}",
                        mime=mime,
                        key=f"{formato}_{reporte['id']}",
                    )
