"""
Servicio de hojas de vida: una por usuario, con plantilla estándar de ACM
y exportación a PDF / Word / JSON.
"""
import base64
import json
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from app.core.exceptions import (
    DocumentGenerationException,
    HojaVidaNoEncontradaException,
    PermisoDenegadoException,
    UsuarioNoEncontradoException,
    ValidacionException,
)
from app.core.security import AuthContext
from app.models.hoja_vida import HojaVida
from app.models.usuario import Usuario
from app.reports.pdf import generar_hoja_vida_docx, generar_hoja_vida_pdf
from app.services.base import BaseService

FUNCIONES_ACM = [
    "Control y vigilancia del espacio público",
    "Elaboración de reportes de novedades",
    "Aplicación de normas y ordenanzas municipales",
    "Colaboración con autoridades competentes",
]


def _vacio(valor: Any) -> bool:
    return valor is None or valor == "" or valor == [] or valor == {}


def limpiar_datos(valor: Any) -> Any:
    """
    Elimina recursivamente strings vacíos, nulos, listas y objetos vacíos.

    Un elemento de lista que queda sin ningún valor tras limpiarse
    también se descarta.
    """
    if isinstance(valor, dict):
        limpio = {}
        for clave, contenido in valor.items():
            contenido = limpiar_datos(contenido)
            if not _vacio(contenido):
                limpio[clave] = contenido
        return limpio
    if isinstance(valor, list):
        return [item for item in (limpiar_datos(v) for v in valor) if not _vacio(item)]
    return valor


def estructura_estandar() -> Dict[str, Any]:
    """Hoja de vida en blanco con las secciones y niveles habituales."""
    return {
        "datos_personales": {
            "nombres_completos": "",
            "cedula": "",
            "fecha_nacimiento": "",
            "lugar_nacimiento": "",
            "nacionalidad": "",
            "estado_civil": "",
            "direccion": "",
            "telefono": "",
            "email": "",
        },
        "formacion_academica": [
            {"nivel": nivel, "institucion": "", "titulo": "", "anio_inicio": "", "anio_fin": "",
             "finalizado": True}
            for nivel in ("Primaria", "Secundaria", "Universitaria")
        ],
        "experiencia_laboral": [
            {
                "empresa": "Municipio de Guayaquil",
                "cargo": "Agente de Control Municipal",
                "fecha_inicio": "",
                "fecha_fin": "",
                "funciones": [],
                "logros": [],
            }
        ],
        "cursos_capacitaciones": [],
        "habilidades": {"tecnicas": [], "blandas": [], "idiomas": []},
        "referencias": [],
        "informacion_adicional": {
            "disponibilidad_viajar": False,
            "licencia_conducir": "",
            "tipo_licencia": "",
            "discapacidad": False,
            "tipo_discapacidad": "",
        },
    }


class HojaVidaService(BaseService):
    """Hojas de vida de los agentes."""

    # =========================================================
    # GUARDADO
    # =========================================================

    def guardar(self, datos: Dict[str, Any], ctx: AuthContext) -> Dict[str, Any]:
        """
        Crea o reemplaza la hoja de vida del usuario de la sesión.

        Raises:
            ValidacionException: faltan nombres_completos o cedula (400)
        """
        datos = limpiar_datos(datos or {})
        personales = datos.get("datos_personales") or {}
        errores = {
            campo: "Campo requerido"
            for campo in ("nombres_completos", "cedula")
            if not personales.get(campo)
        }
        if errores:
            raise ValidacionException("Nombres completos y cédula son requeridos", errores=errores)

        secciones = {
            "datos_personales": personales,
            "formacion_academica": datos.get("formacion_academica") or [],
            "experiencia_laboral": datos.get("experiencia_laboral") or [],
            "cursos_capacitaciones": datos.get("cursos_capacitaciones") or [],
            "habilidades": datos.get("habilidades") or {"tecnicas": [], "blandas": [], "idiomas": []},
            "referencias": datos.get("referencias") or [],
            "informacion_adicional": datos.get("informacion_adicional") or {},
        }

        hoja = self.db.query(HojaVida).filter(HojaVida.usuario_id == ctx.usuario_id).first()
        creada = hoja is None
        if creada:
            hoja = HojaVida(usuario_id=ctx.usuario_id)
            self.db.add(hoja)
        for seccion, valor in secciones.items():
            setattr(hoja, seccion, valor)
        hoja.updated_at = datetime.utcnow()

        try:
            self.db.commit()
        except Exception as e:
            raise self._handle_exception(e, "guardar_hoja_vida")
        self.db.refresh(hoja)

        self._log_info("Hoja de vida guardada", action="hoja_vida_save",
                       usuario_id=ctx.usuario_id, creada=creada)
        return hoja.to_dict()

    # =========================================================
    # CONSULTA
    # =========================================================

    def mi_hoja_vida(self, ctx: AuthContext) -> Dict[str, Any]:
        """La guardada (con datos de contacto completados) o la plantilla."""
        usuario = self._usuario(ctx.usuario_id)
        hoja = self.db.query(HojaVida).filter(HojaVida.usuario_id == ctx.usuario_id).first()
        if hoja is None:
            plantilla = self._plantilla_basica(usuario)
            plantilla["es_plantilla"] = True
            return plantilla

        data = hoja.to_dict()
        personales = dict(data.get("datos_personales") or {})
        personales.setdefault("nombres_completos", usuario.nombre_completo)
        personales.setdefault("cedula", usuario.cedula)
        personales.setdefault("email", usuario.email)
        if usuario.telefono:
            personales.setdefault("telefono", usuario.telefono)
        data["datos_personales"] = personales
        data["es_plantilla"] = False
        return data

    def generar_plantilla(self, ctx: AuthContext) -> Dict[str, Any]:
        """Plantilla estándar rellenada con el perfil y contenido típico de un ACM."""
        usuario = self._usuario(ctx.usuario_id)
        plantilla = self._plantilla_basica(usuario)
        anio = date.today().year

        experiencia = plantilla["experiencia_laboral"][0]
        if usuario.fecha_ingreso:
            experiencia["fecha_inicio"] = usuario.fecha_ingreso
            experiencia["fecha_fin"] = "Actualidad"
        experiencia["cargo"] = usuario.cargo or "Agente de Control Municipal"
        experiencia["funciones"] = list(FUNCIONES_ACM)

        if usuario.anio_graduacion:
            for formacion in plantilla["formacion_academica"]:
                if formacion["nivel"] == "Universitaria":
                    formacion["anio_fin"] = usuario.anio_graduacion
                    formacion["anio_graduacion"] = usuario.anio_graduacion

        plantilla["cursos_capacitaciones"] = [
            {"nombre": "Curso de Control Municipal", "institucion": "Municipio de Guayaquil",
             "duracion": "40 horas", "año": str(anio)},
            {"nombre": "Manejo de Conflictos", "institucion": "Escuela de Formación ACM",
             "duracion": "20 horas", "año": str(anio - 1)},
        ]
        plantilla["habilidades"] = {
            "tecnicas": [
                "Conocimiento de leyes y ordenanzas municipales",
                "Elaboración de reportes técnicos",
                "Manejo de sistemas informáticos",
                "Primeros auxilios básicos",
            ],
            "blandas": [
                "Comunicación efectiva",
                "Trabajo en equipo",
                "Resolución de conflictos",
                "Responsabilidad y disciplina",
            ],
            "idiomas": [
                {"idioma": "Español", "nivel": "Nativo"},
                {"idioma": "Inglés", "nivel": "Básico"},
            ],
        }
        return plantilla

    def obtener(self, usuario_id: str, ctx: AuthContext) -> Dict[str, Any]:
        return self._hoja_autorizada(usuario_id, ctx).to_dict()

    def todas(self) -> List[Dict[str, Any]]:
        hojas = self.db.query(HojaVida).order_by(HojaVida.updated_at.desc()).all()
        return [h.to_dict() for h in hojas]

    def buscar(self, nombre: Optional[str] = None, cedula: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.db.query(HojaVida).join(Usuario, HojaVida.usuario_id == Usuario.id)
        if nombre:
            query = query.filter(Usuario.nombre_completo.ilike(f"%{nombre}%"))
        if cedula:
            query = query.filter(Usuario.cedula == cedula)
        return [h.to_dict() for h in query.order_by(HojaVida.updated_at.desc()).all()]

    def eliminar(self, usuario_id: str, ctx: AuthContext) -> None:
        hoja = self._hoja_autorizada(usuario_id, ctx)
        self.db.delete(hoja)
        self.db.commit()
        self._log_info("Hoja de vida eliminada", action="hoja_vida_delete",
                       usuario_id=usuario_id, por=ctx.usuario_id)

    # =========================================================
    # EXPORTACIÓN
    # =========================================================

    def documento(self, usuario_id: str, formato: str, ctx: AuthContext) -> Dict[str, Any]:
        """
        PDF o Word de la hoja de vida.

        Returns:
            {"contenido": bytes, "nombre_archivo": "hoja-vida-{cedula}.ext"}
        """
        hoja = self._hoja_autorizada(usuario_id, ctx)
        datos = limpiar_datos(hoja.to_dict())
        contenido = self._renderizar(datos, formato, usuario_id)
        cedula = (datos.get("datos_personales") or {}).get("cedula") or hoja.usuario.cedula
        extension = "pdf" if formato == "pdf" else "docx"
        return {"contenido": contenido, "nombre_archivo": f"hoja-vida-{cedula}.{extension}"}

    def exportar(self, usuario_id: str, formatos: List[str], ctx: AuthContext) -> Dict[str, Any]:
        """Varios formatos a la vez: pdf y word en base64, json como texto."""
        hoja = self._hoja_autorizada(usuario_id, ctx)
        datos = limpiar_datos(hoja.to_dict())

        archivos: Dict[str, str] = {}
        for formato in dict.fromkeys(formatos):
            if formato == "json":
                archivos["json"] = json.dumps(datos, ensure_ascii=False, indent=2)
            else:
                contenido = self._renderizar(datos, formato, usuario_id)
                archivos[formato] = base64.b64encode(contenido).decode("ascii")

        self._log_info("Hoja de vida exportada", action="hoja_vida_export",
                       usuario_id=usuario_id, formatos=list(archivos))
        return {
            "archivos": archivos,
            "formatos_generados": list(archivos),
            "hoja_vida": {
                "usuario": (datos.get("datos_personales") or {}).get("nombres_completos", "Usuario"),
                "ultima_actualizacion": datos.get("updated_at"),
            },
        }

    # =========================================================
    # HELPERS
    # =========================================================

    def _usuario(self, usuario_id: Optional[str]) -> Usuario:
        usuario = self.db.query(Usuario).filter(Usuario.id == usuario_id).first()
        if usuario is None:
            raise UsuarioNoEncontradoException(usuario_id)
        return usuario

    def _hoja_autorizada(self, usuario_id: str, ctx: AuthContext) -> HojaVida:
        if not ctx.puede_gestionar(usuario_id):
            raise PermisoDenegadoException("No tiene permisos para acceder a esta hoja de vida")
        hoja = self.db.query(HojaVida).filter(HojaVida.usuario_id == usuario_id).first()
        if hoja is None:
            raise HojaVidaNoEncontradaException(usuario_id)
        return hoja

    @staticmethod
    def _plantilla_basica(usuario: Usuario) -> Dict[str, Any]:
        plantilla = estructura_estandar()
        personales = plantilla["datos_personales"]
        personales["nombres_completos"] = usuario.nombre_completo or ""
        personales["cedula"] = usuario.cedula or ""
        personales["email"] = usuario.email or ""
        personales["telefono"] = usuario.telefono or ""
        personales["direccion"] = usuario.direccion or ""
        personales["fecha_nacimiento"] = usuario.fecha_nacimiento or ""
        personales["lugar_nacimiento"] = usuario.lugar_nacimiento or ""
        personales["estado_civil"] = usuario.estado_civil or ""
        return plantilla

    def _renderizar(self, datos: Dict[str, Any], formato: str, usuario_id: str) -> bytes:
        if formato not in ("pdf", "word"):
            raise ValidacionException(f"Formato no soportado: {formato}")
        try:
            if formato == "pdf":
                return generar_hoja_vida_pdf(datos)
            return generar_hoja_vida_docx(datos)
        except Exception as e:
            self._log_error("Error generando hoja de vida", error=e, action="hoja_vida_document_error",
                            usuario_id=usuario_id, formato=formato)
            raise DocumentGenerationException(formato, original_error=e)
