from io import BytesIO
from typing import Any, Dict, List, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table

from .canvas import NumberedCanvas
from .styles import build_styles, create_field_table_style, create_professional_table_style

ETIQUETAS_DATOS_PERSONALES = [
    ("nombres_completos", "Nombres completos"),
    ("cedula", "Cédula"),
    ("fecha_nacimiento", "Fecha de nacimiento"),
    ("lugar_nacimiento", "Lugar de nacimiento"),
    ("nacionalidad", "Nacionalidad"),
    ("estado_civil", "Estado civil"),
    ("direccion", "Dirección"),
    ("telefono", "Teléfono"),
    ("email", "Email"),
]


def datos_personales_filas(hoja_vida: Dict[str, Any]) -> List[Tuple[str, str]]:
    datos = hoja_vida.get("datos_personales") or {}
    return [(etiqueta, str(datos[clave])) for clave, etiqueta in ETIQUETAS_DATOS_PERSONALES
            if datos.get(clave)]


def texto_formacion(item: Dict[str, Any]) -> str:
    partes = [item.get("nivel"), item.get("titulo"), item.get("institucion")]
    periodo = "-".join(str(p) for p in (item.get("anio_inicio"), item.get("anio_fin")) if p)
    texto = " | ".join(str(p) for p in partes if p)
    return f"{texto} ({periodo})" if periodo else texto


def texto_experiencia(item: Dict[str, Any]) -> str:
    periodo = " - ".join(str(p) for p in (item.get("fecha_inicio"), item.get("fecha_fin")) if p)
    texto = f"{item.get('cargo') or ''} en {item.get('empresa') or ''}".strip()
    return f"{texto} ({periodo})" if periodo else texto


def texto_idioma(idioma: Any) -> str:
    if isinstance(idioma, dict):
        return f"{idioma.get('idioma', '')} ({idioma.get('nivel', '')})"
    return str(idioma)


def generar_hoja_vida_pdf(hoja_vida: Dict[str, Any]) -> bytes:
    """
    Genera el PDF de una hoja de vida ya limpia (sin campos vacíos).

    Returns:
        bytes: Contenido del PDF
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=2 * cm,
        leftMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
        title="Hoja de vida",
    )
    styles = build_styles()
    story = [Paragraph("<b>HOJA DE VIDA</b>", styles["titulo"])]

    filas = datos_personales_filas(hoja_vida)
    if filas:
        story.append(Paragraph("INFORMACIÓN PERSONAL", styles["seccion"]))
        tabla = Table(
            [[etiqueta, Paragraph(escape(valor), styles["normal"])] for etiqueta, valor in filas],
            colWidths=[4.5 * cm, 12.5 * cm],
        )
        tabla.setStyle(create_field_table_style())
        story.append(tabla)

    formacion = hoja_vida.get("formacion_academica") or []
    if formacion:
        story.append(Paragraph("FORMACIÓN ACADÉMICA", styles["seccion"]))
        for item in formacion:
            story.append(Paragraph(f"• {escape(texto_formacion(item))}", styles["cuerpo"]))

    experiencia = hoja_vida.get("experiencia_laboral") or []
    if experiencia:
        story.append(Paragraph("EXPERIENCIA LABORAL", styles["seccion"]))
        for item in experiencia:
            story.append(Paragraph(f"<b>{escape(texto_experiencia(item))}</b>", styles["cuerpo"]))
            for funcion in item.get("funciones") or []:
                story.append(Paragraph(f"&nbsp;&nbsp;- {escape(str(funcion))}", styles["cuerpo"]))

    cursos = hoja_vida.get("cursos_capacitaciones") or []
    if cursos:
        story.append(Paragraph("CURSOS Y CAPACITACIONES", styles["seccion"]))
        tabla_datos = [["Curso", "Institución", "Duración", "Año"]]
        for curso in cursos:
            tabla_datos.append([
                Paragraph(escape(str(curso.get("nombre", ""))), styles["normal"]),
                Paragraph(escape(str(curso.get("institucion", ""))), styles["normal"]),
                str(curso.get("duracion", "")),
                str(curso.get("año", curso.get("anio", ""))),
            ])
        tabla = Table(tabla_datos, colWidths=[6 * cm, 5.5 * cm, 3 * cm, 2.5 * cm])
        tabla.setStyle(create_professional_table_style())
        story.append(tabla)

    habilidades = hoja_vida.get("habilidades") or {}
    if habilidades:
        story.append(Paragraph("HABILIDADES", styles["seccion"]))
        if habilidades.get("tecnicas"):
            story.append(Paragraph(
                "<b>Técnicas:</b> " + escape(", ".join(map(str, habilidades["tecnicas"]))),
                styles["cuerpo"]))
        if habilidades.get("blandas"):
            story.append(Paragraph(
                "<b>Blandas:</b> " + escape(", ".join(map(str, habilidades["blandas"]))),
                styles["cuerpo"]))
        if habilidades.get("idiomas"):
            story.append(Paragraph(
                "<b>Idiomas:</b> " + escape(", ".join(texto_idioma(i) for i in habilidades["idiomas"])),
                styles["cuerpo"]))

    referencias = hoja_vida.get("referencias") or []
    if referencias:
        story.append(Paragraph("REFERENCIAS", styles["seccion"]))
        for ref in referencias:
            partes = [ref.get("nombre"), ref.get("cargo"), ref.get("empresa"), ref.get("telefono")]
            story.append(Paragraph(
                "• " + escape(" | ".join(str(p) for p in partes if p)), styles["cuerpo"]))

    story.append(Spacer(1, 0.5 * cm))
    doc.build(story, canvasmaker=NumberedCanvas)
    return buffer.getvalue()
