from datetime import datetime
from io import BytesIO
from typing import Any, Dict

from docx import Document
from docx.enum.text import WD_PARAGRAPH_ALIGNMENT
from docx.shared import Pt, RGBColor

from .hoja_vida_pdf import (
    datos_personales_filas,
    texto_experiencia,
    texto_formacion,
    texto_idioma,
)
from .reporte_pdf import (
    ENCABEZADO_INSTITUCION,
    TITULO_REPORTE,
    campos_reporte,
    texto_ley,
    texto_reporta,
)
from .styles import LEMA_INSTITUCIONAL, PIE_SISTEMA

AZUL_INSTITUCIONAL = RGBColor(30, 58, 138)


def _nuevo_documento() -> Document:
    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Arial"
    style.font.size = Pt(11)
    return doc


def _centrado(doc: Document, texto: str, size: int = 9, bold: bool = False, italic: bool = False):
    para = doc.add_paragraph()
    para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
    run = para.add_run(texto)
    run.font.size = Pt(size)
    run.bold = bold
    run.italic = italic
    return para


def _tabla_campos(doc: Document, filas) -> None:
    tabla = doc.add_table(rows=len(filas), cols=2)
    tabla.style = "Table Grid"
    for i, (etiqueta, valor) in enumerate(filas):
        celda = tabla.rows[i].cells[0]
        celda.text = etiqueta
        celda.paragraphs[0].runs[0].bold = True
        tabla.rows[i].cells[1].text = str(valor)


def generar_reporte_docx(reporte: Dict[str, Any]) -> bytes:
    """
    Genera el reporte en formato Word (.docx) editable.

    Mismas secciones que el PDF; las imágenes se listan por nombre.

    Args:
        reporte: Proyección completa del reporte

    Returns:
        bytes: Contenido del archivo DOCX
    """
    doc = _nuevo_documento()

    encabezado = _centrado(doc, ENCABEZADO_INSTITUCION, size=13, bold=True)
    encabezado.runs[0].font.color.rgb = AZUL_INSTITUCIONAL
    titulo = doc.add_heading(TITULO_REPORTE, 1)
    titulo.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER

    _tabla_campos(doc, campos_reporte(reporte))

    doc.add_heading("Descripción de la novedad", 2)
    doc.add_paragraph(reporte.get("novedad") or "")

    reporta = doc.add_paragraph()
    reporta.add_run("Reporta: ").bold = True
    reporta.add_run(texto_reporta(reporte))

    leyes = reporte.get("leyes_normas") or []
    if leyes:
        doc.add_heading("LEYES Y NORMAS APLICABLES", 2)
        for asociacion in leyes:
            doc.add_paragraph(texto_ley(asociacion), style="List Bullet")

    imagenes = reporte.get("imagenes") or []
    if imagenes:
        doc.add_heading("IMÁGENES ADJUNTAS", 2)
        for imagen in imagenes:
            doc.add_paragraph(
                f"Imagen {imagen['orden']}: {imagen['nombre_archivo']}", style="List Number"
            )

    _centrado(doc, LEMA_INSTITUCIONAL, size=10, italic=True)
    _centrado(doc, reporte.get("nombre_completo") or "")
    if reporte.get("cedula"):
        _centrado(doc, f"C.I. {reporte['cedula']}")
    _centrado(doc, f"ID del reporte: {reporte['id']}", size=8)
    _centrado(doc, f"Generado: {datetime.now().strftime('%d/%m/%Y %H:%M')}", size=8)
    _centrado(doc, PIE_SISTEMA, size=8)

    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def generar_hoja_vida_docx(hoja_vida: Dict[str, Any]) -> bytes:
    """Hoja de vida en Word con las mismas secciones que el PDF."""
    doc = _nuevo_documento()

    titulo = doc.add_heading("HOJA DE VIDA", 0)
    titulo.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER

    filas = datos_personales_filas(hoja_vida)
    if filas:
        doc.add_heading("INFORMACIÓN PERSONAL", 1)
        _tabla_campos(doc, filas)

    if hoja_vida.get("formacion_academica"):
        doc.add_heading("FORMACIÓN ACADÉMICA", 1)
        for item in hoja_vida["formacion_academica"]:
            doc.add_paragraph(texto_formacion(item), style="List Bullet")

    if hoja_vida.get("experiencia_laboral"):
        doc.add_heading("EXPERIENCIA LABORAL", 1)
        for item in hoja_vida["experiencia_laboral"]:
            doc.add_paragraph().add_run(texto_experiencia(item)).bold = True
            for funcion in item.get("funciones") or []:
                doc.add_paragraph(str(funcion), style="List Bullet 2")

    if hoja_vida.get("cursos_capacitaciones"):
        doc.add_heading("CURSOS Y CAPACITACIONES", 1)
        for curso in hoja_vida["cursos_capacitaciones"]:
            partes = [curso.get("nombre"), curso.get("institucion"), curso.get("duracion"),
                      curso.get("año", curso.get("anio"))]
            doc.add_paragraph(" | ".join(str(p) for p in partes if p), style="List Bullet")

    habilidades = hoja_vida.get("habilidades") or {}
    if habilidades:
        doc.add_heading("HABILIDADES", 1)
        if habilidades.get("tecnicas"):
            doc.add_paragraph("Técnicas: " + ", ".join(map(str, habilidades["tecnicas"])))
        if habilidades.get("blandas"):
            doc.add_paragraph("Blandas: " + ", ".join(map(str, habilidades["blandas"])))
        if habilidades.get("idiomas"):
            doc.add_paragraph("Idiomas: " + ", ".join(texto_idioma(i) for i in habilidades["idiomas"]))

    if hoja_vida.get("referencias"):
        doc.add_heading("REFERENCIAS", 1)
        for ref in hoja_vida["referencias"]:
            partes = [ref.get("nombre"), ref.get("cargo"), ref.get("empresa"), ref.get("telefono")]
            doc.add_paragraph(" | ".join(str(p) for p in partes if p), style="List Bullet")

    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()
