from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table

from app.core.logger import get_logger

from .canvas import NumberedCanvas
from .styles import (
    LEMA_INSTITUCIONAL,
    PIE_SISTEMA,
    build_styles,
    create_field_table_style,
)

ENCABEZADO_INSTITUCION = "CUERPO DE AGENTES DE CONTROL MUNICIPAL"
TITULO_REPORTE = "REPORTE DE ENCARGADO DE CUADRA"

logger = get_logger()


def campos_reporte(reporte: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Pares etiqueta/valor del bloque de datos (compartido con Word e impresión)."""
    return [
        ("Zona", reporte.get("zona") or ""),
        ("Distrito", reporte.get("distrito") or ""),
        ("Circuito", reporte.get("circuito") or ""),
        ("Dirección", reporte.get("direccion") or ""),
        ("Horario de Jornada", reporte.get("horario_jornada") or ""),
        ("Hora del Reporte", reporte.get("hora_reporte") or ""),
        ("Fecha", reporte.get("fecha") or ""),
        ("Estado", (reporte.get("estado") or "").upper()),
        ("Coordenadas", reporte.get("coordenadas") or "No registradas"),
    ]


def texto_reporta(reporte: Dict[str, Any]) -> str:
    reporta = reporte.get("reporta")
    if reporta:
        return reporta
    return f"ACM {reporte.get('nombre_completo') or ''}".strip()


def texto_ley(asociacion: Dict[str, Any]) -> str:
    ley = asociacion["ley_norma"]
    texto = f"{ley['nombre']} ({ley['categoria']})"
    articulo = asociacion.get("articulo")
    if articulo:
        texto += f" - Art. {articulo['numero_articulo']}"
        if articulo.get("descripcion_corta"):
            texto += f": {articulo['descripcion_corta']}"
    return texto


def generar_reporte_pdf(
    reporte: Dict[str, Any],
    imagenes: Optional[List[Tuple[str, Optional[Path]]]] = None,
) -> bytes:
    """
    Genera el PDF de un reporte.

    Args:
        reporte: Proyección completa del reporte (reporte_service)
        imagenes: (nombre, ruta local o None) en orden; las que no tienen
            ruta legible se listan por nombre

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
        title=f"Reporte {reporte['id']}",
    )
    styles = build_styles()
    story = []

    # ==========================================
    # ENCABEZADO
    # ==========================================
    story.append(Paragraph(f"<b>{ENCABEZADO_INSTITUCION}</b>", styles["institucion"]))
    story.append(Paragraph(f"<b>{TITULO_REPORTE}</b>", styles["titulo"]))

    tabla = Table(
        [[etiqueta, Paragraph(escape(str(valor)), styles["normal"])]
         for etiqueta, valor in campos_reporte(reporte)],
        colWidths=[4.5 * cm, 12.5 * cm],
    )
    tabla.setStyle(create_field_table_style())
    story.append(tabla)

    # ==========================================
    # NOVEDAD
    # ==========================================
    story.append(Paragraph("Descripción de la novedad", styles["seccion"]))
    novedad = escape(reporte.get("novedad") or "").replace("\n", "<br/>")
    story.append(Paragraph(novedad, styles["cuerpo"]))
    story.append(Spacer(1, 0.4 * cm))
    story.append(Paragraph(f"<b>Reporta:</b> {escape(texto_reporta(reporte))}", styles["normal"]))

    # ==========================================
    # LEYES Y NORMAS
    # ==========================================
    leyes = reporte.get("leyes_normas") or []
    if leyes:
        story.append(Paragraph("LEYES Y NORMAS APLICABLES", styles["seccion"]))
        for asociacion in leyes:
            story.append(Paragraph(f"• {escape(texto_ley(asociacion))}", styles["cuerpo"]))

    # ==========================================
    # IMÁGENES
    # ==========================================
    if imagenes:
        story.append(Paragraph("IMÁGENES ADJUNTAS", styles["seccion"]))
        for indice, (nombre, ruta) in enumerate(imagenes, start=1):
            if ruta is not None and ruta.is_file():
                try:
                    imagen = Image(str(ruta))
                    imagen._restrictSize(12 * cm, 9 * cm)
                except (OSError, ValueError) as e:
                    # Imagen ilegible: queda solo su nombre
                    logger.warning("Imagen no embebible en PDF", reporte_id=reporte["id"],
                                   action="reporte_pdf_image_skip", archivo=nombre, error=str(e))
                else:
                    story.append(imagen)
            story.append(Paragraph(f"Imagen {indice}: {escape(nombre)}", styles["pie"]))
            story.append(Spacer(1, 0.3 * cm))

    # ==========================================
    # PIE
    # ==========================================
    story.append(Paragraph(LEMA_INSTITUCIONAL, styles["lema"]))
    story.append(Paragraph(escape(reporte.get("nombre_completo") or ""), styles["pie"]))
    if reporte.get("cedula"):
        story.append(Paragraph(f"C.I. {escape(reporte['cedula'])}", styles["pie"]))
    story.append(Spacer(1, 0.3 * cm))
    story.append(Paragraph(f"ID del reporte: {reporte['id']}", styles["pie"]))
    story.append(
        Paragraph(f"Generado: {datetime.now().strftime('%d/%m/%Y %H:%M')}", styles["pie"])
    )
    story.append(Paragraph(PIE_SISTEMA, styles["pie"]))

    doc.build(story, canvasmaker=NumberedCanvas)
    return buffer.getvalue()
