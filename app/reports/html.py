"""
Vista HTML imprimible de un reporte.

Misma estructura que el PDF; el navegador se encarga de imprimir.
"""

from datetime import datetime
from html import escape
from typing import Any, Dict

from app.reports.pdf.reporte_pdf import (
    ENCABEZADO_INSTITUCION,
    TITULO_REPORTE,
    campos_reporte,
    texto_ley,
    texto_reporta,
)
from app.reports.pdf.styles import LEMA_INSTITUCIONAL, PIE_SISTEMA

ESTILO_IMPRESION = """
body { font-family: Arial, sans-serif; margin: 2cm; color: #111827; }
h1, h2 { color: #1e3a8a; text-align: center; }
h3 { color: #1e3a8a; margin-top: 24px; }
table { width: 100%; border-collapse: collapse; }
td { border: 1px solid #6b7280; padding: 4px 8px; font-size: 12px; }
td.etiqueta { font-weight: bold; width: 30%; color: #1e3a8a; }
.imagenes img { max-width: 12cm; max-height: 9cm; display: block; margin: 8px 0; }
.pie { text-align: center; font-size: 11px; color: #6b7280; }
.lema { text-align: center; font-style: italic; color: #1e3a8a; margin-top: 32px; }
@media print { .no-imprimir { display: none; } }
"""


def generar_reporte_html(reporte: Dict[str, Any]) -> str:
    """Devuelve la página HTML completa del reporte (lista para window.print)."""
    filas = "".join(
        f'<tr><td class="etiqueta">{escape(etiqueta)}</td><td>{escape(str(valor))}</td></tr>'
        for etiqueta, valor in campos_reporte(reporte)
    )
    novedad = escape(reporte.get("novedad") or "").replace("\n", "<br/>")

    partes = [
        "<!DOCTYPE html>",
        '<html lang="es"><head><meta charset="utf-8">',
        f"<title>Reporte {escape(reporte['id'])}</title>",
        f"<style>{ESTILO_IMPRESION}</style></head><body>",
        f"<h2>{ENCABEZADO_INSTITUCION}</h2>",
        f"<h1>{TITULO_REPORTE}</h1>",
        f"<table>{filas}</table>",
        "<h3>Descripción de la novedad</h3>",
        f"<p>{novedad}</p>",
        f"<p><b>Reporta:</b> {escape(texto_reporta(reporte))}</p>",
    ]

    leyes = reporte.get("leyes_normas") or []
    if leyes:
        partes.append("<h3>LEYES Y NORMAS APLICABLES</h3><ul>")
        partes.extend(f"<li>{escape(texto_ley(a))}</li>" for a in leyes)
        partes.append("</ul>")

    imagenes = reporte.get("imagenes") or []
    if imagenes:
        partes.append('<h3>IMÁGENES ADJUNTAS</h3><div class="imagenes">')
        for imagen in imagenes:
            partes.append(
                f'<img src="{escape(imagen["url_storage"])}" alt="{escape(imagen["nombre_archivo"])}">'
                f'<div class="pie">Imagen {imagen["orden"]}: {escape(imagen["nombre_archivo"])}</div>'
            )
        partes.append("</div>")

    partes.append(f'<div class="lema">{escape(LEMA_INSTITUCIONAL)}</div>')
    partes.append(f'<div class="pie">{escape(reporte.get("nombre_completo") or "")}</div>')
    if reporte.get("cedula"):
        partes.append(f'<div class="pie">C.I. {escape(reporte["cedula"])}</div>')
    partes.append(f'<div class="pie">ID del reporte: {escape(reporte["id"])}</div>')
    partes.append(
        f'<div class="pie">Generado: {datetime.now().strftime("%d/%m/%Y %H:%M")}</div>'
    )
    partes.append(f'<div class="pie">{PIE_SISTEMA}</div>')
    partes.append(
        '<p class="no-imprimir" style="text-align:center">'
        '<button onclick="window.print()">Imprimir</button></p>'
    )
    partes.append("</body></html>")
    return "\n".join(partes)
