"""
Paquete de documentos (Sistema de Reportes ACM).

Generadores de PDF (reportlab) y Word (python-docx) para reportes y hojas de vida.
"""

from .canvas import NumberedCanvas
from .docx import generar_hoja_vida_docx, generar_reporte_docx
from .hoja_vida_pdf import generar_hoja_vida_pdf
from .reporte_pdf import campos_reporte, generar_reporte_pdf, texto_ley, texto_reporta
from .styles import (
    COLOR_GRAY,
    COLOR_PRIMARY,
    COLOR_SECONDARY,
    COLOR_TABLE_ALT,
    create_professional_table_style,
)

__all__ = [
    "NumberedCanvas",
    "COLOR_PRIMARY",
    "COLOR_SECONDARY",
    "COLOR_GRAY",
    "COLOR_TABLE_ALT",
    "create_professional_table_style",
    "campos_reporte",
    "texto_ley",
    "texto_reporta",
    "generar_reporte_pdf",
    "generar_reporte_docx",
    "generar_hoja_vida_pdf",
    "generar_hoja_vida_docx",
]
