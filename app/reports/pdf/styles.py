from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import TableStyle

# Colores institucionales
COLOR_PRIMARY = HexColor("#1e3a8a")  # Azul oscuro
COLOR_SECONDARY = HexColor("#3b82f6")  # Azul
COLOR_GRAY = HexColor("#6b7280")  # Gris
COLOR_TABLE_ALT = HexColor("#f3f4f6")  # Gris claro para filas alternadas

LEMA_INSTITUCIONAL = '"Lealtad, Valor y Orden"'
PIE_SISTEMA = "SEGURA EP PRM XVI - Sistema de Reportes ACM"


def build_styles() -> dict:
    """Estilos de párrafo compartidos por los PDF de reportes y hojas de vida."""
    base = getSampleStyleSheet()
    return {
        "normal": base["Normal"],
        "institucion": ParagraphStyle(
            "Institucion",
            parent=base["Heading2"],
            fontSize=13,
            textColor=COLOR_PRIMARY,
            alignment=TA_CENTER,
            spaceAfter=4,
        ),
        "titulo": ParagraphStyle(
            "Titulo",
            parent=base["Heading1"],
            fontSize=17,
            textColor=COLOR_PRIMARY,
            alignment=TA_CENTER,
            spaceAfter=16,
        ),
        "seccion": ParagraphStyle(
            "Seccion",
            parent=base["Heading3"],
            fontSize=11,
            textColor=COLOR_PRIMARY,
            spaceBefore=12,
            spaceAfter=6,
        ),
        "cuerpo": ParagraphStyle(
            "Cuerpo",
            parent=base["Normal"],
            fontSize=10,
            leading=14,
            alignment=TA_JUSTIFY,
        ),
        "pie": ParagraphStyle(
            "Pie",
            parent=base["Normal"],
            fontSize=8,
            textColor=COLOR_GRAY,
            alignment=TA_CENTER,
        ),
        "lema": ParagraphStyle(
            "Lema",
            parent=base["Italic"],
            fontSize=10,
            textColor=COLOR_PRIMARY,
            alignment=TA_CENTER,
            spaceBefore=18,
        ),
    }


def create_field_table_style() -> TableStyle:
    """Tabla de dos columnas etiqueta/valor con filas alternadas."""
    return TableStyle(
        [
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("TEXTCOLOR", (0, 0), (0, -1), COLOR_PRIMARY),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.white, COLOR_TABLE_ALT]),
            ("GRID", (0, 0), (-1, -1), 0.5, COLOR_GRAY),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]
    )


def create_professional_table_style() -> TableStyle:
    """Tabla con cabecera de color y filas alternadas."""
    return TableStyle(
        [
            ("BACKGROUND", (0, 0), (-1, 0), COLOR_PRIMARY),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, COLOR_TABLE_ALT]),
            ("GRID", (0, 0), (-1, -1), 0.5, COLOR_GRAY),
            ("LINEBELOW", (0, 0), (-1, 0), 2, COLOR_PRIMARY),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
        ]
    )
