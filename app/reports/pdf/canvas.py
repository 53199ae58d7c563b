from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas

from .styles import COLOR_GRAY, PIE_SISTEMA


class NumberedCanvas(canvas.Canvas):
    """
    Canvas con doble pasada para numeración "Página X de Y".

    ReportLab no conoce el total de páginas hasta el final:
    1. Primera pasada: guardar estados de cada página
    2. Segunda pasada: renderizar con el total conocido
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        num_pages = len(self._saved_page_states)

        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_page_footer(num_pages)
            super().showPage()

        super().save()

    def draw_page_footer(self, page_count: int) -> None:
        """Número de página a la derecha, sistema a la izquierda."""
        self.saveState()
        self.setFont("Helvetica", 8)
        self.setFillColor(COLOR_GRAY)

        self.drawString(2 * cm, 1.2 * cm, PIE_SISTEMA)
        self.drawRightString(A4[0] - 2 * cm, 1.2 * cm, f"Página {self._pageNumber} de {page_count}")

        self.restoreState()
