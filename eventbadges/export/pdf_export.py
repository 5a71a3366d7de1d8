"""PDF generation: paints a badge draw list onto one page with ReportLab."""

from io import BytesIO
from typing import BinaryIO, Optional, Union

from reportlab.lib.colors import HexColor
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as rl_canvas

from eventbadges.export.compositor import BarcodeImage, DrawList, Rectangle, TextRun
from eventbadges.utils.image_utils import top_left_to_pdf

FONTS = {"normal": "Helvetica", "bold": "Helvetica-Bold"}


def _draw_rectangle(c: rl_canvas.Canvas, rect: Rectangle, page_h: float) -> None:
    fill = rect.fill_color is not None
    stroke = rect.stroke_color is not None and rect.line_width > 0
    if not (fill or stroke):
        return
    if fill:
        c.setFillColor(HexColor(rect.fill_color))
    if stroke:
        c.setStrokeColor(HexColor(rect.stroke_color))
        c.setLineWidth(rect.line_width * mm)
    x, y = top_left_to_pdf(rect.x, rect.y, page_h, rect.height)
    c.rect(x, y, rect.width * mm, rect.height * mm, stroke=int(stroke), fill=int(fill))


def _draw_text(c: rl_canvas.Canvas, run: TextRun, page_h: float) -> None:
    # Font size is in points; y is the baseline
    c.setFillColor(HexColor("#000000"))
    c.setFont(FONTS.get(run.font_weight, FONTS["normal"]), run.font_size)
    x, y = top_left_to_pdf(run.x, run.y, page_h)
    if run.align == "center":
        c.drawCentredString(x, y, run.value)
    elif run.align == "right":
        c.drawRightString(x, y, run.value)
    else:
        c.drawString(x, y, run.value)


def _draw_barcode(c: rl_canvas.Canvas, image: BarcodeImage, page_h: float) -> None:
    x, y = top_left_to_pdf(image.x, image.y, page_h, image.height)
    c.drawImage(ImageReader(BytesIO(image.png)), x, y, image.width * mm, image.height * mm)


def render_pdf(
    draw_list: DrawList,
    output: Optional[Union[str, BinaryIO]] = None,
    title: str = "Badge",
) -> bytes:
    """Paint ``draw_list`` onto a single page sized to it and return the PDF.

    When ``output`` (a path or binary file object) is given the PDF is
    written there as well.
    """
    page_w, page_h = draw_list.page_width, draw_list.page_height
    buf = BytesIO()
    c = rl_canvas.Canvas(buf, pagesize=(page_w * mm, page_h * mm))
    c.setTitle(title)

    for item in draw_list.items:
        if isinstance(item, Rectangle):
            _draw_rectangle(c, item, page_h)
        elif isinstance(item, TextRun):
            _draw_text(c, item, page_h)
        elif isinstance(item, BarcodeImage):
            _draw_barcode(c, item, page_h)

    c.showPage()
    c.save()
    data = buf.getvalue()

    if isinstance(output, str):
        with open(output, "wb") as f:
            f.write(data)
    elif output is not None:
        output.write(data)
    return data
