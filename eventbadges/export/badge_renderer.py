"""Renders a badge draw list to a Pillow image for on-screen preview."""

from io import BytesIO

from PIL import Image, ImageDraw

from eventbadges import config
from eventbadges.export.compositor import BarcodeImage, DrawList, Rectangle, TextRun
from eventbadges.utils.fonts import load_font
from eventbadges.utils.image_utils import mm_to_pixels


def _draw_rectangle(draw: ImageDraw.ImageDraw, rect: Rectangle, dpi: int) -> None:
    box = [
        mm_to_pixels(rect.x, dpi),
        mm_to_pixels(rect.y, dpi),
        mm_to_pixels(rect.x + rect.width, dpi),
        mm_to_pixels(rect.y + rect.height, dpi),
    ]
    outline = rect.stroke_color if rect.line_width > 0 else None
    width = max(1, mm_to_pixels(rect.line_width, dpi)) if outline else 0
    draw.rectangle(box, fill=rect.fill_color, outline=outline, width=width)


def _draw_text(draw: ImageDraw.ImageDraw, run: TextRun, dpi: int) -> None:
    # Points to pixels at the preview resolution
    size = max(1, int(round(run.font_size * dpi / 72.0)))
    font = load_font(config.DEFAULT_FONT_FAMILY, size, bold=run.font_weight == "bold")

    # Layout y is the text baseline, as in the PDF
    anchor_map = {"left": "ls", "center": "ms", "right": "rs"}
    draw.text(
        (mm_to_pixels(run.x, dpi), mm_to_pixels(run.y, dpi)),
        run.value,
        fill="#000000",
        font=font,
        anchor=anchor_map.get(run.align, "ls"),
    )


def _paste_barcode(badge: Image.Image, image: BarcodeImage, dpi: int) -> None:
    size = (max(1, mm_to_pixels(image.width, dpi)), max(1, mm_to_pixels(image.height, dpi)))
    barcode = Image.open(BytesIO(image.png)).convert("RGB").resize(size, Image.Resampling.NEAREST)
    badge.paste(barcode, (mm_to_pixels(image.x, dpi), mm_to_pixels(image.y, dpi)))


def render_preview(draw_list: DrawList, dpi: int = config.PREVIEW_DPI) -> Image.Image:
    """Render a badge at ``dpi`` pixels per inch.

    Args:
        draw_list: Composed badge.
        dpi: Preview resolution.

    Returns:
        RGB image the size of the badge's paper.
    """
    badge = Image.new(
        "RGB",
        (mm_to_pixels(draw_list.page_width, dpi), mm_to_pixels(draw_list.page_height, dpi)),
        "white",
    )
    draw = ImageDraw.Draw(badge)

    for item in draw_list.items:
        if isinstance(item, Rectangle):
            _draw_rectangle(draw, item, dpi)
        elif isinstance(item, TextRun):
            _draw_text(draw, item, dpi)
        elif isinstance(item, BarcodeImage):
            _paste_barcode(badge, item, dpi)

    return badge
