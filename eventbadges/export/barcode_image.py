"""Code 128 barcode rasterization with Pillow.

ReportLab's Code128 widget does the symbol encoding (start code, code set
switching, checksum); the resulting bar/space pattern is painted here at
a whole number of pixels per module so scanners get crisp edges.
"""

from io import BytesIO
from typing import List, Tuple

from PIL import Image, ImageDraw
from reportlab.graphics.barcode.code128 import Code128

from eventbadges import config
from eventbadges.errors import BarcodeEncodingError
from eventbadges.utils.fonts import load_font


def encode_code128(code: str) -> List[Tuple[bool, int]]:
    """Return the symbol as (is_bar, width in modules) runs.

    Only printable ASCII is accepted.
    """
    if not code:
        raise BarcodeEncodingError("Cannot encode an empty barcode")
    bad = [c for c in code if not 32 <= ord(c) <= 126]
    if bad:
        raise BarcodeEncodingError(f"Unsupported characters for Code 128: {bad!r}")

    symbol = Code128(code, barWidth=1, quiet=0)
    symbol.validate()
    if not symbol.valid:
        raise BarcodeEncodingError(f"Invalid Code 128 value: {code!r}")
    try:
        symbol.encode()
        pattern = symbol.decompose()
    except (KeyError, IndexError) as e:
        raise BarcodeEncodingError(f"Failed to encode {code!r}: {e}") from e

    # Uppercase letters are bars, lowercase are spaces; 'a'/'A' is one module
    runs = []
    for c in pattern:
        if c.isupper():
            runs.append((True, ord(c) - ord("A") + 1))
        else:
            runs.append((False, ord(c) - ord("a") + 1))
    return runs


def render_code128(
    code: str,
    module_width: int = config.BARCODE_MODULE_WIDTH,
    height: int = config.BARCODE_HEIGHT,
    margin: int = config.BARCODE_MARGIN,
    show_text: bool = False,
    font_size: int = config.BARCODE_FONT_SIZE,
) -> Image.Image:
    """Render ``code`` as a black-on-white barcode image.

    With ``show_text`` the code is printed centered under the bars.
    """
    runs = encode_code128(code)
    bars_width = sum(w for _, w in runs) * module_width

    text_height = 0
    font = None
    if show_text:
        font = load_font(config.DEFAULT_FONT_FAMILY, font_size)
        text_height = font_size + 2

    img = Image.new("RGB", (bars_width + 2 * margin, height + text_height + 2 * margin), "white")
    draw = ImageDraw.Draw(img)

    x = margin
    for is_bar, width in runs:
        w = width * module_width
        if is_bar:
            draw.rectangle([x, margin, x + w - 1, margin + height - 1], fill="black")
        x += w

    if show_text:
        draw.text(
            (img.width / 2, margin + height + 2),
            code,
            fill="black",
            font=font,
            anchor="mt",
        )
    return img


def render_code128_png(code: str, **kwargs) -> bytes:
    buf = BytesIO()
    render_code128(code, **kwargs).save(buf, format="PNG")
    return buf.getvalue()
