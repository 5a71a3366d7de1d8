"""System font lookup for raster output (barcode captions, previews).

The PDF itself uses ReportLab's built-in Helvetica; Pillow needs a real
font file, so Helvetica is mapped to the closest installed sans face.
"""

import logging
import os
import sys
from typing import Dict, Optional

from PIL import ImageFont

logger = logging.getLogger(__name__)

# Cache: display name ("DejaVu Sans Bold") -> file path
_font_cache: Optional[Dict[str, str]] = None

# Metric-compatible stand-ins, tried in order
_SANS_FALLBACKS = ("Helvetica", "Arial", "Liberation Sans", "Nimbus Sans", "DejaVu Sans")


def _font_dirs():
    dirs = []
    if sys.platform == "win32":
        windir = os.environ.get("WINDIR", r"C:\Windows")
        dirs.append(os.path.join(windir, "Fonts"))
    else:
        for d in ("/usr/share/fonts", "/usr/local/share/fonts",
                  "/Library/Fonts", "/System/Library/Fonts",
                  os.path.expanduser("~/.local/share/fonts"),
                  os.path.expanduser("~/.fonts")):
            if os.path.isdir(d):
                # Linux fonts are often nested by foundry
                for root, _, files in os.walk(d):
                    if any(f.lower().endswith((".ttf", ".otf")) for f in files):
                        dirs.append(root)
    return dirs


def discover_fonts() -> Dict[str, str]:
    """Scan system font directories for .ttf/.otf files.

    Family and style come from the TrueType metadata. Returns a dict
    mapping display name to file path.
    """
    global _font_cache
    if _font_cache is not None:
        return _font_cache

    fonts: Dict[str, str] = {}
    for font_dir in _font_dirs():
        if not os.path.isdir(font_dir):
            continue
        for entry in os.scandir(font_dir):
            if not entry.is_file() or not entry.name.lower().endswith((".ttf", ".otf")):
                continue
            try:
                family, style = ImageFont.truetype(entry.path, size=12).getname()
            except (OSError, ValueError):
                continue
            if style and style.lower() not in ("regular", "book", "roman"):
                fonts[f"{family} {style}"] = entry.path
            else:
                fonts[family] = entry.path

    _font_cache = dict(sorted(fonts.items()))
    return _font_cache


def find_font_path(family: str, bold: bool = False) -> Optional[str]:
    """Best matching font file for a family, falling back to common sans faces."""
    fonts = discover_fonts()
    lowered = {name.lower(): path for name, path in fonts.items()}

    families = [family] + [f for f in _SANS_FALLBACKS if f != family]
    for fam in families:
        candidates = [f"{fam} Bold", fam] if bold else [fam]
        for candidate in candidates:
            path = lowered.get(candidate.lower())
            if path:
                return path
    return None


def load_font(family: str, size: int, bold: bool = False) -> ImageFont.FreeTypeFont:
    """Load a Pillow font, falling back to Pillow's bundled face."""
    path = find_font_path(family, bold)
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            logger.debug("Could not load font file %s", path)
    return ImageFont.load_default(size=size)
