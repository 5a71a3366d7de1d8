"""Application settings for the badge service.

Values can be overridden through environment variables.
"""

import os

# Directory for the file-backed key-value store
DATA_DIR = os.environ.get(
    "EVENTBADGES_DATA_DIR", os.path.join(os.path.expanduser("~"), ".eventbadges")
)

LOG_LEVEL = os.environ.get("EVENTBADGES_LOG_LEVEL", "INFO").upper()

# Web server
PORT = int(os.environ.get("PORT", 5000))
DEBUG = os.environ.get("FLASK_DEBUG", "0") == "1"
MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5 MB request limit
ALLOWED_HOSTS = {"localhost", "127.0.0.1"}

# Layout persistence
LAYOUT_STORAGE_KEY = "badge-layout-config"

# Badge composition
BORDER_MARGIN_MM = 5.0
BORDER_LINE_WIDTH_MM = 0.5
DEFAULT_FONT_FAMILY = "Helvetica"

# Barcode generation
BARCODE_LENGTH = 12
STAFF_BADGE_ID_MAX = 20

# Barcode raster defaults (pixels)
BARCODE_MODULE_WIDTH = 2
BARCODE_HEIGHT = 60
BARCODE_MARGIN = 5
BARCODE_FONT_SIZE = 12

# Editor preview resolution
PREVIEW_DPI = 150
