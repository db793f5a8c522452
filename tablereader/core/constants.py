"""Numeric constants shared by the recognition engine."""

APP_NAME = "table-reader"
VERSION = "1.0.0"

# Luminance weights (ITU-R BT.601)
LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114

# Template store
DEFAULT_TEMPLATE_SIZE = (35, 50)  # (width, height)
DEFAULT_TEMPLATE_THRESHOLD = 0.70
TEMPLATE_VERSION = "v1"
MIN_TEMPLATE_SIGMA = 1e-6

# Matcher
DEFAULT_SCAN_STRIDE = 2
DEFAULT_REFINE_RADIUS = 3
MIN_WINDOW_SIGMA = 1e-3
MIN_DENOMINATOR = 1e-6
VARIANCE_FLOOR = 1e-12

# Orchestrator
DEFAULT_MAX_WORKERS = 3
DEFAULT_DEBOUNCE_SECONDS = 0.1
DEFAULT_BAD_MATCH_THRESHOLD = 0.80

# Colour targets
DEFAULT_COLOR_TOLERANCE = 0.15

META_FILENAME = "meta.json"
PIXELS_FILENAME = "pixels.bin"
PROCESSED_FILENAME = "processed.png"

