TILE_ENDPOINT = "https://cbk0.google.com/cbk"

# Every tile served by the endpoint is a square of this many pixels.
TILE_SIZE = 512

MIN_ZOOM = 1
MAX_ZOOM = 7
DEFAULT_ZOOM = 3

# Full panorama size (width_px, height_px) per zoom level.
# Grid is 2**zoom tiles wide and 2**(zoom - 1) tiles tall.
ZOOM_SIZES = {
    1: (1024, 512),
    2: (2048, 1024),
    3: (4096, 2048),
    4: (8192, 4096),
    5: (16384, 8192),
    6: (32768, 16384),
    7: (65536, 32768),
}

# Tile fetching
CONCURRENT_DOWNLOADS = 8
DEFAULT_MAX_RETRIES = 6      # 7 attempts in total
RETRY_DELAY = 2.0            # seconds, fixed between attempts
TILE_TIMEOUT = 30.0          # seconds, per attempt

# Any luminance at or below this counts as black padding.
BLACK_LUMINANCE_THRESHOLD = 4

# Saving
DEFAULT_JPEG_QUALITY = 90
DEFAULT_WEBP_QUALITY = 85
DEFAULT_WEBP_METHOD = 4

# Largest width or height each encoder accepts.
WEBP_MAX_DIMENSION = 16383
JPEG_MAX_DIMENSION = 65535
