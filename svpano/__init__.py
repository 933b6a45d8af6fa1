"""
svpano - Street View Panorama downloader and view extractor

This package downloads Street View panoramas tile by tile, stitches them into
full equirectangular images and extracts perspective views from them.

Key features:
- Concurrently fetch panorama tiles using asyncio + aiohttp, with bounded
  concurrency and a fixed-delay retry per tile.
- Stitch tiles into complete panoramas (zoom 1–7, 1024x512 up to 65536x32768).
- Extract heading/pitch/FOV views, optionally resized with Lanczos.
- Trim black padding from the bottom and right edges.
- Save images as JPEG, PNG or WebP.

Example usage::

    import asyncio
    import aiohttp
    from svpano import download_panorama, extract_multiple_views, ViewConfig, Direction

    async def main():
        async with aiohttp.ClientSession() as session:
            pano = await download_panorama(session, "pano id", zoom=3)
            configs = [ViewConfig.from_direction(d, size=(1024, 1024)) for d in Direction]
            return await extract_multiple_views(session, pano, configs)

    views = asyncio.run(main())
"""
from .constants import (
    TILE_SIZE,
    MIN_ZOOM,
    MAX_ZOOM,
    DEFAULT_ZOOM,
    ZOOM_SIZES,
    CONCURRENT_DOWNLOADS,
    DEFAULT_MAX_RETRIES,
    RETRY_DELAY,
    BLACK_LUMINANCE_THRESHOLD,
)
from .errors import (
    SVPanoError,
    InvalidParameterError,
    TransportError,
    BodyReadError,
    DecodeError,
    AssemblyError,
    DimensionMismatchError,
    IncompleteGridError,
    RetryExhaustedError,
    EmptyResultError,
    EncodeError,
)
from .tiles import TileRequest, validate_zoom, grid_dims, panorama_size, make_tile_url, enumerate_tiles, iter_tile_requests
from .views import Direction, ViewConfig, crop_window, extract_view_from_panorama, extract_views_from_panorama
from .save import ImageFormat, SaveOptions, encode_panorama, save_panorama
from .my_utils import timer, crop_black_borders, open_dataset, parse_args, format_size, save_img
from .core import (
    Tile,
    FetchConfig,
    DEFAULT_FETCH_CONFIG,
    decode_tile,
    fetch_tile,
    fetch_tiles,
    stitch_tiles,
    download_panorama,
    extract_view,
    extract_multiple_views,
    process_panoid,
    fetch_panos,
)

__version__ = "1.0.0"
__all__ = [
    'TILE_SIZE',
    'MIN_ZOOM',
    'MAX_ZOOM',
    'DEFAULT_ZOOM',
    'ZOOM_SIZES',
    'CONCURRENT_DOWNLOADS',
    'DEFAULT_MAX_RETRIES',
    'RETRY_DELAY',
    'BLACK_LUMINANCE_THRESHOLD',
    'SVPanoError',
    'InvalidParameterError',
    'TransportError',
    'BodyReadError',
    'DecodeError',
    'AssemblyError',
    'DimensionMismatchError',
    'IncompleteGridError',
    'RetryExhaustedError',
    'EmptyResultError',
    'EncodeError',
    'TileRequest',
    'validate_zoom',
    'grid_dims',
    'panorama_size',
    'make_tile_url',
    'enumerate_tiles',
    'iter_tile_requests',
    'Direction',
    'ViewConfig',
    'crop_window',
    'extract_view_from_panorama',
    'extract_views_from_panorama',
    'ImageFormat',
    'SaveOptions',
    'encode_panorama',
    'save_panorama',
    'timer',
    'crop_black_borders',
    'open_dataset',
    'parse_args',
    'format_size',
    'save_img',
    'Tile',
    'FetchConfig',
    'DEFAULT_FETCH_CONFIG',
    'decode_tile',
    'fetch_tile',
    'fetch_tiles',
    'stitch_tiles',
    'download_panorama',
    'extract_view',
    'extract_multiple_views',
    'process_panoid',
    'fetch_panos',
]
