"""
Tile addressing for panorama downloads.

Maps a zoom level to its tile grid and enumerates the tiles (and their URLs)
that make up one panorama. Everything here is pure: no I/O, no state.
"""
from typing import List, NamedTuple, Tuple

from .constants import MAX_ZOOM, MIN_ZOOM, TILE_ENDPOINT, TILE_SIZE
from .errors import InvalidParameterError


class TileRequest(NamedTuple):
    x: int
    y: int
    url: str


def validate_zoom(zoom: int) -> int:
    """Raise `InvalidParameterError` unless ``zoom`` is an int in [MIN_ZOOM, MAX_ZOOM]."""
    if isinstance(zoom, bool) or not isinstance(zoom, int) or not MIN_ZOOM <= zoom <= MAX_ZOOM:
        raise InvalidParameterError(
            f"Zoom level must be between {MIN_ZOOM} and {MAX_ZOOM}, got {zoom!r}"
        )
    return zoom


def grid_dims(zoom: int) -> Tuple[int, int]:
    """
    Number of tiles along each axis for a zoom level.

    Args:
        zoom (int): Zoom level (1–7).

    Returns:
        Tuple[int, int]: (tiles_x, tiles_y) = (2**zoom, 2**(zoom - 1)).
    """
    validate_zoom(zoom)
    return 2 ** zoom, 2 ** (zoom - 1)


def panorama_size(zoom: int, tile_size: int = TILE_SIZE) -> Tuple[int, int]:
    """Pixel size (width, height) of the fully assembled panorama."""
    tiles_x, tiles_y = grid_dims(zoom)
    return tiles_x * tile_size, tiles_y * tile_size


def make_tile_url(panoid: str, zoom: int, x: int, y: int) -> str:
    return f"{TILE_ENDPOINT}?output=tile&panoid={panoid}&zoom={zoom}&x={x}&y={y}"


def enumerate_tiles(zoom: int) -> List[Tuple[int, int]]:
    """All (x, y) addresses of the grid in row-major order (y outer, x inner)."""
    tiles_x, tiles_y = grid_dims(zoom)
    return [(x, y) for y in range(tiles_y) for x in range(tiles_x)]


def iter_tile_requests(panoid: str, zoom: int) -> List[TileRequest]:
    """
    Build one `TileRequest` per tile of the panorama.

    Args:
        panoid (str): Panorama ID.
        zoom (int): Zoom level (1–7).

    Returns:
        list[TileRequest]: Requests in the same order as `enumerate_tiles`.
    """
    return [
        TileRequest(x, y, make_tile_url(panoid, zoom, x, y))
        for x, y in enumerate_tiles(zoom)
    ]
