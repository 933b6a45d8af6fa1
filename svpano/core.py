"""
Core module for downloading, assembling and post-processing Street View panoramas.

This module provides asynchronous functions to:

- Fetch a single tile with a fixed-delay retry policy (`fetch_tile`).
- Fetch every tile of a panorama with bounded concurrency (`fetch_tiles`).
- Stitch tiles into one equirectangular panorama (`stitch_tiles`).
- Download a full panorama (`download_panorama`) and extract views from it
  (`extract_view`, `extract_multiple_views`).
- Process a single panorama end to end: download, trim, extract views, save (`process_panoid`).
- Download and process many panoramas concurrently (`fetch_panos`).

A panorama is either complete or not produced at all: the first tile that
exhausts its retries cancels its siblings and becomes the single error raised
to the caller.

Dependencies:
- aiohttp for asynchronous HTTP requests
- PIL/Pillow for image decoding and stitching
- rich for colored logging
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from io import BytesIO

import aiohttp
from aiohttp import ClientTimeout

from PIL import Image

from rich import print
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union
import os

from .constants import (
    CONCURRENT_DOWNLOADS,
    DEFAULT_MAX_RETRIES,
    RETRY_DELAY,
    TILE_SIZE,
    TILE_TIMEOUT,
)
from .errors import (
    BodyReadError,
    DecodeError,
    DimensionMismatchError,
    IncompleteGridError,
    InvalidParameterError,
    RetryExhaustedError,
    SVPanoError,
    TransportError,
)
from .tiles import TileRequest, enumerate_tiles, grid_dims, iter_tile_requests, validate_zoom
from .views import ViewConfig, extract_view_from_panorama, extract_views_from_panorama
from .my_utils import crop_black_borders, save_img
from .save import SaveOptions


class Tile(NamedTuple):
    x: int
    y: int
    image: Image.Image


@dataclass(frozen=True)
class FetchConfig:
    """
    Tile fetching settings.

    Attributes:
        tile_size (int): Expected width and height of every tile in pixels.
        concurrency (int): Max tiles in flight for one panorama.
        max_retries (int): Retries per tile after the first attempt.
        retry_delay (float): Fixed pause in seconds between attempts.
        timeout (float): Total timeout in seconds of a single attempt.
    """
    tile_size: int = TILE_SIZE
    concurrency: int = CONCURRENT_DOWNLOADS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = RETRY_DELAY
    timeout: float = TILE_TIMEOUT

    def __post_init__(self):
        if self.tile_size <= 0:
            raise InvalidParameterError(f"tile_size must be positive, got {self.tile_size}")
        if self.concurrency < 1:
            raise InvalidParameterError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.max_retries < 0:
            raise InvalidParameterError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise InvalidParameterError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.timeout <= 0:
            raise InvalidParameterError(f"timeout must be positive, got {self.timeout}")


DEFAULT_FETCH_CONFIG = FetchConfig()


def decode_tile(data: bytes, tile_size: int = TILE_SIZE) -> Image.Image:
    """
    Decode tile bytes into an RGB image of the expected size.

    Raises:
        DecodeError: The bytes are not an image, or the image is not tile_size x tile_size.
    """
    try:
        tile = Image.open(BytesIO(data))
        tile.load()
    except (OSError, Image.DecompressionBombError) as error:
        raise DecodeError(f"invalid tile image ({len(data)} bytes): {error}") from error

    if tile.size != (tile_size, tile_size):
        size = tile.size
        tile.close()
        raise DecodeError(f"tile is {size[0]}x{size[1]}, expected {tile_size}x{tile_size}")

    if tile.mode != "RGB":
        rgb = tile.convert("RGB")
        tile.close()
        return rgb
    return tile


async def _attempt_tile(session: aiohttp.ClientSession, request: TileRequest, config: FetchConfig) -> Tile:
    try:
        async with session.get(request.url, timeout=ClientTimeout(total=config.timeout)) as response:
            if response.status != 200:
                raise TransportError(f"HTTP {response.status}")
            try:
                data = await response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as error:
                raise BodyReadError(f"failed reading body: {error!r}") from error
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as error:
        raise TransportError(f"request failed: {error!r}") from error

    return Tile(request.x, request.y, decode_tile(data, config.tile_size))


async def fetch_tile(
    session: aiohttp.ClientSession,
    request: TileRequest,
    sem_tile: asyncio.Semaphore,
    config: FetchConfig = DEFAULT_FETCH_CONFIG,
    sleep=asyncio.sleep,
) -> Tile:
    """
    Fetch and decode a single tile, retrying transient failures.

    Transport, body-read and decode failures are all retried after a fixed
    ``config.retry_delay`` pause, up to ``config.max_retries`` times. The
    semaphore slot is held for the tile's whole lifetime, retries included.

    Args:
        session (aiohttp.ClientSession): The active HTTP session.
        request (TileRequest): Tile address and URL.
        sem_tile (asyncio.Semaphore): Bounds the tiles in flight.
        config (FetchConfig): Retry, timeout and tile size settings.
        sleep: Coroutine function used for the pause between attempts.

    Returns:
        Tile: (x, y, image) on success.

    Raises:
        RetryExhaustedError: Every attempt failed; ``last_cause`` holds the last failure.
    """
    async with sem_tile:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await _attempt_tile(session, request, config)
            except (TransportError, DecodeError) as error:
                if attempt > config.max_retries:
                    print(f"[red][TILE ERROR] Failed after {attempt} attempts for tile ({request.x},{request.y}): {error}[/]")
                    raise RetryExhaustedError(request.x, request.y, attempt, error) from error

                print(f"[yellow][Retry] {attempt}/{config.max_retries} for tile ({request.x},{request.y}) in {config.retry_delay:.1f}s: {error}[/]")
                await sleep(config.retry_delay)


async def fetch_tiles(
    session: aiohttp.ClientSession,
    requests: Sequence[TileRequest],
    config: FetchConfig = DEFAULT_FETCH_CONFIG,
    sleep=asyncio.sleep,
) -> Dict[Tuple[int, int], Tile]:
    """
    Fetch all tiles concurrently, at most ``config.concurrency`` at a time.

    Returns:
        dict[(x, y), Tile]: Every requested tile keyed by its address.

    Raises:
        RetryExhaustedError: The first tile that failed for good. Remaining
        fetches are cancelled and tiles already fetched are released.
    """
    sem_tile = asyncio.Semaphore(config.concurrency)
    tasks = [
        asyncio.ensure_future(fetch_tile(session, request, sem_tile, config, sleep))
        for request in requests
    ]
    tiles = {}

    try:
        for next_done in asyncio.as_completed(tasks):
            tile = await next_done
            tiles[(tile.x, tile.y)] = tile
    except BaseException:
        for task in tasks:
            task.cancel()
        # includes tiles that finished but were never consumed above
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Tile):
                result.image.close()
        raise

    return tiles


def stitch_tiles(tiles: Iterable[Tile], zoom: int, tile_size: int = TILE_SIZE) -> Image.Image:
    """
    Combine the tiles of one zoom level into a single panorama.

    Args:
        tiles (Iterable[Tile]): Every tile of the grid, in any order.
        zoom (int): Zoom level the tiles belong to.
        tile_size (int): Expected tile width and height.

    Returns:
        PIL.Image.Image: RGB panorama of 2**zoom * tile_size by 2**(zoom - 1) * tile_size pixels.

    Raises:
        DimensionMismatchError: A tile has the wrong size.
        IncompleteGridError: Tiles are missing, duplicated or outside the grid.
    """
    tiles_x, tiles_y = grid_dims(zoom)
    by_address = {}
    for tile in tiles:
        address = (tile.x, tile.y)
        if address in by_address:
            raise IncompleteGridError(f"duplicate tile {address}")
        if not (0 <= tile.x < tiles_x and 0 <= tile.y < tiles_y):
            raise IncompleteGridError(f"tile {address} is outside the {tiles_x}x{tiles_y} grid")
        if tile.image.size != (tile_size, tile_size):
            raise DimensionMismatchError(tile.x, tile.y, tile.image.size, (tile_size, tile_size))
        by_address[address] = tile

    missing = [address for address in enumerate_tiles(zoom) if address not in by_address]
    if missing:
        raise IncompleteGridError(f"{len(missing)} of {tiles_x * tiles_y} tiles missing, first {missing[0]}")

    full_img = Image.new("RGB", (tiles_x * tile_size, tiles_y * tile_size))
    for x, y in enumerate_tiles(zoom):
        full_img.paste(by_address[(x, y)].image, (x * tile_size, y * tile_size))
    return full_img


async def download_panorama(
    session: aiohttp.ClientSession,
    panoid: str,
    zoom: int,
    config: FetchConfig = DEFAULT_FETCH_CONFIG,
    executor=None,
    sleep=asyncio.sleep,
) -> Image.Image:
    """
    Download every tile of a panorama and stitch them together.

    The zoom level is validated before any request is made.

    Args:
        session (aiohttp.ClientSession): Shared HTTP session.
        panoid (str): Panorama ID.
        zoom (int): Zoom level (1–7); zoom 3 gives 4096x2048.
        config (FetchConfig): Tile fetching settings.
        executor: Executor used for stitching, None for the loop default.

    Returns:
        PIL.Image.Image: Full RGB panorama.

    Raises:
        InvalidParameterError: Zoom out of range.
        RetryExhaustedError: A tile could not be fetched.
        AssemblyError: The fetched tiles do not form a valid grid.
    """
    validate_zoom(zoom)

    tiles = await fetch_tiles(session, iter_tile_requests(panoid, zoom), config, sleep)
    try:
        return await asyncio.get_running_loop().run_in_executor(
            executor, stitch_tiles, list(tiles.values()), zoom, config.tile_size
        )
    finally:
        for tile in tiles.values():
            tile.image.close()


async def extract_view(
    session: aiohttp.ClientSession,
    panorama_or_id: Union[str, Image.Image],
    view_config: ViewConfig,
    config: FetchConfig = DEFAULT_FETCH_CONFIG,
    executor=None,
    sleep=asyncio.sleep,
) -> Image.Image:
    """
    Extract one view, downloading the panorama at ``view_config.zoom`` if an ID is given.

    Cropping and resampling run in ``executor`` (None for the loop default).
    """
    loop = asyncio.get_running_loop()
    if isinstance(panorama_or_id, str):
        panorama = await download_panorama(session, panorama_or_id, view_config.zoom, config, executor, sleep)
        try:
            return await loop.run_in_executor(executor, extract_view_from_panorama, panorama, view_config)
        finally:
            panorama.close()

    return await loop.run_in_executor(executor, extract_view_from_panorama, panorama_or_id, view_config)


async def extract_multiple_views(
    session: aiohttp.ClientSession,
    panorama_or_id: Union[str, Image.Image],
    view_configs: Sequence[ViewConfig],
    config: FetchConfig = DEFAULT_FETCH_CONFIG,
    executor=None,
    sleep=asyncio.sleep,
) -> List[Image.Image]:
    """
    Extract several views from one panorama.

    When given an ID, the panorama is downloaded once, at the zoom of the first
    config. An empty config list returns an empty list without any request.
    Cropping and resampling run in ``executor`` (None for the loop default).
    """
    if not view_configs:
        return []

    loop = asyncio.get_running_loop()
    if isinstance(panorama_or_id, str):
        panorama = await download_panorama(session, panorama_or_id, view_configs[0].zoom, config, executor, sleep)
        try:
            return await loop.run_in_executor(executor, extract_views_from_panorama, panorama, view_configs)
        finally:
            panorama.close()

    return await loop.run_in_executor(executor, extract_views_from_panorama, panorama_or_id, view_configs)


def _view_name(panoid: str, index: int, view_config: ViewConfig) -> str:
    return f"{panoid}_view{index:02d}_h{view_config.heading:g}_p{view_config.pitch:g}"


def _check_view_zoom(view_configs: Optional[Sequence[ViewConfig]], zoom_level: int) -> None:
    """Views are cut from the panorama downloaded at ``zoom_level``; a different view zoom is an error."""
    for view_config in view_configs or ():
        if view_config.zoom != zoom_level:
            raise InvalidParameterError(
                f"view zoom {view_config.zoom} does not match panorama zoom {zoom_level}"
            )


async def process_panoid(
    session: aiohttp.ClientSession,
    panoid: str,
    sem_pano: asyncio.Semaphore,
    executor,
    zoom_level: int,
    output_dir: str,
    fetch_config: FetchConfig = DEFAULT_FETCH_CONFIG,
    save_options: SaveOptions = SaveOptions(),
    crop_borders: bool = False,
    view_configs: Optional[Sequence[ViewConfig]] = None,
) -> Union[dict, None]:
    """
    Download, post-process and save a single panorama.

    Steps:
        1. Fetch and stitch all tiles for the given panoid and zoom level.
        2. Optionally trim black bottom/right padding.
        3. Save the panorama, or, when view configs are given, save each view instead.
        4. Return metadata about the panorama.

    Args:
        session (aiohttp.ClientSession): Active HTTP session.
        panoid (str): Panorama ID to fetch.
        sem_pano (asyncio.Semaphore): Limits concurrent panorama downloads.
        executor: Executor for CPU-bound work (stitching, trimming, views).
        zoom_level (int): Zoom level (1–7).
        output_dir (str): Directory to save images in.
        fetch_config (FetchConfig): Tile fetching settings.
        save_options (SaveOptions): Output format and quality.
        crop_borders (bool): Trim black padding before saving.
        view_configs (Sequence[ViewConfig] | None): Views to extract and save.
            Their zoom must equal ``zoom_level``.

    Returns:
        dict | None: Metadata dictionary containing:
            - "panoid" (str): Panorama ID.
            - "zoom" (int): Zoom level used.
            - "size" (tuple[int, int]): Panorama width and height in pixels.
            - "tiles" (tuple[int, int]): Tile grid (x_tiles, y_tiles).
            - "file_size" (str): Size of the saved panorama, or None when only views were saved.
            - "views" (int): Number of views saved.
        Returns None if the panorama could not be fetched or processed.
    """
    loop = asyncio.get_running_loop()
    try:
        _check_view_zoom(view_configs, zoom_level)
        async with sem_pano:
            full_img = await download_panorama(session, panoid, zoom_level, fetch_config, executor)

            if crop_borders:
                trimmed = await loop.run_in_executor(executor, crop_black_borders, full_img)
                if trimmed is not full_img:
                    full_img.close()
                    full_img = trimmed

            img_size = full_img.size
            img_file_size = None
            views = []
            try:
                if view_configs:
                    views = await loop.run_in_executor(
                        executor, extract_views_from_panorama, full_img, view_configs
                    )
                    for index, (view, view_config) in enumerate(zip(views, view_configs)):
                        await loop.run_in_executor(
                            executor, save_img, view, output_dir,
                            _view_name(panoid, index, view_config), zoom_level, save_options
                        )
                else:
                    img_file_size = await loop.run_in_executor(
                        executor, save_img, full_img, output_dir, panoid, zoom_level, save_options
                    )
            finally:
                full_img.close()
                for view in views:
                    view.close()

            tiles_count = grid_dims(zoom_level)
            print(
                f"[green][OK] Panoid `{panoid}` | zoom {zoom_level} "
                f"| w*h {img_size[0]}x{img_size[1]} "
                f"| tiles: {tiles_count[0]}x{tiles_count[1]} "
                f"| views {len(views)} "
                f"| size {img_file_size}[/]"
            )
            return {
                "panoid": panoid,
                "zoom": zoom_level,
                "size": img_size,
                "tiles": tiles_count,
                "file_size": img_file_size,
                "views": len(views),
            }

    except RetryExhaustedError as error:
        print(f"[yellow][FAIL] Panoid `{panoid}` | {error} (may be expired, removed, or invalid)[/]")
        return None
    except (SVPanoError, OSError) as error:
        print(f"[red][PROCESSING ERROR] Panoid `{panoid}`: {error}[/]")
        return None


async def fetch_panos(
    sem_pano: asyncio.Semaphore,
    connector: aiohttp.TCPConnector,
    max_workers: int,
    zoom_level: int,
    panoids: list[str],
    output_dir: Union[str, None] = None,
    fetch_config: FetchConfig = DEFAULT_FETCH_CONFIG,
    save_options: SaveOptions = SaveOptions(),
    crop_borders: bool = False,
    view_configs: Optional[Sequence[ViewConfig]] = None,
) -> tuple[int, int, str]:
    """
    Download and process multiple panoramas concurrently.

    Args:
        sem_pano (asyncio.Semaphore): Controls concurrent pano downloads.
        connector (aiohttp.TCPConnector): Connector with connection limits for aiohttp.
        max_workers (int): Worker threads for CPU-bound image work.
        zoom_level (int): Zoom level (1–7).
        panoids (list[str]): Panorama IDs to fetch.
        output_dir (str | None): Output directory, defaults to the current directory.
        fetch_config, save_options, crop_borders, view_configs: Passed to `process_panoid`.

    Returns:
        tuple[int, int, str]: (total_panos, successful_panos, output_dir).

    Raises:
        InvalidParameterError: Zoom out of range, or a view zoom differs from
        ``zoom_level``; checked before any request.
    """
    validate_zoom(zoom_level)
    _check_view_zoom(view_configs, zoom_level)
    print("[green]| Running Scraper..[/]\n")

    if output_dir is None: output_dir = os.getcwd()

    async with aiohttp.ClientSession(connector=connector) as session:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            tasks = [
                process_panoid(
                    session, panoid, sem_pano, executor, zoom_level, output_dir,
                    fetch_config, save_options, crop_borders, view_configs,
                )
                for panoid in panoids
            ]
            tasks_res = await asyncio.gather(*tasks)

    success_panos = tuple(filter(lambda pano: pano is not None, tasks_res))

    return len(tasks), len(success_panos), output_dir
