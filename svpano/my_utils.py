"""
Utility module for Street View panorama processing.

This module provides helper functions and classes for:

- Timing code execution (`timer` context manager).
- Trimming black padding from panoramas (`crop_black_borders`).
- Loading datasets of panorama IDs (`open_dataset`).
- Parsing command-line arguments for the downloader (`parse_args`).
- Saving images and formatting file sizes (`save_img`, `format_size`).

Dependencies:
- numpy for pixel analysis
- PIL/Pillow for image handling
- argparse for CLI argument parsing
"""
import numpy as np
import time
import json
import argparse
import os
from PIL import Image

from .constants import (
    BLACK_LUMINANCE_THRESHOLD,
    CONCURRENT_DOWNLOADS,
    DEFAULT_ZOOM,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_WEBP_QUALITY,
    DEFAULT_WEBP_METHOD,
)
from .errors import EmptyResultError
from .save import ImageFormat, SaveOptions, save_panorama


class timer:
    """
    Context manager to measure elapsed execution time.

    >>> with timer() as t:
    ...     time.sleep(2)
    >>> t.time_elapsed
    '0h 0m 2.00s'
    """

    def __enter__(self):
        self.start = time.perf_counter()
        self.time_elapsed = None
        return self

    def __exit__(self, *args):
        self.interval = time.perf_counter() - self.start
        hrs, rem = divmod(self.interval, 3600)
        mins, secs = divmod(rem, 60)
        self.time_elapsed = f"{int(hrs)}h {int(mins)}m {secs:.2f}s"
        return False


def crop_black_borders(img: Image.Image, threshold: int = BLACK_LUMINANCE_THRESHOLD) -> Image.Image:
    """
    Remove near-black padding from the bottom and right edges of an image.

    Rows are scanned bottom-up for the last one holding a pixel brighter than
    ``threshold``; columns are then scanned right-to-left, looking only at the
    rows that survive the vertical crop. A crop is dropped if anything above the
    threshold is found in the region it would remove. Top and left edges are
    never touched.

    Args:
        img (PIL.Image.Image): Panorama or view to trim.
        threshold (int, optional): Max luminance still considered black. Defaults to 4.

    Returns:
        PIL.Image.Image: ``img`` itself when nothing is trimmed, otherwise a new cropped image.
    """
    luma = np.asarray(img.convert("L"))
    height, width = luma.shape
    content = luma > threshold

    rows = np.flatnonzero(content.any(axis=1))
    bottom = int(rows[-1]) + 1 if rows.size else height
    if bottom < height and content[bottom:].any():
        bottom = height

    cols = np.flatnonzero(content[:bottom].any(axis=0))
    right = int(cols[-1]) + 1 if cols.size else width
    if right < width and content[:bottom, right:].any():
        right = width

    if bottom == height and right == width:
        return img

    return img.crop((0, 0, right, bottom))


def open_dataset(dataset_location: str) -> list[str]:
    """
    Load a JSON file holding a list of panorama IDs.

    Args:
        dataset_location (str): Path to dataset JSON file.

    Returns:
        list[str]: Panorama IDs.

    Raises:
        EmptyResultError: The file contains no panorama IDs.
    """
    with open(dataset_location) as dataset:
        panoids = json.load(dataset)

    if not panoids:
        raise EmptyResultError(f"No panorama IDs found in {dataset_location}")
    return panoids


def parse_args(argv=None):
    """
    Parse command-line arguments for the panorama downloader.

    Arguments:
        --dataset (str, required): Path to dataset JSON file.
        --zoom (int, optional): Zoom level (1–7). (Default: 3)
        --max-pano (int, optional): Max concurrent pano downloads. (Default: 10)
        --max-tile (int, optional): Max concurrent tile downloads per pano. (Default: 8)
        --workers (int, optional): Max worker threads for image work. (Default: 4)
        --limit (int, optional): Limit panoids for testing. (Default: None)
        --output (str, optional): Output directory. (Default: cwd)
        --conn-limit (int, optional): Maximum TCP connections. (Default: 100)
        --format (str, optional): jpeg, png or webp. (Default: webp)
        --quality (int, optional): JPEG/WebP quality. (Default: format default)
        --webp-method (int, optional): WebP effort 0–6. (Default: 4)
        --crop-borders (flag): Trim black bottom/right padding before saving.
        --views (float list, optional): Headings to extract as views.
        --fov (float, optional): View field of view. (Default: 90)
        --pitch (float, optional): View pitch. (Default: 0)
        --view-size (int int, optional): View output width and height.

    Returns:
        argparse.Namespace: Parsed arguments object.
    """
    parser = argparse.ArgumentParser(
        description="Street View Panorama Downloader"
    )

    parser.add_argument("--dataset", type=str, required=True, help="Path to dataset.json")
    parser.add_argument("--zoom", type=int, default=DEFAULT_ZOOM, help="Zoom level (1-7)")
    parser.add_argument("--max-pano", type=int, default=10, help="Max concurrent pano downloads")
    parser.add_argument("--max-tile", type=int, default=CONCURRENT_DOWNLOADS, help="Max concurrent tile downloads per pano")
    parser.add_argument("--workers", type=int, default=4, help="Max worker threads for stitching and views")
    parser.add_argument("--limit", type=int, default=None, help="Limit panoids")
    parser.add_argument("--output", type=str, default=os.getcwd(), help="Output directory (default: current working directory)")
    parser.add_argument("--conn-limit", type=int, default=100, help="Maximum TCP connections (default: 100)")
    parser.add_argument("--format", type=str, default="webp", choices=["jpeg", "jpg", "png", "webp"], help="Output image format")
    parser.add_argument("--quality", type=int, default=None, help="JPEG/WebP quality 1-100")
    parser.add_argument("--webp-method", type=int, default=DEFAULT_WEBP_METHOD, help="WebP effort 0-6")
    parser.add_argument("--crop-borders", action="store_true", help="Trim black bottom/right padding")
    parser.add_argument("--views", type=float, nargs="+", default=None, help="Headings (degrees) of views to extract")
    parser.add_argument("--fov", type=float, default=90.0, help="View field of view in degrees")
    parser.add_argument("--pitch", type=float, default=0.0, help="View pitch in degrees")
    parser.add_argument("--view-size", type=int, nargs=2, default=None, metavar=("W", "H"), help="View output size")

    return parser.parse_args(argv)


def save_options_from_args(args) -> SaveOptions:
    """Build `SaveOptions` from the ``--format``, ``--quality`` and ``--webp-method`` flags."""
    fmt = ImageFormat.from_name(args.format)
    return SaveOptions(
        format=fmt,
        jpeg_quality=args.quality if args.quality is not None and fmt is ImageFormat.JPEG else DEFAULT_JPEG_QUALITY,
        webp_quality=args.quality if args.quality is not None and fmt is ImageFormat.WEBP else DEFAULT_WEBP_QUALITY,
        webp_method=args.webp_method,
    )


def format_size(num_bytes: int) -> str:
    """
    Convert a file size in bytes into a human-readable string.

    Args:
        num_bytes (int): File size in bytes.

    Returns:
        str: Formatted size (e.g., '512.00 KB', '384.00 MB').
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if num_bytes < 1024:
            return f"{num_bytes:.2f} {unit}"
        num_bytes /= 1024
    return f"{num_bytes:.2f} PB"


def save_img(img: Image.Image, output_dir: str, name: str, zoom_level: int, options: SaveOptions = SaveOptions()) -> str:
    """
    Save an image under ``output_dir/panos_z{zoom_level}/{name}.{ext}`` and return its file size.

    Args:
        img (Image): Image to save.
        output_dir (str): Base output directory.
        name (str): File name without extension (panorama ID, optionally with a view suffix).
        zoom_level (int): Zoom level used to organize the output directory.
        options (SaveOptions): Format and quality settings.

    Returns:
        str: File size of the saved image in a human-readable format.
    """
    zoom_output_folder = os.path.join(output_dir, f"panos_z{zoom_level}")
    out_path = os.path.join(zoom_output_folder, f"{name}.{options.format.extension}")

    save_panorama(img, out_path, options)
    return format_size(os.path.getsize(out_path))
