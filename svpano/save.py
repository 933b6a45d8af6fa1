"""
Encoding and saving of panoramas and views.

Supports JPEG (quality 1–100), PNG (lossless) and WebP (quality 1–100 plus a
compression method / effort 0–6). Images are always written as 3-channel RGB.
"""
import os
from dataclasses import dataclass
from enum import Enum
from io import BytesIO

from PIL import Image

from .constants import (
    DEFAULT_JPEG_QUALITY,
    DEFAULT_WEBP_METHOD,
    DEFAULT_WEBP_QUALITY,
    JPEG_MAX_DIMENSION,
    WEBP_MAX_DIMENSION,
)
from .errors import EncodeError, InvalidParameterError


class ImageFormat(Enum):
    JPEG = "JPEG"
    PNG = "PNG"
    WEBP = "WEBP"

    @property
    def extension(self) -> str:
        return {"JPEG": "jpg", "PNG": "png", "WEBP": "webp"}[self.value]

    @classmethod
    def from_name(cls, name: str) -> "ImageFormat":
        """Parse a CLI style name (``jpeg``, ``jpg``, ``png``, ``webp``)."""
        key = name.strip().upper()
        if key == "JPG":
            key = "JPEG"
        try:
            return cls(key)
        except ValueError:
            raise InvalidParameterError(f"Unsupported image format: {name!r}") from None


@dataclass(frozen=True)
class SaveOptions:
    format: ImageFormat = ImageFormat.WEBP
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    webp_quality: int = DEFAULT_WEBP_QUALITY
    webp_method: int = DEFAULT_WEBP_METHOD

    def __post_init__(self):
        if not 1 <= self.jpeg_quality <= 100:
            raise InvalidParameterError(f"jpeg_quality must be in [1, 100], got {self.jpeg_quality}")
        if not 1 <= self.webp_quality <= 100:
            raise InvalidParameterError(f"webp_quality must be in [1, 100], got {self.webp_quality}")
        if not 0 <= self.webp_method <= 6:
            raise InvalidParameterError(f"webp_method must be in [0, 6], got {self.webp_method}")

    def encoder_params(self) -> dict:
        """Keyword arguments passed to ``PIL.Image.save`` for this format."""
        if self.format is ImageFormat.JPEG:
            return {"quality": self.jpeg_quality}
        if self.format is ImageFormat.WEBP:
            return {"quality": self.webp_quality, "method": self.webp_method}
        return {}


MAX_DIMENSIONS = {
    ImageFormat.JPEG: JPEG_MAX_DIMENSION,
    ImageFormat.WEBP: WEBP_MAX_DIMENSION,
}


def _prepare(img: Image.Image, options: SaveOptions) -> Image.Image:
    limit = MAX_DIMENSIONS.get(options.format)
    if limit is not None and max(img.size) > limit:
        raise EncodeError(
            f"{img.width}x{img.height} image exceeds the {options.format.value} limit of {limit} pixels"
        )
    return img if img.mode == "RGB" else img.convert("RGB")


def encode_panorama(img: Image.Image, options: SaveOptions = SaveOptions()) -> bytes:
    """
    Encode an image to bytes.

    Args:
        img (PIL.Image.Image): Image to encode.
        options (SaveOptions): Format and quality settings.

    Returns:
        bytes: Encoded image data.

    Raises:
        EncodeError: The image is too large for the format or the encoder failed.
    """
    rgb = _prepare(img, options)
    buf = BytesIO()
    try:
        rgb.save(buf, format=options.format.value, **options.encoder_params())
    except (ValueError, OSError) as error:
        raise EncodeError(f"{options.format.value} encoding failed: {error}") from error
    return buf.getvalue()


def save_panorama(img: Image.Image, path, options: SaveOptions = SaveOptions()) -> str:
    """
    Save an image to ``path``, creating parent directories as needed.

    Returns:
        str: The path written to.

    Raises:
        EncodeError: The image is too large for the format or the encoder rejected it.
    """
    rgb = _prepare(img, options)

    path = os.fspath(path)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    try:
        rgb.save(path, format=options.format.value, **options.encoder_params())
    except ValueError as error:
        raise EncodeError(f"{options.format.value} encoding failed: {error}") from error
    return path
