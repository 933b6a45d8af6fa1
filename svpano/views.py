"""
View extraction from equirectangular panoramas.

A view is described by a heading, pitch and field of view. It is mapped onto a
rectangular crop window of the panorama (x spans heading 0°..360°, y spans
pitch +90° at the top to -90° at the bottom) and optionally resampled to a
requested output size.

The crop is not seam-wrapped: a view centred near heading 0° or 360° is
truncated at the panorama edge instead of wrapping around.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from PIL import Image

from .constants import DEFAULT_ZOOM
from .errors import InvalidParameterError
from .tiles import validate_zoom


class Direction(Enum):
    """Cardinal view directions and their headings in degrees."""
    FRONT = 0
    RIGHT = 90
    BACK = 180
    LEFT = 270

    @property
    def heading(self) -> float:
        return float(self.value)

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class ViewConfig:
    """
    Parameters of one view extraction.

    Attributes:
        heading (float): Horizontal direction in degrees, [0, 360).
        fov (float): Horizontal field of view in degrees, (0, 180].
        pitch (float): Vertical tilt in degrees, [-90, 90]. Positive looks up.
        size (tuple[int, int] | None): Output (width, height). None keeps the native crop.
        zoom (int): Panorama zoom level to download when extracting from a panorama ID.
    """
    heading: float = 0.0
    fov: float = 90.0
    pitch: float = 0.0
    size: Optional[Tuple[int, int]] = None
    zoom: int = DEFAULT_ZOOM

    def __post_init__(self):
        if not 0 <= self.heading < 360:
            raise InvalidParameterError(f"heading must be in [0, 360), got {self.heading}")
        if not 0 < self.fov <= 180:
            raise InvalidParameterError(f"fov must be in (0, 180], got {self.fov}")
        if not -90 <= self.pitch <= 90:
            raise InvalidParameterError(f"pitch must be in [-90, 90], got {self.pitch}")
        if self.size is not None:
            if len(self.size) != 2 or any(
                isinstance(v, bool) or not isinstance(v, int) or v <= 0 for v in self.size
            ):
                raise InvalidParameterError(f"size must be two positive ints, got {self.size!r}")
            object.__setattr__(self, "size", tuple(self.size))
        validate_zoom(self.zoom)

    @classmethod
    def from_direction(cls, direction: Direction, **kwargs) -> "ViewConfig":
        return cls(heading=direction.heading, **kwargs)


def crop_window(pano_width: int, pano_height: int, config: ViewConfig) -> Tuple[int, int, int, int]:
    """
    Compute the crop box of a view inside a panorama.

    Args:
        pano_width (int): Panorama width in pixels (covers 360°).
        pano_height (int): Panorama height in pixels (covers 180°).
        config (ViewConfig): View parameters.

    Returns:
        Tuple[int, int, int, int]: (left, top, right, bottom), clamped to the
        panorama and never smaller than 1x1.
    """
    center_x = int((config.heading / 360.0) * pano_width)
    center_y = int(((90.0 - config.pitch) / 180.0) * pano_height)

    # square unless an output size says otherwise
    aspect_ratio = config.size[0] / config.size[1] if config.size else 1.0

    half_fov_h = config.fov / 2.0
    half_fov_v = half_fov_h / aspect_ratio

    # degrees * pixels per degree
    crop_width = max(1, int(2.0 * half_fov_h * pano_width / 360.0))
    crop_height = max(1, int(2.0 * half_fov_v * pano_height / 180.0))

    # saturating start, kept inside the image so the window cannot be empty
    left = min(max(center_x - crop_width // 2, 0), pano_width - 1)
    top = min(max(center_y - crop_height // 2, 0), pano_height - 1)

    right = min(left + crop_width, pano_width)
    bottom = min(top + crop_height, pano_height)

    return left, top, right, bottom


def extract_view_from_panorama(panorama: Image.Image, config: ViewConfig) -> Image.Image:
    """
    Extract a view from an already assembled panorama.

    The input image is left untouched, so the same panorama can be reused for
    any number of views.

    Args:
        panorama (PIL.Image.Image): Equirectangular panorama.
        config (ViewConfig): View parameters.

    Returns:
        PIL.Image.Image: RGB view, resized with Lanczos to ``config.size`` if set,
        otherwise at the native resolution of the crop.
    """
    box = crop_window(panorama.width, panorama.height, config)
    view = panorama.crop(box)

    if config.size is not None:
        view = view.resize(config.size, Image.Resampling.LANCZOS)

    if view.mode != "RGB":
        view = view.convert("RGB")
    return view


def extract_views_from_panorama(panorama: Image.Image, configs: Iterable[ViewConfig]) -> List[Image.Image]:
    """Extract one independent view per config, in order."""
    return [extract_view_from_panorama(panorama, config) for config in configs]
