"""
A Python library for two-color ("duotone") rendering of raster images.
Provides luminance analysis with auto-contrast, an S-shaped contrast curve,
continuous duotone color mapping, and a halftone raster renderer with rotated
screens and a morphological join pass.
Use this as a standalone library or import it from your application.
"""

import logging
import math
import numbers
from enum import Enum
from typing import NamedTuple, Optional, Tuple, Union

import numpy as np
from PIL import Image
from scipy import ndimage

from tile_processor import Band, TileProcessor, halo_slice

__all__ = [
    # Errors
    'DuotoneError',
    'InvalidInputError',
    'InvalidParameterError',
    # Enumerations
    'RenderMode',
    'PaletteKind',
    'RasterStyle',
    'DotShape',
    # Data model
    'PixelBuffer',
    'LuminanceField',
    'ColorPair',
    'LevelAdjustments',
    'ScreenPreset',
    'RasterParams',
    'RenderSettings',
    'RenderResult',
    # Constants
    'MAX_DIMENSION',
    'PALETTES',
    'SCREEN_PRESETS',
    # Operations
    'calculate_dimensions',
    'compute_luminance',
    'analyze_luminance',
    'enhance_contrast',
    'normalize_luminance',
    'apply_duotone',
    'adjust_levels',
    'select_colors',
    'RasterRenderer',
    'DuotoneRenderer',
    'render',
    'render_image',
]

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

MAX_DIMENSION = 3000
# Rec.709 luma weights
LUMA_R, LUMA_G, LUMA_B = 0.2126, 0.7152, 0.0722
CONTRAST_EXPONENT = 1.8
JOIN_THRESHOLD = 0.3
# Smallest dot drawn; a cell_size of 1 at full tone reaches exactly this
MIN_DOT_RADIUS = 0.5


# -------------------- Errors --------------------

class DuotoneError(Exception):
    """Base class for every error raised by the duotone engine."""


class InvalidInputError(DuotoneError, ValueError):
    """Raised for zero-area images and malformed pixel buffers."""


class InvalidParameterError(DuotoneError, ValueError):
    """Raised for out-of-range render parameters, before any pixel is touched."""


# -------------------- Enumerations --------------------

class RenderMode(Enum):
    CONTINUOUS = "continuous"
    RASTER = "raster"


class PaletteKind(Enum):
    OPTIMIZED = "optimized"
    CLASSIC = "classic"


class RasterStyle(Enum):
    ROTATED_JOINED = "rotated_joined"
    DOT_GRID = "dot_grid"
    SCREEN_PRINT = "screen_print"


class DotShape(Enum):
    CIRCLE = "circle"
    SQUARE = "square"


# -------------------- Data Model --------------------

class PixelBuffer:
    """
    An RGBA8 image: ``data`` is a row-major (height, width, 4) uint8 array.
    The alpha channel is carried through every stage untouched.
    """

    def __init__(self, data: np.ndarray):
        data = np.asarray(data)
        if data.ndim != 3 or data.shape[2] != 4:
            raise InvalidInputError(
                f"Pixel data must have shape (height, width, 4), got {data.shape}")
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise InvalidInputError(
                f"Image has zero area ({data.shape[1]}x{data.shape[0]})")
        if data.dtype != np.uint8:
            raise InvalidInputError(f"Pixel data must be uint8, got {data.dtype}")
        self.data = data

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_bytes(cls, raw: bytes, width: int, height: int) -> "PixelBuffer":
        """
        Wrap a flat RGBA byte string.

        Raises:
            InvalidInputError: If the dimensions are not positive or the length is not width*height*4
        """
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Image has zero area ({width}x{height})")
        expected = width * height * 4
        if len(raw) != expected:
            raise InvalidInputError(
                f"Pixel buffer holds {len(raw)} bytes, expected {expected} for {width}x{height} RGBA")
        arr = np.frombuffer(bytes(raw), dtype=np.uint8).reshape((height, width, 4))
        return cls(arr.copy())

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Convert any PIL image to an RGBA pixel buffer."""
        if image.mode != 'RGBA':
            image = image.convert('RGBA')
        return cls(np.array(image, dtype=np.uint8))

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.data, 'RGBA')

    def to_bytes(self) -> bytes:
        return self.data.tobytes()

    def resized(self, width: int, height: int) -> "PixelBuffer":
        """Bilinear resample to (width, height). Returns a new buffer."""
        if (width, height) == self.size:
            return PixelBuffer(self.data.copy())
        resized = self.to_image().resize((width, height), Image.Resampling.BILINEAR)
        return PixelBuffer.from_image(resized)


class LuminanceField:
    """
    Per-pixel luminance of an image together with its observed range.
    """

    def __init__(self, values: np.ndarray, min_luminance: float, max_luminance: float):
        if max_luminance < min_luminance:
            raise ValueError("max_luminance must not be below min_luminance")
        self.values = values
        self.min_luminance = float(min_luminance)
        self.max_luminance = float(max_luminance)

    @property
    def is_flat(self) -> bool:
        return self.max_luminance == self.min_luminance

    def normalization_bounds(self) -> Tuple[float, float]:
        """
        Origin and span used for auto-contrast stretching.

        A flat image has no range of its own; it is placed on the full 8-bit
        scale instead, so black stays black, white stays white and mid-gray
        lands mid-tone.
        """
        if self.is_flat:
            return 0.0, 255.0
        return self.min_luminance, self.max_luminance - self.min_luminance

    def normalized(self) -> np.ndarray:
        origin, span = self.normalization_bounds()
        return normalize_luminance(self.values, origin, span)


class ColorPair(NamedTuple):
    shadow: RGB
    highlight: RGB

    def swapped(self) -> "ColorPair":
        return ColorPair(self.highlight, self.shadow)


PALETTES = {
    # Green / pink, tuned to stay distinguishable for color-blind viewers
    PaletteKind.OPTIMIZED: ColorPair(shadow=(22, 80, 39), highlight=(249, 159, 210)),
    PaletteKind.CLASSIC: ColorPair(shadow=(27, 96, 47), highlight=(247, 132, 197)),
}


class LevelAdjustments(NamedTuple):
    """
    Fixed tone adjustments applied after brightness/contrast in raster mode.
    The defaults reproduce the reference look.
    """
    shadows: float = 0.05
    highlights: float = 0.95
    gamma: float = 0.8
    lift_gain: float = 1.1
    lift_offset: float = 0.05

    def validate(self):
        for name in self._fields:
            if not _is_number(getattr(self, name)):
                raise InvalidParameterError(f"levels.{name} must be a finite number")
        if not 0.0 <= self.shadows < self.highlights <= 1.0:
            raise InvalidParameterError(
                "levels must satisfy 0 <= shadows < highlights <= 1, "
                f"got shadows={self.shadows}, highlights={self.highlights}")
        if self.gamma <= 0:
            raise InvalidParameterError(f"levels.gamma must be positive, got {self.gamma}")
        if self.lift_gain < 0:
            raise InvalidParameterError(f"levels.lift_gain must not be negative, got {self.lift_gain}")


class ScreenPreset(NamedTuple):
    angle: float
    shape: DotShape
    join: bool
    shadows: float
    highlights: float


SCREEN_PRESETS = {
    RasterStyle.ROTATED_JOINED: ScreenPreset(45.0, DotShape.CIRCLE, True, 0.05, 0.95),
    RasterStyle.DOT_GRID: ScreenPreset(0.0, DotShape.CIRCLE, False, 0.05, 0.95),
    RasterStyle.SCREEN_PRINT: ScreenPreset(0.0, DotShape.SQUARE, False, 0.20, 0.80),
}


def _is_number(value) -> bool:
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


class RasterParams:
    """
    Tuning for the halftone raster renderer.
    """

    @staticmethod
    def get_parameter_info():
        """
        Returns metadata about configurable parameters for raster mode.
        """
        return {
            'cell_size': {
                'type': 'int',
                'default': 8,
                'min': 1,
                'max': 64,
                'label': 'Raster Size',
                'description': 'Distance between dot centers in pixels (smaller = finer detail)'
            },
            'brightness': {
                'type': 'float',
                'default': 1.3,
                'min': 0.5,
                'max': 2.0,
                'step': 0.1,
                'label': 'Brightness',
                'description': 'Gain applied to normalized luminance before the contrast curve'
            },
            'contrast': {
                'type': 'float',
                'default': 1.0,
                'min': 0.5,
                'max': 3.0,
                'step': 0.1,
                'label': 'Contrast',
                'description': 'Inverse-power gain after the contrast curve (higher = lighter mid-tones)'
            },
            'style': {
                'type': 'choice',
                'default': RasterStyle.ROTATED_JOINED.value,
                'choices': [style.value for style in RasterStyle],
                'label': 'Screen Style',
                'description': 'rotated_joined = 45° screen with ink spread, '
                               'dot_grid = plain dots, screen_print = solid blocks'
            }
        }

    def __init__(self,
                 cell_size: int = 8,
                 brightness: float = 1.3,
                 contrast: float = 1.0,
                 style: Union[RasterStyle, str] = RasterStyle.ROTATED_JOINED,
                 levels: Optional[LevelAdjustments] = None):
        """
        Args:
            cell_size: Grid pitch of the halftone screen in pixels
            brightness: Multiplicative gain before the contrast curve
            contrast: Output of the contrast curve is raised to 1/contrast
            style: Screen style preset
            levels: Tone adjustments; None uses the style's clip points with default gamma/lift
        """
        try:
            self.style = RasterStyle(style)
        except ValueError:
            raise InvalidParameterError(f"Unknown raster style: {style!r}") from None
        self.cell_size = cell_size
        self.brightness = brightness
        self.contrast = contrast
        self.levels = levels

    @property
    def preset(self) -> ScreenPreset:
        return SCREEN_PRESETS[self.style]

    def resolved_levels(self) -> LevelAdjustments:
        if self.levels is not None:
            return self.levels
        preset = self.preset
        return LevelAdjustments(shadows=preset.shadows, highlights=preset.highlights)

    def validate(self):
        """
        Raises:
            InvalidParameterError: If any parameter is out of range
        """
        if isinstance(self.cell_size, bool) or not isinstance(self.cell_size, numbers.Integral):
            raise InvalidParameterError(f"cell_size must be an integer, got {self.cell_size!r}")
        if self.cell_size < 1:
            raise InvalidParameterError(f"cell_size must be at least 1, got {self.cell_size}")
        if not _is_number(self.brightness) or self.brightness <= 0:
            raise InvalidParameterError(f"brightness must be positive, got {self.brightness!r}")
        if not _is_number(self.contrast) or self.contrast <= 0:
            raise InvalidParameterError(f"contrast must be positive, got {self.contrast!r}")
        self.resolved_levels().validate()

    def get_current_parameters(self):
        """Returns current parameter values."""
        return {
            'cell_size': self.cell_size,
            'brightness': self.brightness,
            'contrast': self.contrast,
            'style': self.style.value
        }


# -------------------- Dimension Normalizer --------------------

def _round_half_up(value):
    return np.floor(value + 0.5)


def calculate_dimensions(original_width: int, original_height: int,
                         max_dimension: int = MAX_DIMENSION) -> Tuple[int, int]:
    """
    Fit (width, height) inside a max_dimension square, preserving aspect ratio.
    Images already within bounds are returned unchanged.
    """
    if original_width <= max_dimension and original_height <= max_dimension:
        return original_width, original_height
    scale = max_dimension / max(original_width, original_height)
    width = max(1, int(_round_half_up(original_width * scale)))
    height = max(1, int(_round_half_up(original_height * scale)))
    return width, height


# -------------------- Luminance Analyzer --------------------

def compute_luminance(pixels: np.ndarray) -> np.ndarray:
    """Rec.709 luminance of the RGB channels of an (H, W, >=3) array, as float64."""
    rgb = pixels[..., :3].astype(np.float64)
    return LUMA_R * rgb[..., 0] + LUMA_G * rgb[..., 1] + LUMA_B * rgb[..., 2]


def _luminance_rows(band: Band, pixels: np.ndarray) -> np.ndarray:
    y0, y1 = band
    return compute_luminance(pixels[y0:y1])


def analyze_luminance(buffer: PixelBuffer,
                      tiles: Optional[TileProcessor] = None) -> LuminanceField:
    """
    Compute the luminance field of a buffer and its [min, max] range.
    """
    if tiles is None:
        values = compute_luminance(buffer.data)
    else:
        values = tiles.map_rows(_luminance_rows, buffer.height, pixels=buffer.data)
    return LuminanceField(values, values.min(), values.max())


def normalize_luminance(values: np.ndarray, origin: float, span: float) -> np.ndarray:
    """Auto-contrast stretch to [0, 1]."""
    return np.clip((values - origin) / span, 0.0, 1.0)


# -------------------- Contrast Curve --------------------

def enhance_contrast(value):
    """
    Odd-symmetric S-curve around 0.5 that pushes values toward 0 and 1.
    Accepts a scalar or an ndarray with values in [0, 1].
    """
    v = np.asarray(value, dtype=np.float64)
    low = np.power(np.clip(v * 2.0, 0.0, None), CONTRAST_EXPONENT) / 2.0
    high = 1.0 - np.power(np.clip((1.0 - v) * 2.0, 0.0, None), CONTRAST_EXPONENT) / 2.0
    result = np.where(v < 0.5, low, high)
    if result.ndim == 0:
        return float(result)
    return result


# -------------------- Duotone Color Mapper --------------------

def select_colors(kind: Union[PaletteKind, str] = PaletteKind.OPTIMIZED,
                  reversed: bool = False,
                  custom: Optional[ColorPair] = None) -> ColorPair:
    """
    Pick the shadow/highlight pair for a render.

    Args:
        kind: Named palette
        reversed: Swap shadow and highlight
        custom: Explicit pair overriding the named palette

    Returns:
        ColorPair to render with
    """
    if custom is not None:
        colors = ColorPair(tuple(custom.shadow), tuple(custom.highlight))
        for color in colors:
            if len(color) != 3 or not all(
                    isinstance(c, numbers.Integral) and 0 <= c <= 255 for c in color):
                raise InvalidParameterError(f"Colors must be three 0-255 integers, got {color!r}")
    else:
        try:
            colors = PALETTES[PaletteKind(kind)]
        except ValueError:
            raise InvalidParameterError(f"Unknown palette: {kind!r}") from None
    return colors.swapped() if reversed else colors


def apply_duotone(pixels: np.ndarray, luminance: np.ndarray,
                  origin: float, span: float, colors: ColorPair) -> np.ndarray:
    """
    Continuous duotone: blend shadow→highlight by the enhanced, normalized luminance.

    Args:
        pixels: (H, W, 4) uint8 source rows; alpha is copied through
        luminance: (H, W) luminance of the same rows
        origin: Luminance mapped to 0
        span: Luminance range mapped to [0, 1]
        colors: Shadow/highlight pair

    Returns:
        New (H, W, 4) uint8 array
    """
    t = enhance_contrast(normalize_luminance(luminance, origin, span))
    shadow = np.asarray(colors.shadow, dtype=np.float64)
    highlight = np.asarray(colors.highlight, dtype=np.float64)
    rgb = _round_half_up(shadow + t[..., np.newaxis] * (highlight - shadow))

    out = pixels.copy()
    out[..., :3] = rgb.astype(np.uint8)
    return out


def _duotone_rows(band: Band, pixels: np.ndarray, luminance: np.ndarray,
                  origin: float, span: float, colors: ColorPair) -> np.ndarray:
    y0, y1 = band
    return apply_duotone(pixels[y0:y1], luminance[y0:y1], origin, span, colors)


# -------------------- Raster/Halftone Renderer --------------------

def adjust_levels(luminance: np.ndarray, origin: float, span: float,
                  brightness: float, contrast: float,
                  levels: LevelAdjustments = LevelAdjustments()) -> np.ndarray:
    """
    Tone chain used by the raster renderer. Each step works on the clamped
    output of the previous one; the order is part of the look.

    Returns:
        Adjusted grayscale in [0, 255] as float64
    """
    v = normalize_luminance(luminance, origin, span)
    v = np.clip(v * brightness, 0.0, 1.0)
    v = enhance_contrast(v)
    v = np.power(v, 1.0 / contrast)
    v = np.clip((v - levels.shadows) / (levels.highlights - levels.shadows), 0.0, 1.0)
    v = np.power(v, 1.0 / levels.gamma)
    v = np.clip(v * levels.lift_gain + levels.lift_offset, 0.0, 1.0)
    return v * 255.0


def _level_rows(band: Band, luminance: np.ndarray, **kwargs) -> np.ndarray:
    y0, y1 = band
    return adjust_levels(luminance[y0:y1], **kwargs)


def _threshold_rows(band: Band, adjusted: np.ndarray, cell_size: int,
                    angle: float, shape: DotShape) -> np.ndarray:
    """
    Halftone dots for a band of rows.

    Pixel centers are rotated about the image center and bucketed into cells
    laid out from the image origin, so an upright screen has cell centers at
    ``i * cell_size + cell_size / 2`` whatever the image size. Each cell's dot
    radius comes from the adjusted grayscale at the cell center, clamped into
    the image. Dots with a radius under half a pixel are not drawn.
    """
    y0, y1 = band
    h, w = adjusted.shape
    theta = math.radians(angle)
    cos_a, sin_a = math.cos(theta), math.sin(theta)
    cx, cy = w / 2.0, h / 2.0

    ys, xs = np.mgrid[y0:y1, 0:w]
    dx = xs + 0.5 - cx
    dy = ys + 0.5 - cy
    screen_x = dx * cos_a + dy * sin_a + cx
    screen_y = -dx * sin_a + dy * cos_a + cy

    center_x = (np.floor(screen_x / cell_size) + 0.5) * cell_size
    center_y = (np.floor(screen_y / cell_size) + 0.5) * cell_size

    # Cell center back in image space
    du = center_x - cx
    dv = center_y - cy
    sample_x = du * cos_a - dv * sin_a + cx
    sample_y = du * sin_a + dv * cos_a + cy
    sample_x = np.clip(np.floor(sample_x), 0, w - 1).astype(np.intp)
    sample_y = np.clip(np.floor(sample_y), 0, h - 1).astype(np.intp)
    radius = adjusted[sample_y, sample_x] / 255.0 * cell_size / 2.0

    off_x = screen_x - center_x
    off_y = screen_y - center_y
    if shape is DotShape.SQUARE:
        dist = np.maximum(np.abs(off_x), np.abs(off_y))
    else:
        dist = np.sqrt(off_x ** 2 + off_y ** 2)
    return (radius >= MIN_DOT_RADIUS) & (dist <= radius)


def _join_rows(band: Band, threshold: np.ndarray, kernel: int) -> np.ndarray:
    """
    Box-filter binarization: a pixel is on when more than JOIN_THRESHOLD of the
    in-bounds pixels in its (2*kernel+1)^2 window are on.
    """
    h, w = threshold.shape
    source_rows, crop_rows = halo_slice(band, kernel, h)
    window = threshold[source_rows].astype(np.int32)

    ones = np.ones(2 * kernel + 1)
    counts = ndimage.correlate1d(window, ones, axis=0, mode='constant', cval=0)
    counts = ndimage.correlate1d(counts, ones, axis=1, mode='constant', cval=0)
    counts = counts[crop_rows]

    y0, y1 = band
    rows = np.arange(y0, y1)
    cols = np.arange(w)
    rows_in = np.minimum(h - 1, rows + kernel) - np.maximum(0, rows - kernel) + 1
    cols_in = np.minimum(w - 1, cols + kernel) - np.maximum(0, cols - kernel) + 1
    totals = np.outer(rows_in, cols_in)
    return counts / totals > JOIN_THRESHOLD


class RasterRenderer:
    """
    Converts a luminance field into a binary shadow/highlight halftone.

    Stages, each fully materialized before the next:
      1) level adjustment of the auto-contrasted luminance
      2) thresholding against per-cell dots on a (possibly rotated) screen
      3) optional morphological join that fuses neighboring dots
      4) rendering of the mask with the color pair, alpha forced opaque
    """

    def __init__(self, params: Optional[RasterParams] = None,
                 tiles: Optional[TileProcessor] = None):
        self.params = params or RasterParams()
        self.tiles = tiles or TileProcessor(num_workers=1)

    @property
    def join_kernel(self) -> int:
        return max(1, self.params.cell_size // 4)

    def render(self, field: LuminanceField, colors: ColorPair) -> np.ndarray:
        """
        Args:
            field: Luminance of the source image
            colors: Shadow/highlight pair

        Returns:
            New (H, W, 4) uint8 array

        Raises:
            InvalidParameterError: If the raster parameters are out of range
        """
        params = self.params
        params.validate()
        preset = params.preset
        origin, span = field.normalization_bounds()
        h, w = field.values.shape

        adjusted = self.tiles.map_rows(
            _level_rows, h,
            luminance=field.values, origin=origin, span=span,
            brightness=params.brightness, contrast=params.contrast,
            levels=params.resolved_levels())

        mask = self.tiles.map_rows(
            _threshold_rows, h,
            adjusted=adjusted, cell_size=params.cell_size,
            angle=preset.angle, shape=preset.shape)

        if preset.join:
            mask = self.tiles.map_rows(_join_rows, h, threshold=mask, kernel=self.join_kernel)

        logger.debug("Raster %s: %dx%d, cell=%d, %.1f%% highlight",
                     params.style.value, w, h, params.cell_size, 100.0 * mask.mean())

        out = np.empty((h, w, 4), dtype=np.uint8)
        out[..., :3] = np.where(mask[..., np.newaxis],
                                np.asarray(colors.highlight, dtype=np.uint8),
                                np.asarray(colors.shadow, dtype=np.uint8))
        out[..., 3] = 255
        return out


# -------------------- Pipeline Orchestrator --------------------

class RenderSettings:
    """
    Everything a render call needs besides the pixels.
    """

    def __init__(self,
                 mode: Union[RenderMode, str] = RenderMode.CONTINUOUS,
                 palette: Union[PaletteKind, str] = PaletteKind.OPTIMIZED,
                 reversed: bool = False,
                 raster: Optional[RasterParams] = None,
                 custom_colors: Optional[ColorPair] = None,
                 max_dimension: int = MAX_DIMENSION):
        try:
            self.mode = RenderMode(mode)
        except ValueError:
            raise InvalidParameterError(f"Unknown render mode: {mode!r}") from None
        self.palette = palette
        self.reversed = reversed
        self.raster = raster or RasterParams()
        self.custom_colors = custom_colors
        self.max_dimension = max_dimension

    def colors(self) -> ColorPair:
        return select_colors(self.palette, self.reversed, self.custom_colors)

    def validate(self):
        if isinstance(self.max_dimension, bool) or not isinstance(self.max_dimension, numbers.Integral) \
                or self.max_dimension < 1:
            raise InvalidParameterError(
                f"max_dimension must be a positive integer, got {self.max_dimension!r}")
        self.colors()
        if self.mode is RenderMode.RASTER:
            self.raster.validate()


class RenderResult(NamedTuple):
    buffer: PixelBuffer
    width: int
    height: int


class DuotoneRenderer:
    """
    Orchestrates dimension normalization, luminance analysis and either the
    continuous duotone path or the raster path.
    """

    def __init__(self, settings: Optional[RenderSettings] = None,
                 num_workers: Optional[int] = None):
        """
        Raises:
            InvalidParameterError: If num_workers is not a positive integer
        """
        self.settings = settings or RenderSettings()
        try:
            self.tiles = TileProcessor(num_workers=num_workers)
        except ValueError as e:
            raise InvalidParameterError(str(e)) from None

    def render(self, buffer: PixelBuffer) -> RenderResult:
        """
        Render ``buffer`` as a duotone. The caller's buffer is never modified.

        Raises:
            InvalidInputError: If the buffer is empty or malformed
            InvalidParameterError: If the settings are out of range
        """
        if not isinstance(buffer, PixelBuffer):
            raise InvalidInputError(f"Expected a PixelBuffer, got {type(buffer).__name__}")
        settings = self.settings
        settings.validate()

        width, height = calculate_dimensions(buffer.width, buffer.height, settings.max_dimension)
        if (width, height) != buffer.size:
            logger.debug("Resampling %dx%d -> %dx%d", buffer.width, buffer.height, width, height)
            source = buffer.resized(width, height)
        else:
            source = buffer

        field = analyze_luminance(source, self.tiles)
        colors = settings.colors()
        logger.debug("Luminance range [%.2f, %.2f]%s", field.min_luminance, field.max_luminance,
                     " (flat image)" if field.is_flat else "")

        if settings.mode is RenderMode.RASTER:
            pixels = RasterRenderer(settings.raster, self.tiles).render(field, colors)
        else:
            origin, span = field.normalization_bounds()
            pixels = self.tiles.map_rows(
                _duotone_rows, height,
                pixels=source.data, luminance=field.values,
                origin=origin, span=span, colors=colors)

        return RenderResult(PixelBuffer(pixels), width, height)


def render(buffer: PixelBuffer, settings: Optional[RenderSettings] = None,
           num_workers: Optional[int] = None) -> RenderResult:
    """Render a pixel buffer with the given settings."""
    return DuotoneRenderer(settings, num_workers=num_workers).render(buffer)


def render_image(image: Image.Image, settings: Optional[RenderSettings] = None,
                 num_workers: Optional[int] = None) -> Image.Image:
    """Render a PIL image and return the result as an RGBA PIL image."""
    result = render(PixelBuffer.from_image(image), settings, num_workers=num_workers)
    return result.buffer.to_image()
