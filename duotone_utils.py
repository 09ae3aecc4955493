"""
Utility functions for the duotone application: loading and saving pixel
buffers and converting colors between hex and RGB.
"""

import os
from pathlib import Path
from typing import List, Tuple, Union

from PIL import Image, ImageOps

from duotone_lib import PixelBuffer

__all__ = [
    'IMAGE_EXTENSIONS',
    'hex_to_rgb',
    'rgb_to_hex',
    'validate_image_file',
    'list_image_files',
    'load_image_buffer',
    'save_image_buffer',
]

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.bmp', '.tiff', '.tif', '.webp'}

PathLike = Union[str, os.PathLike]


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """
    Convert hex color string to RGB tuple.

    Args:
        hex_color: Hex string like "#FF0000" or "FF0000"

    Returns:
        RGB tuple (r, g, b)

    Raises:
        ValueError: If the string is not a six-digit hex color
    """
    if not isinstance(hex_color, str):
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    digits = hex_color.strip().lstrip('#')
    if len(digits) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    try:
        return tuple(int(digits[i:i+2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid hex color: {hex_color!r}") from None


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    """
    Convert RGB tuple to hex color string.

    Args:
        rgb: RGB tuple (r, g, b)

    Returns:
        Hex string like "#ff0000"
    """
    return f'#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}'


def validate_image_file(filepath: PathLike) -> bool:
    """
    Check if file is a valid image file.

    Args:
        filepath: Path to image file

    Returns:
        True if the file exists and has a known image extension
    """
    ext = os.path.splitext(filepath)[1].lower()
    return ext in IMAGE_EXTENSIONS and os.path.isfile(filepath)


def list_image_files(folder: PathLike) -> List[Path]:
    """Image files directly inside ``folder``, sorted by name."""
    return sorted(p for p in Path(folder).iterdir() if validate_image_file(p))


def load_image_buffer(filepath: PathLike) -> PixelBuffer:
    """
    Decode an image file into an RGBA pixel buffer.
    EXIF orientation is applied so the buffer is upright.

    Raises:
        OSError: If the file cannot be opened or decoded
    """
    with Image.open(filepath) as img:
        img = ImageOps.exif_transpose(img)
        return PixelBuffer.from_image(img)


def save_image_buffer(buffer: PixelBuffer, filepath: PathLike) -> Path:
    """
    Encode a pixel buffer to disk. The format follows the file extension
    (PNG when there is none); parent directories are created as needed.

    Returns:
        Path the image was written to
    """
    path = Path(filepath)
    if not path.suffix:
        path = path.with_suffix('.png')
    path.parent.mkdir(parents=True, exist_ok=True)

    image = buffer.to_image()
    if path.suffix.lower() in {'.jpg', '.jpeg', '.bmp'}:
        # No alpha support in these formats
        image = image.convert('RGB')
    image.save(path)
    return path
