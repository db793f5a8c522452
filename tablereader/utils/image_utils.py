"""Image processing utilities."""

import cv2
import numpy as np
from typing import Tuple, Optional, Sequence

from ..core.constants import LUMA_R, LUMA_G, LUMA_B
from ..core.entities import Region
from ..core.exceptions import InvalidImageError

def ensure_image(image: Optional[np.ndarray]) -> np.ndarray:
    """Raise InvalidImageError for missing or zero-area images."""
    if image is None:
        raise InvalidImageError("No image supplied")
    image = np.asarray(image)
    if image.ndim not in (2, 3) or image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImageError(f"Zero-area image with shape {image.shape}")
    return image

def to_float_rgb(image: np.ndarray) -> np.ndarray:
    """Convert a gray/BGR/BGRA image (uint8 or float) to float32 RGB in [0, 1]."""
    image = ensure_image(image)
    if image.dtype == np.uint8:
        data = image.astype(np.float32) / 255.0
    else:
        data = np.clip(image.astype(np.float32), 0.0, 1.0)

    if data.ndim == 2:
        return cv2.cvtColor(data, cv2.COLOR_GRAY2RGB)
    channels = data.shape[2]
    if channels == 1:
        return cv2.cvtColor(np.ascontiguousarray(data[:, :, 0]), cv2.COLOR_GRAY2RGB)
    if channels == 4:
        return cv2.cvtColor(data, cv2.COLOR_BGRA2RGB)
    return cv2.cvtColor(data, cv2.COLOR_BGR2RGB)

def to_uint8_bgr(rgb: np.ndarray) -> np.ndarray:
    """Convert float RGB in [0, 1] back to OpenCV's uint8 BGR."""
    data = np.clip(rgb, 0.0, 1.0) * 255.0
    return cv2.cvtColor(np.rint(data).astype(np.uint8), cv2.COLOR_RGB2BGR)

def luminance(rgb: np.ndarray) -> np.ndarray:
    """Rec. 601 luma of a float RGB image."""
    return (LUMA_R * rgb[..., 0] + LUMA_G * rgb[..., 1] + LUMA_B * rgb[..., 2]).astype(np.float32)

def to_grayscale_float(image: np.ndarray, target_width: int, target_height: int) -> np.ndarray:
    """Lanczos-resample to exactly (target_width, target_height) and return luminance.

    The result is a float32 array of shape (target_height, target_width)
    with values in [0, 1]. No resampling happens when the source already
    has the target size.
    """
    if target_width <= 0 or target_height <= 0:
        raise InvalidImageError(f"Invalid target size {target_width}x{target_height}")
    rgb = to_float_rgb(image)
    h, w = rgb.shape[:2]
    if (w, h) != (target_width, target_height):
        rgb = cv2.resize(rgb, (target_width, target_height), interpolation=cv2.INTER_LANCZOS4)
    return np.clip(luminance(rgb), 0.0, 1.0)

def crop_image(image: np.ndarray, bbox: Tuple[int, int, int, int]) -> np.ndarray:
    """Crop image using bounding box coordinates."""
    x1, y1, x2, y2 = bbox
    h, w = image.shape[:2]

    x1 = max(0, min(x1, w))
    y1 = max(0, min(y1, h))
    x2 = max(x1, min(x2, w))
    y2 = max(y1, min(y2, h))

    return image[y1:y2, x1:x2]

def crop_region(image: np.ndarray, region: Region) -> Optional[np.ndarray]:
    """Crop a region clamped to the image bounds; None when nothing is left."""
    image = ensure_image(image)
    cropped = crop_image(image, (region.x, region.y,
                                 region.x + region.width, region.y + region.height))
    if cropped.shape[0] == 0 or cropped.shape[1] == 0:
        return None
    return cropped.copy()

def resize_to_cover(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Scale so the image covers width x height, then centre-crop to exactly that size."""
    image = ensure_image(image)
    h, w = image.shape[:2]
    scale = max(width / w, height / h)
    new_w = max(width, int(round(w * scale)))
    new_h = max(height, int(round(h * scale)))
    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)
    x0 = (new_w - width) // 2
    y0 = (new_h - height) // 2
    return resized[y0:y0 + height, x0:x0 + width]

def average_color(image: Optional[np.ndarray]) -> Optional[Tuple[float, float, float]]:
    """Mean RGB colour in [0, 1], or None for an empty image."""
    if image is None or np.asarray(image).size == 0:
        return None
    rgb = to_float_rgb(image)
    r, g, b = rgb.reshape(-1, 3).mean(axis=0)
    return (float(r), float(g), float(b))

def hex_string(rgb: Sequence[float]) -> str:
    """Format an RGB triple in [0, 1] as ``#RRGGBB``."""
    r, g, b = (int(round(min(max(c, 0.0), 1.0) * 255)) for c in rgb)
    return f"#{r:02X}{g:02X}{b:02X}"

def apply_gaussian_blur(image: np.ndarray, sigma: float) -> np.ndarray:
    """Gaussian blur with the kernel size derived from sigma; edges replicated."""
    if sigma <= 0:
        return image
    return cv2.GaussianBlur(image, (0, 0), sigmaX=sigma, sigmaY=sigma,
                            borderType=cv2.BORDER_REPLICATE)
