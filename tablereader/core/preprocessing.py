"""Parametrized preprocessing pipeline shared by OCR and template matching.

All intermediate steps work on float32 RGB images in [0, 1]; the pipeline
output is a binarized uint8 BGR image. The step order is fixed:

    scale -> colour filter -> background subtraction -> bilateral filter
    -> luminance sharpen -> colour controls -> blur -> threshold -> morphology
"""
from __future__ import annotations
import logging
from typing import Optional

import cv2
import numpy as np

from .entities import ColorFilterMode, MorphologyMode, PreprocessParameters
from ..utils.image_utils import (
    apply_gaussian_blur, luminance, to_float_rgb, to_uint8_bgr,
)

logger = logging.getLogger(__name__)

SHARPEN_SIGMA = 1.69

_GREEN = np.array([0.0, 0.5, 0.0], dtype=np.float32)
_YELLOW = np.array([1.0, 1.0, 0.0], dtype=np.float32)
_BLACK = np.array([0.0, 0.0, 0.0], dtype=np.float32)


# Step 1

def scale_image(rgb: np.ndarray, scale: float) -> np.ndarray:
    if scale <= 0 or scale == 1.0:
        return rgb
    h, w = rgb.shape[:2]
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    return cv2.resize(rgb, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)


# Step 2

def _hue_saturation(rgb: np.ndarray):
    """Hue in degrees [0, 360) and HSV saturation in [0, 1]."""
    hsv = cv2.cvtColor(np.clip(rgb, 0.0, 1.0).astype(np.float32), cv2.COLOR_RGB2HSV)
    return hsv[..., 0], hsv[..., 1]


def hsv_filter(rgb: np.ndarray, params: PreprocessParameters) -> np.ndarray:
    hue, sat = _hue_saturation(rgb)
    in_range = ((hue >= params.hsv_hue_min) & (hue <= params.hsv_hue_max)
                & (sat >= params.hsv_sat_min) & (sat <= params.hsv_sat_max))
    out = rgb.copy()
    out[in_range] = 0.0
    return out


def color_distance_filter(rgb: np.ndarray, params: PreprocessParameters) -> np.ndarray:
    t = params.color_distance_threshold
    near = np.zeros(rgb.shape[:2], dtype=bool)
    for reference in (_GREEN, _YELLOW, _BLACK):
        near |= np.linalg.norm(rgb - reference, axis=2) < t
    out = rgb.copy()
    out[near] = 0.0
    return out


def white_isolation(rgb: np.ndarray, params: PreprocessParameters) -> np.ndarray:
    _, sat = _hue_saturation(rgb)
    keep = (luminance(rgb) >= params.white_brightness_threshold) & (sat <= params.white_saturation_max)
    out = np.zeros_like(rgb)
    out[keep] = rgb[keep]
    return out


def multi_channel_filter(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel maximum of the isolated R, G and B channels on every channel."""
    peak = rgb.max(axis=2)
    return np.repeat(peak[:, :, np.newaxis], 3, axis=2)


def apply_color_filter(rgb: np.ndarray, params: PreprocessParameters) -> np.ndarray:
    mode = params.color_filter_mode
    if mode == ColorFilterMode.HSV_FILTER:
        return hsv_filter(rgb, params)
    if mode == ColorFilterMode.COLOR_DISTANCE:
        return color_distance_filter(rgb, params)
    if mode == ColorFilterMode.WHITE_ISOLATION:
        return white_isolation(rgb, params)
    if mode == ColorFilterMode.MULTI_CHANNEL:
        return multi_channel_filter(rgb)
    return rgb


# Steps 3 and 4

def subtract_background(rgb: np.ndarray, blur_radius: float) -> np.ndarray:
    background = apply_gaussian_blur(rgb, blur_radius)
    return np.clip(rgb - background, 0.0, 1.0)


def bilateral_filter(rgb: np.ndarray, sigma_color: float, sigma_space: float) -> np.ndarray:
    """Edge-preserving smoothing; sigma_color is given on the 0-255 scale."""
    spatial = max(sigma_space / 10.0, 0.5)
    diameter = 2 * int(np.ceil(2 * spatial)) + 1
    return cv2.bilateralFilter(rgb.astype(np.float32), diameter, sigma_color / 255.0, spatial,
                               borderType=cv2.BORDER_REPLICATE)


# Steps 5 and 6

def sharpen_luminance(rgb: np.ndarray, sharpness: float) -> np.ndarray:
    if sharpness <= 0:
        return rgb
    luma = luminance(rgb)
    detail = luma - apply_gaussian_blur(luma, SHARPEN_SIGMA)
    return np.clip(rgb + sharpness * detail[:, :, np.newaxis], 0.0, 1.0)


def color_controls(rgb: np.ndarray, contrast: float, brightness: float,
                   saturation: float) -> np.ndarray:
    luma = luminance(rgb)[:, :, np.newaxis]
    out = luma + (rgb - luma) * saturation
    out = out + brightness
    out = (out - 0.5) * contrast + 0.5
    return np.clip(out, 0.0, 1.0).astype(np.float32)


# Step 8

def threshold_image(rgb: np.ndarray, params: PreprocessParameters) -> np.ndarray:
    """Binarize on luminance; returns a float RGB image of 0s and 1s."""
    luma = luminance(rgb)
    if params.use_adaptive_threshold:
        local_mean = luminance(apply_gaussian_blur(rgb, params.adaptive_block_size / 3.0))
        mask = luma > local_mean - params.adaptive_c / 255.0
    else:
        mask = luma > params.threshold
    binary = mask.astype(np.float32)
    return np.repeat(binary[:, :, np.newaxis], 3, axis=2)


# Step 9

def _ellipse(radius: int) -> np.ndarray:
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (2 * radius + 1, 2 * radius + 1))


def kernel_radius(size: float) -> int:
    return int(np.floor(size + 0.5))


def opening(img: np.ndarray, radius: int) -> np.ndarray:
    """Erosion followed by dilation."""
    if radius < 1:
        return img
    kernel = _ellipse(radius)
    eroded = cv2.erode(img, kernel, borderType=cv2.BORDER_REPLICATE)
    return cv2.dilate(eroded, kernel, borderType=cv2.BORDER_REPLICATE)


def closing(img: np.ndarray, radius: int) -> np.ndarray:
    """Dilation followed by erosion."""
    if radius < 1:
        return img
    kernel = _ellipse(radius)
    dilated = cv2.dilate(img, kernel, borderType=cv2.BORDER_REPLICATE)
    return cv2.erode(dilated, kernel, borderType=cv2.BORDER_REPLICATE)


def top_hat(img: np.ndarray, radius: int) -> np.ndarray:
    return np.clip(img - opening(img, radius), 0.0, 1.0)


def black_hat(img: np.ndarray, radius: int) -> np.ndarray:
    return np.clip(closing(img, radius) - img, 0.0, 1.0)


def thicken(img: np.ndarray, radius: int) -> np.ndarray:
    if radius < 1:
        return img
    return cv2.dilate(img, _ellipse(radius), borderType=cv2.BORDER_REPLICATE)


def apply_morphology(img: np.ndarray, params: PreprocessParameters) -> np.ndarray:
    radius = kernel_radius(params.morphology_size)
    mode = params.morphology_mode
    if mode == MorphologyMode.OPENING:
        img = opening(img, radius)
    elif mode == MorphologyMode.CLOSING:
        img = closing(img, radius)
    elif mode == MorphologyMode.TOP_HAT:
        img = top_hat(img, radius)
    elif mode == MorphologyMode.BLACK_HAT:
        img = black_hat(img, radius)
    return thicken(img, kernel_radius(params.morph_radius))


def preprocess(image: np.ndarray, params: Optional[PreprocessParameters] = None) -> np.ndarray:
    """Run the full pipeline; returns a uint8 BGR image.

    Pure and deterministic: the input is never modified and identical
    inputs give identical outputs.
    """
    params = params or PreprocessParameters()
    rgb = to_float_rgb(image)

    rgb = scale_image(rgb, params.scale)
    rgb = apply_color_filter(rgb, params)
    if params.use_background_subtraction:
        rgb = subtract_background(rgb, params.background_blur_radius)
    if params.use_bilateral_filter:
        rgb = bilateral_filter(rgb, params.bilateral_sigma_color, params.bilateral_sigma_space)
    rgb = sharpen_luminance(rgb, params.sharpness)
    rgb = color_controls(rgb, params.contrast, params.brightness, params.saturation)
    rgb = apply_gaussian_blur(rgb, params.blur_radius)
    binary = threshold_image(rgb, params)
    binary = apply_morphology(binary, params)
    return to_uint8_bgr(binary)


class PreprocessPipeline:
    """Callable pipeline bound to one parameter set."""

    def __init__(self, params: Optional[PreprocessParameters] = None):
        self.params = params or PreprocessParameters()

    def __call__(self, image: np.ndarray) -> np.ndarray:
        return preprocess(image, self.params)

    def with_parameters(self, **changes) -> PreprocessPipeline:
        return PreprocessPipeline(self.params.replace(**changes))
