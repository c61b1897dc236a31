"""图片加载与模式归一化实现。"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from image_optimizer.core.exceptions import DecodeError
from image_optimizer.core.models import ImageDimensions

LOGGER = logging.getLogger(__name__)

_LOAD_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)

# 高位深灰度模式，I 模式按 16 位取值范围处理
_WIDE_GRAY_MODES = {"I", "I;16", "I;16L", "I;16B", "I;16N"}


def load_image(path: Path) -> Image.Image:
    """加载单张图片并将模式归一化为 RGB 或 RGBA。

    返回值为新的 Image 对象，调用者负责关闭。
    """

    try:
        with Image.open(path) as img:
            img.load()
            return _normalize_mode(img)
    except _LOAD_ERRORS as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", path, exc)
        raise DecodeError(f"无法加载图像: {path} ({exc})") from exc


def probe_dimensions(path: Path) -> ImageDimensions:
    """仅读取文件头获取图片尺寸。"""

    try:
        with Image.open(path) as img:
            width, height = img.size
    except _LOAD_ERRORS as exc:
        raise DecodeError(f"无法加载图像: {path} ({exc})") from exc
    return ImageDimensions(width=width, height=height)


def _normalize_mode(img: Image.Image) -> Image.Image:
    """带透明信息的图像转换为 RGBA，其余转换为 RGB。"""

    if img.mode in {"RGB", "RGBA"}:
        return img.copy()

    if img.mode in {"LA", "PA", "La", "RGBa"}:
        return img.convert("RGBA")

    if img.mode in {"L", "1", "P"} and "transparency" in img.info:
        return img.convert("RGBA")

    if img.mode in _WIDE_GRAY_MODES or img.mode == "F":
        return _reduce_wide_gray(img)

    # CMYK 等其他模式直接转换
    return img.convert("RGB")


def _reduce_wide_gray(img: Image.Image) -> Image.Image:
    """将 16 位 / 32 位灰度按比例缩减到 8 位，Pillow 的 convert 只会截断到 0~255。"""

    raw = np.asarray(img)
    if img.mode == "F":
        values = np.nan_to_num(raw.astype(np.float64), nan=0.0, posinf=0.0, neginf=0.0)
        low, high = float(values.min()), float(values.max())
        if high > low:
            gray = np.rint((values - low) * (255.0 / (high - low)))
        else:
            gray = np.zeros_like(values)
    else:
        gray = np.clip(raw.astype(np.int64), 0, 65535) >> 8

    reduced = Image.fromarray(gray.astype(np.uint8))

    transparency = img.info.get("transparency")
    if isinstance(transparency, int) and img.mode in _WIDE_GRAY_MODES:
        alpha = np.where(raw == transparency, 0, 255).astype(np.uint8)
        rgba = reduced.convert("RGBA")
        rgba.putalpha(Image.fromarray(alpha))
        return rgba

    return reduced.convert("RGB")


def flatten_to_rgb(img: Image.Image) -> Image.Image:
    """通过白色背景混合去除 Alpha，生成 RGB 图像。"""

    if img.mode == "RGB":
        return img
    if img.mode == "RGBA":
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    return img.convert("RGB")
