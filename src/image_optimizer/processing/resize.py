"""缩放策略：按最大边界或按百分比计算目标尺寸。"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from PIL import Image

from image_optimizer.core.config import OperationMode, ResizeMode, ResizeParams

LOGGER = logging.getLogger(__name__)

RESAMPLE_FILTER = Image.LANCZOS


def mode_requires_resize(mode: OperationMode) -> bool:
    return mode.resizes


def compute_target_size(size: Tuple[int, int], params: ResizeParams) -> Optional[Tuple[int, int]]:
    """计算目标尺寸，返回 None 表示无需缩放。"""

    width, height = size
    if params.mode is ResizeMode.PERCENTAGE:
        target = _percentage_size(width, height, params.percentage)
    elif params.mode is ResizeMode.DIMENSIONS:
        target = _bounded_size(width, height, params)
    else:
        raise ValueError(f"未知的缩放模式: {params.mode}")

    if target is None or target == (width, height):
        return None
    return target


def maybe_resize(image: Image.Image, mode: OperationMode, params: ResizeParams) -> Image.Image:
    """仅在操作模式包含缩放时执行，统一使用 Lanczos 重采样。"""

    if not mode_requires_resize(mode):
        return image

    target = compute_target_size(image.size, params)
    if target is None:
        return image

    LOGGER.debug("缩放 %s -> %s", image.size, target)
    return image.resize(target, RESAMPLE_FILTER)


def _percentage_size(width: int, height: int, percentage: float) -> Optional[Tuple[int, int]]:
    pct = min(max(percentage, 1.0), 100.0)
    new_width = int(width * pct / 100.0)
    new_height = int(height * pct / 100.0)
    if new_width == 0 or new_height == 0:
        return None
    return new_width, new_height


def _bounded_size(width: int, height: int, params: ResizeParams) -> Optional[Tuple[int, int]]:
    if params.max_width is None and params.max_height is None:
        return None

    # 缺失的边界视为该方向不受限制
    max_width = params.max_width if params.max_width is not None else width
    max_height = params.max_height if params.max_height is not None else height

    if width <= max_width and height <= max_height:
        return None

    if not params.keep_aspect_ratio:
        return max_width, max_height

    # contain：取较小的缩放比例，保证两个方向都落在边界内
    ratio = min(max_width / width, max_height / height)
    new_width = min(max_width, max(1, round(width * ratio)))
    new_height = min(max_height, max(1, round(height * ratio)))
    return new_width, new_height
