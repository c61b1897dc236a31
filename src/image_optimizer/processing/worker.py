"""单个文件的转换流程：解码、缩放、命名、编码与元数据收集。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PIL import Image

from image_optimizer.core.config import ConversionRequest, OperationMode, ResizeParams
from image_optimizer.core.exceptions import ImageIOError
from image_optimizer.core.formats import OutputFormat, resolve_output_format
from image_optimizer.core.models import ConversionOutput
from image_optimizer.core.output_manager import build_output_path, ensure_output_dir, resolve_output_dir
from image_optimizer.processing.encoders import save_encoded
from image_optimizer.processing.image_loader import load_image
from image_optimizer.processing.resize import maybe_resize

LOGGER = logging.getLogger(__name__)


def convert_image(  # noqa: PLR0913
    input_path: Path,
    output_dir: Path,
    output_format: Optional[OutputFormat],
    overwrite: bool,
    mode: OperationMode,
    quality: Optional[float],
    resize: ResizeParams,
) -> ConversionOutput:
    """转换单个文件，失败时抛出 ImageOptimizerError 的子类。

    输出格式先于解码确定，扩展名无法识别的文件不会被读取。
    """

    input_path = Path(input_path)
    fmt = resolve_output_format(input_path, output_format)

    image = load_image(input_path)
    resized: Optional[Image.Image] = None
    try:
        resized = maybe_resize(image, mode, resize)
        output_path = build_output_path(input_path, output_dir, fmt, mode, overwrite)
        ensure_output_dir(output_dir)

        save_encoded(resized, output_path, fmt, mode.optimizes, quality)

        try:
            output_size = output_path.stat().st_size
        except OSError as exc:
            raise ImageIOError(f"读取输出文件信息失败: {output_path}") from exc

        width, height = resized.size
    finally:
        _close_if_needed(image, resized)

    LOGGER.debug("已写入 %s (%d 字节, %dx%d)", output_path, output_size, width, height)
    return ConversionOutput(
        output_path=output_path,
        output_size=output_size,
        output_width=width,
        output_height=height,
    )


def convert_request_item(request: ConversionRequest, input_path: Path) -> ConversionOutput:
    """按批处理请求中的参数转换其中一个文件。"""

    return convert_image(
        input_path,
        resolve_output_dir(input_path, request.output_dir),
        request.output_format,
        request.overwrite,
        request.operation_mode,
        request.quality,
        request.resize,
    )


def _close_if_needed(*images: Optional[Image.Image]) -> None:
    seen: set[int] = set()
    for img in images:
        if img is not None and id(img) not in seen:
            seen.add(id(img))
            img.close()
