"""各输出格式的编码策略。

每个编码器接收已解码的图像，返回编码后的字节流；写盘由 ``save_encoded`` 统一完成，
因此同一时刻内存中只有一份待写入的编码结果。
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Callable, Dict, Optional

import imagequant
import numpy as np
import oxipng
import qoi
from PIL import Image

from image_optimizer.core.exceptions import EncodeError, ImageIOError, UnsupportedFormatError
from image_optimizer.core.formats import OutputFormat
from image_optimizer.processing.image_loader import flatten_to_rgb

LOGGER = logging.getLogger(__name__)

WEBP_DEFAULT_QUALITY = 75.0
PNG_DEFAULT_QUALITY = 90.0
JPEG_DEFAULT_QUALITY = 85.0
JPEG_LOSSLESS_QUALITY = 95

PNG_DITHERING_LEVEL = 1.0
PNG_MAX_COLORS = 256
OXIPNG_LEVEL = 6

# Pillow 在缺少编解码器时抛出 KeyError，参数不合法时抛出 ValueError/TypeError。
_PILLOW_ENCODE_ERRORS = (OSError, ValueError, TypeError, KeyError)

Encoder = Callable[[Image.Image, bool, Optional[float]], bytes]


def clamp_quality(quality: Optional[float], default: float) -> float:
    """缺省时使用默认值，并截断到 [0, 100]。"""

    value = default if quality is None else float(quality)
    return min(max(value, 0.0), 100.0)


def _save_with_pillow(image: Image.Image, image_format: str, **params) -> bytes:
    buffer = io.BytesIO()
    try:
        image.save(buffer, format=image_format, **params)
    except _PILLOW_ENCODE_ERRORS as exc:
        raise EncodeError(f"{image_format} 编码失败: {exc}") from exc
    return buffer.getvalue()


def encode_webp(image: Image.Image, optimize: bool, quality: Optional[float]) -> bytes:
    """优化模式为有损编码，否则为无损编码。"""

    rgba = image.convert("RGBA")
    if optimize:
        value = clamp_quality(quality, WEBP_DEFAULT_QUALITY)
        return _save_with_pillow(rgba, "WEBP", quality=int(round(value)), lossless=False)
    return _save_with_pillow(rgba, "WEBP", lossless=True, exact=True)


def encode_png(image: Image.Image, optimize: bool, quality: Optional[float]) -> bytes:
    if not optimize:
        return _save_with_pillow(image, "PNG", optimize=True)
    return _encode_quantized_png(image, int(clamp_quality(quality, PNG_DEFAULT_QUALITY)))


def _encode_quantized_png(image: Image.Image, max_quality: int) -> bytes:
    """调色板量化 -> 索引色 PNG -> oxipng 无损重优化。"""

    rgba = image.convert("RGBA")
    width, height = rgba.size

    try:
        indices, palette = imagequant.quantize_raw_rgba_bytes(
            rgba.tobytes(),
            width,
            height,
            dithering_level=PNG_DITHERING_LEVEL,
            max_colors=PNG_MAX_COLORS,
            min_quality=0,
            max_quality=max_quality,
        )
    except Exception as exc:  # noqa: BLE001 - libimagequant 的错误类型不固定
        raise EncodeError(f"PNG 调色板量化失败: {exc}") from exc

    palette_bytes = bytes(palette)
    if not palette_bytes or len(palette_bytes) % 4:
        raise EncodeError(f"量化得到的调色板长度无效: {len(palette_bytes)}")

    entries = [palette_bytes[i : i + 4] for i in range(0, len(palette_bytes), 4)]
    rgb_palette = b"".join(entry[:3] for entry in entries)
    alphas = bytes(entry[3] for entry in entries)

    try:
        indexed = Image.frombytes("P", (width, height), bytes(indices))
        indexed.putpalette(rgb_palette)
    except ValueError as exc:
        raise EncodeError(f"构建索引色图像失败: {exc}") from exc

    params = {}
    if any(alpha < 255 for alpha in alphas):
        params["transparency"] = alphas
    png_data = _save_with_pillow(indexed, "PNG", **params)

    try:
        optimized = oxipng.optimize_from_memory(
            png_data,
            level=OXIPNG_LEVEL,
            strip=oxipng.StripChunks.safe(),
            optimize_alpha=True,
        )
    except Exception as exc:  # noqa: BLE001 - oxipng.PngError 及绑定层异常
        raise EncodeError(f"PNG 重优化失败: {exc}") from exc

    LOGGER.debug("PNG 量化完成：%d 色，%d -> %d 字节", len(entries), len(png_data), len(optimized))
    return bytes(optimized)


def encode_jpeg(image: Image.Image, optimize: bool, quality: Optional[float]) -> bytes:
    """JPEG 没有真正的无损路径，非优化模式固定使用质量 95。"""

    if optimize:
        value = int(clamp_quality(quality, JPEG_DEFAULT_QUALITY))
    else:
        value = JPEG_LOSSLESS_QUALITY
    return _save_with_pillow(flatten_to_rgb(image), "JPEG", quality=value, optimize=True)


def encode_qoi(image: Image.Image, optimize: bool, quality: Optional[float]) -> bytes:
    """QOI 始终无损，忽略质量参数。"""

    working = image if image.mode in {"RGB", "RGBA"} else image.convert("RGBA")
    pixels = np.ascontiguousarray(np.asarray(working, dtype=np.uint8))
    try:
        return qoi.encode(pixels)
    except Exception as exc:  # noqa: BLE001 - qoi 绑定层抛出 ValueError/RuntimeError
        raise EncodeError(f"QOI 编码失败: {exc}") from exc


def _generic_encoder(fmt: OutputFormat) -> Encoder:
    image_format = fmt.pillow_format
    if image_format is None:
        raise UnsupportedFormatError(f"{fmt.value} 没有通用编码器")

    def encode(image: Image.Image, optimize: bool, quality: Optional[float]) -> bytes:
        return _save_with_pillow(image, image_format)

    return encode


ENCODERS: Dict[OutputFormat, Encoder] = {
    OutputFormat.PNG: encode_png,
    OutputFormat.WEBP: encode_webp,
    OutputFormat.JPEG: encode_jpeg,
    OutputFormat.TIFF: _generic_encoder(OutputFormat.TIFF),
    OutputFormat.QOI: encode_qoi,
    OutputFormat.BMP: _generic_encoder(OutputFormat.BMP),
}


def encode_image(image: Image.Image, fmt: OutputFormat, optimize: bool, quality: Optional[float]) -> bytes:
    try:
        encoder = ENCODERS[fmt]
    except KeyError as exc:
        raise UnsupportedFormatError(f"不支持的输出格式: {fmt}") from exc
    return encoder(image, optimize, quality)


def save_encoded(
    image: Image.Image,
    output_path: Path,
    fmt: OutputFormat,
    optimize: bool,
    quality: Optional[float],
) -> None:
    """编码后写入磁盘。"""

    data = encode_image(image, fmt, optimize, quality)
    try:
        output_path.write_bytes(data)
    except OSError as exc:
        raise ImageIOError(f"写入文件失败: {output_path}") from exc
