"""输出格式注册表：扩展名与格式标签之间的映射。"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from image_optimizer.core.exceptions import InvalidConfigurationError, UnsupportedFormatError


class OutputFormat(str, Enum):
    """支持的输出格式。"""

    PNG = "png"
    WEBP = "webp"
    JPEG = "jpeg"
    TIFF = "tiff"
    QOI = "qoi"
    BMP = "bmp"

    @property
    def extension(self) -> str:
        return _CANONICAL_EXTENSIONS[self]

    @property
    def pillow_format(self) -> Optional[str]:
        """Pillow 通用编码器名称，QOI 没有对应的写入器。"""

        return _PILLOW_FORMATS[self]


_CANONICAL_EXTENSIONS = {
    OutputFormat.PNG: "png",
    OutputFormat.WEBP: "webp",
    OutputFormat.JPEG: "jpg",
    OutputFormat.TIFF: "tiff",
    OutputFormat.QOI: "qoi",
    OutputFormat.BMP: "bmp",
}

_PILLOW_FORMATS = {
    OutputFormat.PNG: "PNG",
    OutputFormat.WEBP: "WEBP",
    OutputFormat.JPEG: "JPEG",
    OutputFormat.TIFF: "TIFF",
    OutputFormat.QOI: None,
    OutputFormat.BMP: "BMP",
}

EXTENSION_FORMATS = {
    ".png": OutputFormat.PNG,
    ".webp": OutputFormat.WEBP,
    ".jpg": OutputFormat.JPEG,
    ".jpeg": OutputFormat.JPEG,
    ".tiff": OutputFormat.TIFF,
    ".tif": OutputFormat.TIFF,
    ".qoi": OutputFormat.QOI,
    ".bmp": OutputFormat.BMP,
}


def format_for_path(path: Path) -> Optional[OutputFormat]:
    """根据文件扩展名（不区分大小写）推断格式，无法识别时返回 None。"""

    return EXTENSION_FORMATS.get(Path(path).suffix.lower())


def extension_for(fmt: OutputFormat) -> str:
    return fmt.extension


def resolve_output_format(input_path: Path, explicit: Optional[OutputFormat]) -> OutputFormat:
    """确定输出格式：显式指定优先，否则沿用输入文件的格式。"""

    if explicit is not None:
        return explicit

    detected = format_for_path(input_path)
    if detected is None:
        raise UnsupportedFormatError(f"无法从文件名推断格式: {Path(input_path).name}")
    return detected


def list_supported_formats() -> list[str]:
    return [fmt.value for fmt in OutputFormat]


def parse_output_format(value: str) -> OutputFormat:
    """将格式标签或扩展名解析为 OutputFormat。"""

    normalized = value.strip().lower().lstrip(".")
    try:
        return OutputFormat(normalized)
    except ValueError:
        pass

    detected = EXTENSION_FORMATS.get(f".{normalized}")
    if detected is None:
        raise InvalidConfigurationError(f"未知的输出格式: {value}")
    return detected
