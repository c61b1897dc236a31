"""批处理请求的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from image_optimizer.core.exceptions import InvalidConfigurationError
from image_optimizer.core.formats import OutputFormat


class OperationMode(str, Enum):
    """决定单个文件启用哪些处理（缩放 / 按质量压缩）。"""

    OPTIMIZE = "optimize"
    RESIZE = "resize"
    CONVERT = "convert"
    OPTIMIZE_RESIZE = "optimize_resize"
    ALL = "all"

    @property
    def suffix(self) -> str:
        """非覆盖模式下追加到输出文件名的后缀。"""

        return _MODE_SUFFIXES[self]

    @property
    def resizes(self) -> bool:
        return self in {OperationMode.RESIZE, OperationMode.OPTIMIZE_RESIZE, OperationMode.ALL}

    @property
    def optimizes(self) -> bool:
        return self in {OperationMode.OPTIMIZE, OperationMode.OPTIMIZE_RESIZE, OperationMode.ALL}


_MODE_SUFFIXES = {
    OperationMode.OPTIMIZE: "optimized",
    OperationMode.RESIZE: "resized",
    OperationMode.CONVERT: "converted",
    OperationMode.OPTIMIZE_RESIZE: "optimized_resized",
    OperationMode.ALL: "processed",
}


class ResizeMode(str, Enum):
    """缩放参数的解释方式。"""

    DIMENSIONS = "dimensions"
    PERCENTAGE = "percentage"


@dataclass(frozen=True, slots=True)
class ResizeParams:
    """缩放配置。"""

    mode: ResizeMode = ResizeMode.DIMENSIONS
    percentage: float = 100.0
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    keep_aspect_ratio: bool = True


@dataclass(frozen=True, slots=True)
class ConversionRequest:
    """单次批处理的请求，在批处理期间保持不变。"""

    paths: Sequence[Path]
    output_dir: Optional[Path] = None
    output_format: Optional[OutputFormat] = None
    overwrite: bool = False
    operation_mode: OperationMode = OperationMode.OPTIMIZE
    quality: Optional[float] = None
    resize: ResizeParams = field(default_factory=ResizeParams)
    create_backup: bool = False

    def validate(self) -> None:
        """检查明显不合法的参数；质量与百分比越界由各自的策略截断，不在此处拒绝。"""

        for label, value in (("max_width", self.resize.max_width), ("max_height", self.resize.max_height)):
            if value is not None and value <= 0:
                raise InvalidConfigurationError(f"{label} 必须大于 0: {value}")
