"""输出路径命名与目录管理。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from image_optimizer.core.config import OperationMode
from image_optimizer.core.exceptions import ImageIOError
from image_optimizer.core.formats import OutputFormat

LOGGER = logging.getLogger(__name__)


def resolve_output_dir(input_path: Path, output_dir: Optional[Path]) -> Path:
    """未指定输出目录时写回输入文件所在目录。"""

    if output_dir is None or str(output_dir) == "":
        return Path(input_path).parent
    return Path(output_dir)


def build_output_path(
    input_path: Path,
    output_dir: Path,
    fmt: OutputFormat,
    mode: OperationMode,
    overwrite: bool,
) -> Path:
    """覆盖模式沿用原文件名，否则在扩展名前追加模式后缀。"""

    stem = Path(input_path).stem
    if not stem:
        raise ImageIOError(f"无效的文件名: {input_path}")

    if overwrite:
        filename = f"{stem}.{fmt.extension}"
    else:
        filename = f"{stem}_{mode.suffix}.{fmt.extension}"
    return output_dir / filename


def ensure_output_dir(output_dir: Path) -> None:
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ImageIOError(f"创建输出目录失败: {output_dir}") from exc
