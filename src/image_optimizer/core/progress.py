"""进度更新的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """批处理过程中的进度信息，每个文件处理前后各发送一次。"""

    current_index: int
    total: int
    success_count: int
    failed_count: int
    current_file: Optional[str] = None
