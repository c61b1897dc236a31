"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BackupInfo:
    """一次备份操作的记录。"""

    original_path: Path
    backup_path: Path


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class ConversionOutput:
    """单个文件转换成功后的输出元数据。"""

    output_path: Path
    output_size: int
    output_width: int
    output_height: int


@dataclass(slots=True)
class FileResult:
    """记录单个文件的处理结果（用于界面展示与报告）。"""

    path: Path
    status: FileStatus = FileStatus.PENDING
    output_path: Optional[Path] = None
    output_size: Optional[int] = None
    output_width: Optional[int] = None
    output_height: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    backup: Optional[BackupInfo] = None

    def mark_success(self, output: ConversionOutput) -> None:
        self.status = FileStatus.SUCCESS
        self.output_path = output.output_path
        self.output_size = output.output_size
        self.output_width = output.output_width
        self.output_height = output.output_height

    def mark_failed(self, message: str, code: str) -> None:
        self.status = FileStatus.FAILED
        self.error = message
        self.error_code = code


@dataclass(slots=True)
class BatchResult:
    """一次批处理的汇总结果。"""

    total: int
    results: list[FileResult]
    success_count: int = 0
    failed_count: int = 0
    backups: list[BackupInfo] = field(default_factory=list)

    @property
    def succeeded(self) -> list[FileResult]:
        return [record for record in self.results if record.status is FileStatus.SUCCESS]

    @property
    def failed(self) -> list[FileResult]:
        return [record for record in self.results if record.status is FileStatus.FAILED]
