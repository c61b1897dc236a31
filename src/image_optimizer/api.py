"""供宿主程序调用的操作集合。"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Optional

from image_optimizer.core.backup import create_backup, delete_backup, restore_backup
from image_optimizer.core.cancellation import CancellationToken, request_cancel, reset_cancel
from image_optimizer.core.config import ConversionRequest
from image_optimizer.core.formats import list_supported_formats
from image_optimizer.core.models import BatchResult
from image_optimizer.core.scanner import scan_directory_for_images
from image_optimizer.processing.image_loader import probe_dimensions
from image_optimizer.processing.pipeline import BatchRunner, ProgressCallback

__all__ = [
    "convert_batch",
    "submit_batch",
    "request_cancel",
    "reset_cancel",
    "probe_dimensions",
    "list_supported_formats",
    "scan_directory_for_images",
    "create_backup",
    "restore_backup",
    "delete_backup",
]

_RUNNER = BatchRunner()


def submit_batch(
    request: ConversionRequest,
    progress_callback: ProgressCallback = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Future:
    """将批处理提交到专用工作线程，立即返回 Future。"""

    return _RUNNER.submit(request, progress_callback, cancel_token)


def convert_batch(
    request: ConversionRequest,
    progress_callback: ProgressCallback = None,
    cancel_token: Optional[CancellationToken] = None,
) -> BatchResult:
    """在工作线程中执行批处理并等待结果。

    单个文件的错误全部记录在结果中；只有工作线程无法调度时才抛出 WorkerDispatchError。
    """

    return submit_batch(request, progress_callback, cancel_token).result()
