"""批处理驱动：按顺序处理文件、发送进度并响应协作式取消。"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional

from image_optimizer.core.cancellation import DEFAULT_TOKEN, CancellationToken
from image_optimizer.core.config import ConversionRequest
from image_optimizer.core.exceptions import (
    ConversionCancelled,
    ImageOptimizerError,
    InvalidConfigurationError,
    WorkerDispatchError,
)
from image_optimizer.core.models import BatchResult, FileResult, FileStatus
from image_optimizer.core.progress import ProgressUpdate
from image_optimizer.processing.worker import convert_request_item

LOGGER = logging.getLogger(__name__)

CANCELLED_MESSAGE = "操作已被用户取消"

ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


def process_batch(
    request: ConversionRequest,
    progress_callback: ProgressCallback = None,
    cancel_token: Optional[CancellationToken] = None,
) -> BatchResult:
    """批量处理入口：逐个文件串行转换，单个文件失败不影响其他文件。"""

    token = cancel_token or DEFAULT_TOKEN
    paths = [Path(p) for p in request.paths]
    total = len(paths)
    results = [FileResult(path=path) for path in paths]
    success_count = 0
    failed_count = 0

    try:
        request.validate()
    except InvalidConfigurationError as exc:
        LOGGER.error("批处理参数不合法：%s", exc)
        for record in results:
            record.mark_failed(str(exc), exc.code)
        return BatchResult(total=total, results=results, failed_count=total)

    LOGGER.info("开始处理 %d 个文件（模式: %s）", total, request.operation_mode.value)

    for index, path in enumerate(paths):
        if token.is_cancelled:
            for record in results[index:]:
                record.mark_failed(CANCELLED_MESSAGE, ConversionCancelled.code)
                failed_count += 1
            LOGGER.info("批处理在第 %d/%d 个文件前被取消", index + 1, total)
            break

        _emit_progress(progress_callback, index, total, success_count, failed_count, path.name)

        record = results[index]
        record.status = FileStatus.PROCESSING
        try:
            output = convert_request_item(request, path)
        except ImageOptimizerError as exc:
            LOGGER.warning("处理失败 %s: %s", path.name, exc)
            record.mark_failed(str(exc), exc.code)
            failed_count += 1
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("处理 %s 时出现未预期的异常", path)
            record.mark_failed(str(exc), "unexpected_error")
            failed_count += 1
        else:
            record.mark_success(output)
            success_count += 1

        _emit_progress(progress_callback, index + 1, total, success_count, failed_count, None)

    LOGGER.info("处理完成：成功 %d，失败 %d，共 %d", success_count, failed_count, total)
    return BatchResult(
        total=total,
        results=results,
        success_count=success_count,
        failed_count=failed_count,
    )


def _emit_progress(
    callback: ProgressCallback,
    current_index: int,
    total: int,
    success_count: int,
    failed_count: int,
    current_file: Optional[str],
) -> None:
    if not callback:
        return
    update = ProgressUpdate(
        current_index=current_index,
        total=total,
        success_count=success_count,
        failed_count=failed_count,
        current_file=current_file,
    )
    try:
        callback(update)
    except Exception:  # noqa: BLE001
        LOGGER.warning("进度通知发送失败，已忽略", exc_info=True)


class BatchRunner:
    """在独立的单线程执行器中运行批处理，调用方线程不被阻塞。

    同一个 runner 上提交的多个批处理按提交顺序依次执行。
    """

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="image-optimizer-batch")

    def submit(
        self,
        request: ConversionRequest,
        progress_callback: ProgressCallback = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Future:
        try:
            return self._executor.submit(process_batch, request, progress_callback, cancel_token)
        except RuntimeError as exc:
            raise WorkerDispatchError(f"无法调度批处理任务: {exc}") from exc

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "BatchRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
