"""命令行入口。"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import List, Optional

import typer
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from image_optimizer.core.backup import create_backup, restore_backup
from image_optimizer.core.cancellation import CancellationToken
from image_optimizer.core.config import ConversionRequest, OperationMode, ResizeMode, ResizeParams
from image_optimizer.core.exceptions import ImageIOError, ImageOptimizerError, InvalidConfigurationError
from image_optimizer.core.formats import OutputFormat, list_supported_formats, parse_output_format
from image_optimizer.core.models import BackupInfo, BatchResult
from image_optimizer.core.progress import ProgressUpdate
from image_optimizer.core.report import write_csv_report
from image_optimizer.core.scanner import scan_directory_for_images
from image_optimizer.processing.image_loader import probe_dimensions
from image_optimizer.processing.pipeline import BatchRunner
from image_optimizer.utils.logging import setup_logging

app = typer.Typer(help="批量图片格式转换与压缩工具。")

LOGGER = logging.getLogger(__name__)


def _collect_paths(sources: List[Path]) -> list[Path]:
    collected: list[Path] = []
    for source in sources:
        resolved = source.expanduser().resolve()
        if resolved.is_dir():
            try:
                collected.extend(scan_directory_for_images(resolved))
            except ImageIOError as exc:
                raise typer.BadParameter(str(exc)) from exc
        else:
            collected.append(resolved)
    return collected


def _parse_format(value: Optional[str]) -> Optional[OutputFormat]:
    if value is None:
        return None
    try:
        return parse_output_format(value)
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理图片", total=update.total)
        description = update.current_file or f"成功 {update.success_count} / 失败 {update.failed_count}"
        progress.update(task_id, completed=update.current_index, description=description)

    return callback


def _make_backups(paths: list[Path]) -> list[BackupInfo]:
    backups: list[BackupInfo] = []
    for path in paths:
        try:
            backups.append(create_backup(path))
        except ImageIOError as exc:
            typer.echo(f"备份失败：{exc}", err=True)
    return backups


def _attach_backups(result: BatchResult, backups: list[BackupInfo]) -> None:
    by_path = {backup.original_path: backup for backup in backups}
    result.backups = list(backups)
    for record in result.results:
        record.backup = by_path.get(record.path)


def _wait_for_batch(future: Future, token: CancellationToken) -> BatchResult:
    """等待批处理完成；Ctrl+C 只设置取消信号，当前文件仍会处理完毕。"""

    while True:
        try:
            return future.result()
        except KeyboardInterrupt:
            typer.echo("收到中断请求，当前文件处理完成后停止……", err=True)
            token.cancel()


@app.command("run")
def run_cli(  # noqa: PLR0913
    source: List[Path] = typer.Argument(..., help="源图片文件或目录，可指定多个"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="输出目录，缺省时写入原文件所在目录"),
    mode: OperationMode = typer.Option(OperationMode.OPTIMIZE, "--mode", "-m", help="操作模式"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help="输出格式，缺省时沿用原格式"),
    quality: Optional[float] = typer.Option(None, "--quality", "-q", help="压缩质量 0~100"),
    resize_mode: ResizeMode = typer.Option(ResizeMode.DIMENSIONS, "--resize-mode", help="缩放方式"),
    percentage: float = typer.Option(100.0, "--percentage", help="按百分比缩放时的比例 1~100"),
    max_width: Optional[int] = typer.Option(None, "--max-width", help="最大宽度"),
    max_height: Optional[int] = typer.Option(None, "--max-height", help="最大高度"),
    keep_aspect_ratio: bool = typer.Option(True, "--keep-aspect/--stretch", help="缩放时是否保持宽高比"),
    overwrite: bool = typer.Option(False, "--overwrite", help="沿用原文件名输出"),
    backup: bool = typer.Option(False, "--backup", help="处理前备份原文件"),
    report: Optional[str] = typer.Option(None, "--report", help="在输出目录写入 CSV 报告的文件名"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量处理。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)

    paths = _collect_paths(source)
    request = ConversionRequest(
        paths=paths,
        output_dir=output.expanduser().resolve() if output else None,
        output_format=_parse_format(output_format),
        overwrite=overwrite,
        operation_mode=mode,
        quality=quality,
        resize=ResizeParams(
            mode=resize_mode,
            percentage=percentage,
            max_width=max_width,
            max_height=max_height,
            keep_aspect_ratio=keep_aspect_ratio,
        ),
        create_backup=backup,
    )
    try:
        request.validate()
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    LOGGER.debug("CLI 参数解析完成，共 %d 个文件", len(paths))
    backups = _make_backups(paths) if request.create_backup else []

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
    )

    token = CancellationToken()
    with BatchRunner() as runner, progress:
        future = runner.submit(request, progress_callback=_build_progress_callback(progress), cancel_token=token)
        result = _wait_for_batch(future, token)

    _attach_backups(result, backups)

    for record in result.failed:
        typer.echo(f"失败：{record.path.name} - {record.error}", err=True)
    typer.echo(f"处理完成：成功 {result.success_count} 张，失败 {result.failed_count} 张，共 {result.total} 张。")
    for info in result.backups:
        typer.echo(f"备份：{info.original_path} -> {info.backup_path}")

    if report:
        report_dir = request.output_dir or Path.cwd()
        typer.echo(f"报告文件：{write_csv_report(result.results, report_dir, report)}")

    if result.failed_count:
        raise typer.Exit(code=1)


@app.command("scan")
def scan_cli(root: Path = typer.Argument(..., help="要扫描的目录")) -> None:
    """递归列出目录中支持的图片。"""

    try:
        paths = scan_directory_for_images(root.expanduser())
    except ImageIOError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    for path in paths:
        typer.echo(str(path))


@app.command("probe")
def probe_cli(path: Path = typer.Argument(..., help="图片文件")) -> None:
    """输出图片尺寸。"""

    try:
        dimensions = probe_dimensions(path)
    except ImageOptimizerError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"{dimensions.width}x{dimensions.height}")


@app.command("formats")
def formats_cli() -> None:
    """列出支持的输出格式。"""

    for tag in list_supported_formats():
        typer.echo(tag)


@app.command("restore")
def restore_cli(
    backup_path: Path = typer.Argument(..., help="备份文件"),
    restore_path: Path = typer.Argument(..., help="恢复到的位置"),
) -> None:
    """用备份覆盖目标文件并删除备份。"""

    try:
        restored = restore_backup(backup_path, restore_path)
    except ImageIOError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"已恢复：{restored}")


if __name__ == "__main__":
    app()
