"""批处理驱动：命名规则、错误隔离、进度通知与取消。"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterator

import numpy as np
import pytest
from PIL import Image

from image_optimizer import api
from image_optimizer.core.cancellation import DEFAULT_TOKEN, CancellationToken, request_cancel, reset_cancel
from image_optimizer.core.config import ConversionRequest, OperationMode, ResizeMode, ResizeParams
from image_optimizer.core.exceptions import WorkerDispatchError
from image_optimizer.core.formats import OutputFormat
from image_optimizer.core.models import FileStatus
from image_optimizer.core.progress import ProgressUpdate
from image_optimizer.processing.pipeline import BatchRunner, process_batch


@pytest.fixture(autouse=True)
def _reset_shared_token() -> Iterator[None]:
    reset_cancel()
    yield
    reset_cancel()


def make_request(paths: list[Path], output: Path | None, **kwargs) -> ConversionRequest:
    return ConversionRequest(paths=paths, output_dir=output, **kwargs)


def _make_images(directory: Path, count: int, size: tuple[int, int] = (64, 48)) -> list[Path]:
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for idx in range(count):
        path = directory / f"img{idx}.png"
        Image.new("RGB", size, (idx * 40 % 256, 100, 200)).save(path)
        paths.append(path)
    return paths


def _assert_invariants(result, request: ConversionRequest) -> None:
    assert result.total == len(request.paths)
    assert len(result.results) == result.total
    assert result.success_count + result.failed_count == result.total
    assert [record.path for record in result.results] == [Path(p) for p in request.paths]


@pytest.mark.parametrize(
    ("mode", "suffix"),
    [
        (OperationMode.OPTIMIZE, "optimized"),
        (OperationMode.RESIZE, "resized"),
        (OperationMode.CONVERT, "converted"),
        (OperationMode.OPTIMIZE_RESIZE, "optimized_resized"),
        (OperationMode.ALL, "processed"),
    ],
)
def test_output_name_uses_mode_suffix(tmp_path: Path, mode: OperationMode, suffix: str) -> None:
    paths = _make_images(tmp_path / "input", 1)
    output = tmp_path / "output"
    request = make_request(paths, output, operation_mode=mode)

    result = process_batch(request)

    record = result.results[0]
    assert record.status is FileStatus.SUCCESS
    assert record.output_path == output / f"img0_{suffix}.png"
    assert record.output_path.exists()
    assert record.output_size == record.output_path.stat().st_size
    assert record.output_path.name != paths[0].name


def test_overwrite_without_output_dir_writes_next_to_input(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 2)
    request = make_request(paths, None, overwrite=True, operation_mode=OperationMode.CONVERT)

    result = process_batch(request)

    assert result.success_count == 2
    for path, record in zip(paths, result.results):
        assert record.output_path == path
        assert record.output_path.parent == path.parent


def test_explicit_format_changes_extension(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 1)
    output = tmp_path / "output"
    request = make_request(paths, output, operation_mode=OperationMode.CONVERT, output_format=OutputFormat.WEBP)

    result = process_batch(request)

    record = result.results[0]
    assert record.output_path == output / "img0_converted.webp"
    with Image.open(record.output_path) as img:
        assert img.format == "WEBP"


def test_jpeg_input_keeps_jpeg_family(tmp_path: Path) -> None:
    source = tmp_path / "photo.jpeg"
    Image.new("RGB", (30, 30), "green").save(source)

    result = process_batch(make_request([source], tmp_path / "out"))

    assert result.results[0].output_path == tmp_path / "out" / "photo_optimized.jpg"


def test_unsupported_extension_is_not_decoded(tmp_path: Path) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("definitely not an image")

    result = process_batch(make_request([notes], tmp_path / "out"))

    record = result.results[0]
    assert record.status is FileStatus.FAILED
    assert record.error_code == "unsupported_format"


def test_failures_do_not_affect_siblings(tmp_path: Path) -> None:
    source = tmp_path / "input"
    good = _make_images(source, 2)
    corrupted = source / "corrupted.png"
    corrupted.write_text("not an image")
    paths = [good[0], corrupted, good[1]]
    request = make_request(paths, tmp_path / "out")

    result = process_batch(request)

    _assert_invariants(result, request)
    assert [record.status for record in result.results] == [
        FileStatus.SUCCESS,
        FileStatus.FAILED,
        FileStatus.SUCCESS,
    ]
    assert result.results[1].error_code == "decode_error"
    assert result.results[1].error
    assert result.backups == []


def test_percentage_resize_reports_in_memory_dimensions(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 1, size=(200, 100))
    request = make_request(
        paths,
        tmp_path / "out",
        operation_mode=OperationMode.RESIZE,
        resize=ResizeParams(mode=ResizeMode.PERCENTAGE, percentage=50),
    )

    record = process_batch(request).results[0]

    assert (record.output_width, record.output_height) == (100, 50)
    with Image.open(record.output_path) as img:
        assert img.size == (100, 50)


def test_dimensions_resize_within_bounds_is_noop(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 1, size=(80, 60))
    request = make_request(
        paths,
        tmp_path / "out",
        operation_mode=OperationMode.ALL,
        resize=ResizeParams(max_width=100, max_height=100, keep_aspect_ratio=True),
    )

    record = process_batch(request).results[0]

    assert (record.output_width, record.output_height) == (80, 60)


def test_optimize_mode_ignores_resize_bounds(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 1, size=(400, 200))
    request = make_request(
        paths,
        tmp_path / "out",
        operation_mode=OperationMode.OPTIMIZE,
        resize=ResizeParams(max_width=100, max_height=100),
    )

    record = process_batch(request).results[0]

    assert (record.output_width, record.output_height) == (400, 200)


def test_output_directory_is_created_recursively(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 1)
    output = tmp_path / "a" / "b" / "c"

    result = process_batch(make_request(paths, output))

    assert result.success_count == 1
    assert output.is_dir()


def test_progress_is_emitted_before_and_after_each_file(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 2)
    updates: list[ProgressUpdate] = []

    process_batch(make_request(paths, tmp_path / "out"), progress_callback=updates.append)

    assert [(u.current_index, u.current_file) for u in updates] == [
        (0, "img0.png"),
        (1, None),
        (1, "img1.png"),
        (2, None),
    ]
    assert all(u.total == 2 for u in updates)
    assert (updates[-1].success_count, updates[-1].failed_count) == (2, 0)


def test_failing_progress_callback_does_not_abort(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 2)

    def broken(update: ProgressUpdate) -> None:
        raise RuntimeError("ui went away")

    result = process_batch(make_request(paths, tmp_path / "out"), progress_callback=broken)

    assert result.success_count == 2


def test_cancellation_marks_remaining_files(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 4)
    request = make_request(paths, tmp_path / "out")
    token = CancellationToken()
    cancel_at = 2

    def cancel_after_second(update: ProgressUpdate) -> None:
        if update.current_file is None and update.current_index == cancel_at:
            token.cancel()

    result = process_batch(request, progress_callback=cancel_after_second, cancel_token=token)

    _assert_invariants(result, request)
    assert [r.status for r in result.results[:cancel_at]] == [FileStatus.SUCCESS] * cancel_at
    for record in result.results[cancel_at:]:
        assert record.status is FileStatus.FAILED
        assert record.error_code == "cancelled"
        assert record.output_path is None
    assert result.failed_count == 2
    assert token.is_cancelled


def test_shared_token_cancels_and_resets(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 2)
    request = make_request(paths, tmp_path / "out")

    request_cancel()
    request_cancel()
    cancelled = process_batch(request)
    assert cancelled.failed_count == 2
    assert DEFAULT_TOKEN.is_cancelled
    assert not (tmp_path / "out").exists()

    reset_cancel()
    completed = process_batch(request)
    assert completed.success_count == 2


def test_per_batch_token_is_isolated_from_shared_token(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 1)
    request_cancel()

    result = process_batch(make_request(paths, tmp_path / "out"), cancel_token=CancellationToken())

    assert result.success_count == 1


def test_runner_executes_on_dedicated_thread(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 1)
    thread_names: list[str] = []

    def record_thread(update: ProgressUpdate) -> None:
        thread_names.append(threading.current_thread().name)

    with BatchRunner() as runner:
        future = runner.submit(make_request(paths, tmp_path / "out"), progress_callback=record_thread)
        result = future.result(timeout=60)

    assert result.success_count == 1
    assert thread_names
    assert all(name.startswith("image-optimizer-batch") for name in thread_names)
    assert threading.current_thread().name not in thread_names


def test_runner_rejects_batches_after_shutdown(tmp_path: Path) -> None:
    runner = BatchRunner()
    runner.shutdown()

    with pytest.raises(WorkerDispatchError):
        runner.submit(make_request([], tmp_path))


def test_api_convert_batch(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 3)
    request = make_request(paths, tmp_path / "out", operation_mode=OperationMode.OPTIMIZE, quality=40)

    result = api.convert_batch(request, cancel_token=CancellationToken())

    _assert_invariants(result, request)
    assert result.success_count == 3


def test_empty_batch(tmp_path: Path) -> None:
    result = process_batch(make_request([], tmp_path / "out"))

    assert result.total == 0
    assert result.results == []
    assert result.success_count == result.failed_count == 0


def test_invalid_request_fails_every_file_without_raising(tmp_path: Path) -> None:
    paths = _make_images(tmp_path / "input", 2, size=(40, 40))
    request = make_request(
        paths,
        tmp_path / "out",
        operation_mode=OperationMode.RESIZE,
        resize=ResizeParams(max_width=0, max_height=10),
    )

    result = api.convert_batch(request, cancel_token=CancellationToken())

    _assert_invariants(result, request)
    assert result.failed_count == 2
    assert all(record.error_code == "invalid_configuration" for record in result.results)
    assert not (tmp_path / "out").exists()


def test_convert_mode_keeps_16bit_gray_levels(tmp_path: Path) -> None:
    source = tmp_path / "gray16.png"
    Image.fromarray(np.full((8, 8), 32768, dtype=np.uint16)).save(source)

    record = process_batch(make_request([source], tmp_path / "out", operation_mode=OperationMode.CONVERT)).results[0]

    assert record.status is FileStatus.SUCCESS
    with Image.open(record.output_path) as img:
        assert img.convert("RGB").getpixel((0, 0)) == (128, 128, 128)
