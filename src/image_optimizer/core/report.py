"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from image_optimizer.core.models import FileResult

HEADER = ["source_path", "output_path", "status", "output_size", "output_width", "output_height", "error"]


def write_csv_report(results: Iterable[FileResult], output_dir: Path, filename: str) -> Path:
    """将处理结果写入 CSV 报告。"""

    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = output_dir / filename
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in results:
            writer.writerow(
                [
                    str(record.path),
                    str(record.output_path) if record.output_path else "",
                    record.status.value,
                    _format_optional(record.output_size),
                    _format_optional(record.output_width),
                    _format_optional(record.output_height),
                    record.error or "",
                ]
            )
    return report_path


def _format_optional(value: int | None) -> str:
    if value is None:
        return ""
    return str(value)
