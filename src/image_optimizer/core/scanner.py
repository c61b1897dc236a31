"""目录扫描逻辑。"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator

from image_optimizer.core.exceptions import ImageIOError

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".tiff", ".tif", ".qoi", ".bmp"}
BACKUP_DIR_NAME = ".image_optimizer_backups"


def _iter_candidate_files(root: Path) -> Iterator[Path]:
    """深度优先遍历目录，子目录在同级文件之后展开。"""

    try:
        entries = sorted(os.scandir(root), key=lambda entry: entry.name.lower())
    except OSError as exc:
        raise ImageIOError(f"无法读取目录: {root}") from exc

    subdirs: list[Path] = []
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            if entry.name != BACKUP_DIR_NAME:
                subdirs.append(Path(entry.path))
        elif entry.is_file():
            yield Path(entry.path)

    for subdir in subdirs:
        yield from _iter_candidate_files(subdir)


def scan_directory_for_images(root: Path) -> list[Path]:
    """递归扫描目录，返回扩展名在白名单内的图片路径。"""

    root = Path(root)
    if not root.is_dir():
        raise ImageIOError(f"不是有效的目录: {root}")

    collected = [candidate for candidate in _iter_candidate_files(root) if candidate.suffix.lower() in IMAGE_EXTENSIONS]
    LOGGER.debug("在 %s 中发现 %d 个图片文件", root, len(collected))
    return collected
