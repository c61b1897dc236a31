"""原始文件的备份、恢复与删除。

备份文件位于原文件同级的隐藏目录 ``.image_optimizer_backups`` 中，
命名为 ``<unix 时间戳>_<原文件名>``；同一秒内重复备份时为 ``<unix 时间戳>-<序号>_<原文件名>``。
"""

from __future__ import annotations

import logging
import shutil
import time
from itertools import count
from pathlib import Path

from image_optimizer.core.exceptions import ImageIOError
from image_optimizer.core.models import BackupInfo
from image_optimizer.core.scanner import BACKUP_DIR_NAME

LOGGER = logging.getLogger(__name__)


def create_backup(path: Path) -> BackupInfo:
    """复制文件到备份目录，并校验写入后的文件大小。"""

    source = Path(path)
    if not source.is_file():
        raise ImageIOError(f"待备份文件不存在: {source}")

    backup_dir = source.parent / BACKUP_DIR_NAME
    backup_path = _unique_backup_path(backup_dir, int(time.time()), source.name)

    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, backup_path)
    except OSError as exc:
        raise ImageIOError(f"创建备份失败: {source}") from exc

    if not backup_path.is_file() or backup_path.stat().st_size != source.stat().st_size:
        raise ImageIOError(f"备份校验失败: {backup_path}")

    LOGGER.info("已备份 %s -> %s", source, backup_path)
    return BackupInfo(original_path=source, backup_path=backup_path)


def restore_backup(backup_path: Path, restore_path: Path) -> Path:
    """用备份覆盖目标文件，随后删除备份。"""

    backup_path = Path(backup_path)
    restore_path = Path(restore_path)
    if not backup_path.is_file():
        raise ImageIOError(f"备份文件不存在: {backup_path}")

    try:
        restore_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(backup_path, restore_path)
        backup_path.unlink()
    except OSError as exc:
        raise ImageIOError(f"恢复备份失败: {backup_path} -> {restore_path}") from exc

    LOGGER.info("已从备份恢复 %s", restore_path)
    return restore_path


def delete_backup(backup_path: Path) -> bool:
    """删除备份文件；文件不存在时直接返回 False。"""

    backup_path = Path(backup_path)
    try:
        backup_path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise ImageIOError(f"删除备份失败: {backup_path}") from exc
    return True


def _unique_backup_path(backup_dir: Path, timestamp: int, name: str) -> Path:
    """同一秒内重复备份时在时间戳后追加序号，避免覆盖已有备份。"""

    candidate = backup_dir / f"{timestamp}_{name}"
    for idx in count(1):
        if not candidate.exists():
            return candidate
        candidate = backup_dir / f"{timestamp}-{idx}_{name}"
    return candidate
