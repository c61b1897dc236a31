"""协作式取消信号。"""

from __future__ import annotations

import threading


class CancellationToken:
    """批处理在每个文件开始前读取一次的取消标志。

    基于 threading.Event，set/clear/is_set 均可跨线程直接调用。
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


# 进程级共享信号；未显式传入 token 的批处理共用它，同时运行多个批处理时会相互影响。
DEFAULT_TOKEN = CancellationToken()


def request_cancel() -> None:
    DEFAULT_TOKEN.cancel()


def reset_cancel() -> None:
    DEFAULT_TOKEN.reset()
