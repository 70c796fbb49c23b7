"""User-facing outcome messages emitted by stateful services."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class Toast:
    title: str
    description: str
    variant: str = "default"

    @property
    def destructive(self) -> bool:
        return self.variant == "destructive"


def success(title: str, description: str) -> Toast:
    return Toast(title=title, description=description)


def failure(title: str, description: str) -> Toast:
    return Toast(title=title, description=description, variant="destructive")


class ToastLog:
    """Bounded log of recent toasts, newest last."""

    def __init__(self, maxlen: int = 20) -> None:
        self._items: deque[Toast] = deque(maxlen=maxlen)

    def push(self, toast: Toast) -> Toast:
        self._items.append(toast)
        return toast

    def recent(self) -> list[Toast]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()
