from __future__ import annotations

import threading
from typing import Any, Mapping

from .utils import log_line


def _format_fields(fields: Mapping[str, Any]) -> str:
    return ", ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))


def _harvest_event(label: str = "", *, phase: str | None = None, **fields: Any) -> None:
    """Emit one ``[HARVEST][LABEL] key=value, ...`` line.

    ``phase`` doubles as the label when no label is given; otherwise it is
    logged as a field. Events raised on partition worker threads carry the
    thread name so interleaved waves can be told apart.
    """

    try:
        if label and phase:
            fields.setdefault("phase", phase)
        tag = (label or phase or "").upper()
        thread = threading.current_thread()
        if thread is not threading.main_thread():
            fields.setdefault("thread", thread.name)
        log_line(f"[HARVEST][{tag}] {_format_fields(fields)}")
    except Exception:  # noqa: BLE001
        # A logging failure must not end a partition.
        return


__all__ = ["_harvest_event"]
