from __future__ import annotations

from typing import Literal

from . import config
from .logging_utils import _harvest_event
from .utils import log_line

Entrypoint = Literal["cli", "replay", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _harvest_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def _clamp_at_least_one(field: str, entrypoint: Entrypoint) -> None:
    value = getattr(config, field)
    if value >= 1:
        return
    _harvest_event(
        "state",
        phase="config",
        context="runtime_validation",
        kind="config_adjustment",
        field=field,
        value=value,
        adjusted=1,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {field} < 1; clamping to 1.")
    setattr(config, field, 1)


def validate_runtime_config(entrypoint: Entrypoint, *, backend: str | None = None) -> None:
    """Validate runtime configuration for the given entrypoint.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Non-fatal adjustments (e.g., clamping a wave width of 0) are logged but
    do not raise.
    """

    effective_backend = (backend or config.HARVEST_BACKEND).strip().lower()
    if effective_backend not in config.KNOWN_BACKENDS:
        _raise_config_error(
            f"Unknown automation backend {effective_backend!r}.",
            entrypoint=entrypoint,
            error="unknown_backend",
        )

    if config.is_snapshot_backend(effective_backend) and entrypoint == "cli" and not config.SNAPSHOT_DIR.is_dir():
        _raise_config_error(
            f"Snapshot backend selected but {config.SNAPSHOT_DIR} is not a directory.",
            entrypoint=entrypoint,
            error="snapshot_dir_missing",
        )

    _clamp_at_least_one("WAVE_WIDTH", entrypoint)
    _clamp_at_least_one("FLUSH_THRESHOLD", entrypoint)

    for field_name in ("MAX_EMPTY_HARVESTS", "RESUME_CEILING", "MAX_RESUME_ADVANCES"):
        if getattr(config, field_name) < 0:
            _raise_config_error(
                f"{field_name} must be non-negative.",
                entrypoint=entrypoint,
                error="negative_limit",
            )

    if config.PARTITION_RECORD_CAP <= 0:
        _raise_config_error(
            "PARTITION_RECORD_CAP must be greater than zero.",
            entrypoint=entrypoint,
            error="invalid_record_cap",
        )

    timeout_fields = [
        ("NAV_TIMEOUT_SECONDS", config.NAV_TIMEOUT_SECONDS),
        ("APPEARANCE_TIMEOUT_MS", config.APPEARANCE_TIMEOUT_MS),
    ]
    for field_name, value in timeout_fields:
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_timeout",
            )


__all__ = ["validate_runtime_config", "Entrypoint"]
