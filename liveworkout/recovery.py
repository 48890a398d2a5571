"""Crash recovery for an in-progress session.

The snapshot is written to two files so a write interrupted halfway still
leaves one readable copy. Files are named ``<base>_1.json`` and
``<base>_2.json``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from core import DEFAULT_RECOVERY_BASE


def recovery_files(base: Path = DEFAULT_RECOVERY_BASE) -> tuple[Path, Path]:
    base = Path(base)
    return (
        base.with_name(base.name + "_1.json"),
        base.with_name(base.name + "_2.json"),
    )


def save_recovery_state(payload: dict, base: Path = DEFAULT_RECOVERY_BASE) -> None:
    """Persist ``payload`` to both recovery files."""

    text = json.dumps(payload)
    try:
        for path in recovery_files(base):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
    except OSError:
        logging.exception("Could not write session recovery files for %s", base)


def load_recovery_state(base: Path = DEFAULT_RECOVERY_BASE) -> dict | None:
    """Return the first readable snapshot, or ``None``."""

    for path in recovery_files(base):
        if not path.exists():
            continue
        try:
            text = path.read_text().strip()
            if not text:
                continue
            return json.loads(text)
        except (OSError, ValueError):
            logging.warning("Skipping unreadable recovery file %s", path)
    return None


def clear_recovery_files(base: Path = DEFAULT_RECOVERY_BASE) -> None:
    for path in recovery_files(base):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
