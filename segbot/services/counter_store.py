from __future__ import annotations

import json
import logging
from pathlib import Path

from core.errors import CorruptStateError

LOGGER = logging.getLogger(__name__)


class CounterStore:
    """Monotonic ticket number persisted as ``{"counter": N}``."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> int:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            LOGGER.info("Ticket counter file not found at %s, starting from 1", self.path)
            return 1
        except OSError as exc:
            raise CorruptStateError(f"Unable to read ticket counter: {exc}") from exc

        if not content.strip():
            return 1
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise CorruptStateError(f"Ticket counter is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptStateError("Ticket counter root must be an object")
        counter = data.get("counter")
        if counter is None:
            return 1
        if isinstance(counter, bool) or not isinstance(counter, int):
            raise CorruptStateError(f"Ticket counter must be an integer, got {counter!r}")
        return counter if counter > 0 else 1

    def _write(self, value: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"counter": value}, indent=2), encoding="utf-8")

    def peek(self) -> int:
        try:
            return self._read()
        except CorruptStateError:
            return 1

    def next(self) -> int:
        try:
            counter = self._read()
        except CorruptStateError:
            LOGGER.exception("Ticket counter at %s is corrupt, resetting", self.path)
            counter = 1
            try:
                self._write(1)
            except OSError:
                LOGGER.exception("Error resetting ticket counter")

        try:
            self._write(counter + 1)
        except OSError:
            LOGGER.exception("Error saving ticket counter")
        return counter
