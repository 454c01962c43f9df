from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Protocol

CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")


class KeyValueStorage(Protocol):
    """String-keyed persistence medium; a missing key reads as ``None``."""

    warnings: list[str]

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


def _require_str(value: object, *, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.warnings: list[str] = []
        self._values: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[_require_str(key, field_name="storage key")] = _require_str(value, field_name=f"storage[{key}]")

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(sorted(self._values.items()))


class JsonFileStorage:
    """Keys held in one JSON object file, rewritten atomically on every change.

    An unreadable file opens as empty and each discarded entry is noted in
    ``warnings``; the file itself is left alone until the next write.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.warnings: list[str] = []
        self._values: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as exc:
            self.warnings.append(f"ignoring unreadable storage file {self.path}: {exc}")
            return {}
        if not isinstance(payload, dict):
            self.warnings.append(f"ignoring storage file {self.path}: must contain a JSON object")
            return {}
        values: dict[str, str] = {}
        for key, value in payload.items():
            if not isinstance(value, str):
                self.warnings.append(f"ignoring storage[{key}]: must be a string")
                continue
            values[key] = value
        return values

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[_require_str(key, field_name="storage key")] = _require_str(value, field_name=f"storage[{key}]")
        self.flush()

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self.flush()

    def snapshot(self) -> dict[str, str]:
        return dict(sorted(self._values.items()))

    def flush(self) -> None:
        _write_atomic_json(self.path, self.snapshot())


def _canonical_json(payload: dict[str, str]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def _write_atomic_json(path: str | Path, payload: dict[str, str]) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    serialized = _canonical_json(payload)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(serialized)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise
