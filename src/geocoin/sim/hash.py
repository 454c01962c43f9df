from __future__ import annotations

import hashlib
import json
from typing import Any

from geocoin.sim.core import Session


def _digest(payload: dict[str, Any]) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def session_hash(session: Session) -> str:
    return _digest(session.to_dict())


def storage_hash(values: dict[str, str]) -> str:
    return _digest(dict(values))
