"""Server-sent event decoding and snapshot tree maintenance.

The realtime database streams a collection as ``put``/``patch`` events
addressed by a slash-separated path relative to the subscribed location.
:class:`SnapshotTree` folds those events into the full collection value so
every event can be turned into a complete snapshot.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any

from fleetsync.exceptions import FleetStreamError


@dataclass(frozen=True)
class ServerEvent:
    event: str
    data: str


class SseDecoder:
    """Incremental ``text/event-stream`` decoder.

    Feed one decoded line at a time; a complete event is returned when the
    blank line terminating it is seen.
    """

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []

    def feed(self, line: str) -> ServerEvent | None:
        line = line.rstrip("\r\n")
        if not line:
            if not self._event and not self._data:
                return None
            event = ServerEvent(event=self._event or "message", data="\n".join(self._data))
            self._event = ""
            self._data = []
            return event
        if line.startswith(":"):
            return None

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        return None


def decode_payload(event: ServerEvent) -> tuple[str, Any]:
    """Return ``(path, data)`` from a ``put``/``patch`` event body."""
    try:
        body = json.loads(event.data)
    except json.JSONDecodeError as exc:
        raise FleetStreamError(f"Invalid JSON in {event.event} event: {event.data[:200]}") from exc
    if not isinstance(body, dict) or "path" not in body:
        raise FleetStreamError(f"Missing 'path' in {event.event} event")
    return str(body["path"]), body.get("data")


def _split(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _as_dict(node: Any) -> dict[str, Any]:
    if isinstance(node, dict):
        return node
    if isinstance(node, list):
        return {str(i): v for i, v in enumerate(node) if v is not None}
    return {}


class SnapshotTree:
    """Current value of a streamed location."""

    def __init__(self) -> None:
        self.root: Any = None

    def put(self, path: str, data: Any) -> None:
        """Replace the value at *path*; ``None`` deletes it."""
        parts = _split(path)
        if not parts:
            self.root = copy.deepcopy(data)
            return

        self.root = _as_dict(self.root)
        chain: list[dict[str, Any]] = [self.root]
        node = self.root
        for part in parts[:-1]:
            child = _as_dict(node.get(part))
            node[part] = child
            node = child
            chain.append(node)

        leaf = parts[-1]
        if data is None:
            node.pop(leaf, None)
            # The store holds no empty objects; drop parents emptied by the delete.
            for depth in range(len(chain) - 1, 0, -1):
                if chain[depth]:
                    break
                chain[depth - 1].pop(parts[depth - 1], None)
        else:
            node[leaf] = copy.deepcopy(data)

        if not self.root:
            self.root = None

    def patch(self, path: str, data: Any) -> None:
        """Update the listed children of *path*."""
        if not isinstance(data, dict):
            raise FleetStreamError(f"patch at {path!r} carries a non-object payload")
        base = path.rstrip("/")
        for key, value in data.items():
            self.put(f"{base}/{key}", value)

    def apply(self, event: str, path: str, data: Any) -> None:
        if event == "put":
            self.put(path, data)
        elif event == "patch":
            self.patch(path, data)
        else:
            raise FleetStreamError(f"Unsupported stream event {event!r}")
