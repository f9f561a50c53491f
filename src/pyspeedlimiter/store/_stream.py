"""Server-sent event decoding and the local mirror of a streamed node.

The Realtime Database REST streaming endpoint emits ``put`` and ``patch``
events relative to the subscribed location. The mirror applies them so the
subscriber can always be handed the full current value.
"""

from __future__ import annotations

import codecs
import copy
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ServerSentEvent:
    event: str
    data: str


class SseDecoder:
    """Incremental ``text/event-stream`` decoder.

    Accepts arbitrary byte chunks; a single event line may be far larger
    than any transport buffer (the first ``put`` carries the whole node).
    """

    def __init__(self) -> None:
        self._text = codecs.getincrementaldecoder("utf-8")()
        self._pending = ""
        self._event = ""
        self._data: list[str] = []

    def feed(self, chunk: bytes) -> list[ServerSentEvent]:
        """Consume a chunk and return every event it completes."""
        self._pending += self._text.decode(chunk)
        events: list[ServerSentEvent] = []
        while True:
            newline = self._pending.find("\n")
            if newline < 0:
                break
            line, self._pending = self._pending[:newline], self._pending[newline + 1 :]
            event = self.feed_line(line)
            if event is not None:
                events.append(event)
        return events

    def feed_line(self, line: str) -> ServerSentEvent | None:
        """Consume one line; return an event when a blank line completes it."""
        line = line.rstrip("\r\n")
        if not line:
            if not self._event and not self._data:
                return None
            event = ServerSentEvent(event=self._event or "message", data="\n".join(self._data))
            self._event = ""
            self._data = []
            return event
        if line.startswith(":"):
            return None

        field_name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field_name == "event":
            self._event = value
        elif field_name == "data":
            self._data.append(value)
        return None


def _split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _set_path(node: Any, segments: list[str], value: Any) -> Any:
    """Return *node* with *value* written at *segments*; ``None`` deletes.

    Empty containers collapse to ``None``, as the database does.
    """
    if not segments:
        return copy.deepcopy(value)

    children: dict[str, Any] = dict(node) if isinstance(node, dict) else {}
    head, rest = segments[0], segments[1:]
    child = _set_path(children.get(head), rest, value)
    if child is None:
        children.pop(head, None)
    else:
        children[head] = child
    return children or None


class StreamMirror:
    """Local copy of the streamed location."""

    def __init__(self) -> None:
        self._root: Any = None

    @property
    def value(self) -> Any:
        return copy.deepcopy(self._root)

    def put(self, path: str, data: Any) -> None:
        self._root = _set_path(self._root, _split_path(path), data)

    def patch(self, path: str, data: Any) -> None:
        if not isinstance(data, dict):
            self.put(path, data)
            return
        base = _split_path(path)
        for key, value in data.items():
            self._root = _set_path(self._root, base + _split_path(str(key)), value)

    def apply(self, event: str, path: str, data: Any) -> None:
        if event == "put":
            self.put(path, data)
        elif event == "patch":
            self.patch(path, data)
        else:
            raise ValueError(f"unsupported stream event {event!r}")
