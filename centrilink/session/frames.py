"""Typed control messages and the fixed-priority frame classifier.

A raw WebSocket frame (text or binary) is turned into one or more immutable
:class:`ControlMessage` variants:

    - ConnectAck: reply to the handshake request
    - ConnectRejected: error reply to the handshake request
    - SubscribeAck: reply to one of the subscribe requests
    - Heartbeat: application-level ping from the server (``{}``)
    - Push: unsolicited publication on a channel
    - Unrecognized: anything else, including undecodable frames

Classification is a fixed priority list; the first match wins so ambiguous
objects are never routed twice. The classifier never raises.

Example:
    >>> classifier = FrameClassifier(subscribe_count=2)
    >>> classifier.classify_frame('{"id":1,"connect":{"client":"abc","ping":25}}')
    [ConnectAck(client_id='abc', heartbeat_interval=25.0)]
"""

import json
from dataclasses import dataclass
from typing import Any

from ..mechanism import MalformedFrame, ProtocolAnomaly
from ..utils import compact_json, get_short_error_info, json_size


@dataclass(frozen=True)
class ConnectAck:
    client_id: str | None
    heartbeat_interval: float | None = None


@dataclass(frozen=True)
class ConnectRejected:
    code: int | None
    message: str


@dataclass(frozen=True)
class SubscribeAck:
    request_id: int
    ok: bool
    error: str | None = None


@dataclass(frozen=True)
class Heartbeat:
    pass


@dataclass(frozen=True)
class Push:
    """A publication. ``size`` is the compact JSON size of ``payload``."""

    channel: str
    payload: Any
    size: int


@dataclass(frozen=True)
class Unrecognized:
    raw: str
    note: str = ""


ControlMessage = (
    ConnectAck | ConnectRejected | SubscribeAck | Heartbeat | Push | Unrecognized
)

# Every variant the session must be able to dispatch.
CONTROL_MESSAGE_TYPES: tuple[type, ...] = (
    ConnectAck,
    ConnectRejected,
    SubscribeAck,
    Heartbeat,
    Push,
    Unrecognized,
)


class FrameClassifier:
    """Stateless parser from raw frames to :data:`ControlMessage` variants.

    Parameters:
        handshake_id: Correlation id of the ``connect`` request.
        subscribe_base_id: Correlation id of the first ``subscribe`` request.
        subscribe_count: Number of subscribe requests issued; ids in
            ``[subscribe_base_id, subscribe_base_id + subscribe_count)`` are
            subscribe replies.
    """

    def __init__(
        self,
        handshake_id: int = 1,
        subscribe_base_id: int = 100,
        subscribe_count: int = 0,
    ):
        self.handshake_id = handshake_id
        self.subscribe_base_id = subscribe_base_id
        self.subscribe_count = subscribe_count

    def classify_frame(self, data: str | bytes, binary: bool = False) -> list[ControlMessage]:
        """Classify one transport frame.

        A JSON array, or several newline-delimited JSON documents, yields one
        message per element. If any part fails to decode the whole frame is a
        single :class:`Unrecognized`.

        Args:
            data: Frame payload as delivered by the transport.
            binary: Whether the transport marked the frame binary. Binary and
                text frames are classified alike; the flag is only reported
                in the note of an undecodable frame.
        """
        try:
            documents = self._decode(data)
        except MalformedFrame as e:
            note = f"binary frame: {e.message}" if binary else e.message
            return [Unrecognized(raw=_raw_text(data), note=note)]

        messages: list[ControlMessage] = []
        for doc in documents:
            if isinstance(doc, list):
                messages.extend(self.classify(item) for item in doc)
            else:
                messages.append(self.classify(doc))
        return messages

    def classify(self, obj: Any) -> ControlMessage:
        """Classify one decoded JSON value."""
        try:
            return self._classify_object(obj)
        except ProtocolAnomaly as e:
            note = e.message
        except RecursionError:
            note = "nesting too deep"
        try:
            raw = compact_json(obj)
        except RecursionError:
            raw = ""
        return Unrecognized(raw=raw, note=note)

    # ---------------- internals ---------------- #
    def _decode(self, data: str | bytes) -> list[Any]:
        if isinstance(data, (bytes, bytearray, memoryview)):
            try:
                text = bytes(data).decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedFrame(get_short_error_info(e), source="FrameClassifier")
        else:
            text = data

        # json.loads raises RecursionError on deeply nested input.
        try:
            return [json.loads(text)]
        except (ValueError, RecursionError) as e:
            first_error = e

        # Centrifugo batches several replies into one frame, one per line.
        lines = [line for line in text.splitlines() if line.strip()]
        if len(lines) < 2:
            raise MalformedFrame(get_short_error_info(first_error), source="FrameClassifier")
        try:
            return [json.loads(line) for line in lines]
        except (ValueError, RecursionError) as e:
            raise MalformedFrame(get_short_error_info(e), source="FrameClassifier")

    def _classify_object(self, obj: Any) -> ControlMessage:
        if not isinstance(obj, dict):
            return Unrecognized(raw=compact_json(obj), note="not an object")

        # 1. heartbeat request
        if not obj or (set(obj) == {"ping"} and obj["ping"] in ({}, None)):
            return Heartbeat()

        msg_id = obj.get("id")
        if type(msg_id) is not int:
            # true == 1, and 1.0 is not a correlation id either
            msg_id = None

        # 2. handshake reply
        if msg_id is not None and msg_id == self.handshake_id:
            connect = obj.get("connect")
            if connect is None and isinstance(obj.get("result"), dict):
                result = obj["result"]
                connect = result.get("connect", result)
            if "error" in obj:
                return self._connect_rejected(obj["error"])
            if connect is not None:
                return self._connect_ack(connect)

        # 3. subscribe reply
        if (
            msg_id is not None
            and self.subscribe_base_id
            <= msg_id
            < self.subscribe_base_id + self.subscribe_count
        ):
            if "error" in obj:
                return SubscribeAck(
                    request_id=msg_id, ok=False, error=_error_text(obj["error"])
                )
            if "subscribe" in obj or "result" in obj:
                return SubscribeAck(request_id=msg_id, ok=True)

        # 4. publication
        if "push" in obj:
            push = obj["push"]
            if not isinstance(push, dict):
                raise ProtocolAnomaly("push is not an object", source="FrameClassifier")
            channel = push.get("channel") or ""
            return Push(channel=str(channel), payload=push, size=json_size(push))

        return Unrecognized(raw=compact_json(obj))

    def _connect_ack(self, connect: Any) -> ConnectAck:
        if not isinstance(connect, dict):
            raise ProtocolAnomaly("connect reply is not an object", source="FrameClassifier")
        client_id = connect.get("client")
        interval = connect.get("ping")
        if isinstance(interval, bool) or not isinstance(interval, (int, float)):
            interval = None
        elif interval <= 0:
            interval = None
        return ConnectAck(
            client_id=str(client_id) if client_id is not None else None,
            heartbeat_interval=float(interval) if interval is not None else None,
        )

    def _connect_rejected(self, error: Any) -> ConnectRejected:
        code = error.get("code") if isinstance(error, dict) else None
        return ConnectRejected(
            code=code if isinstance(code, int) else None,
            message=_error_text(error),
        )


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message")
        code = error.get("code")
        if message is not None and code is not None:
            return f"{code}: {message}"
        if message is not None:
            return str(message)
    return compact_json(error)


def _raw_text(data: str | bytes) -> str:
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8", errors="replace")
