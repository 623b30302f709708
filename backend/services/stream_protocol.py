"""
Stream Protocol - Per-request state machine for assistant response events

A stream is Open until exactly one terminal event (error or done) is
emitted, after which it is Closed and accepts nothing further.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from enum import Enum

from errors import ProtocolError, ValidationError
from models.diff import DiffProposal
from models.stream import DiffEvent, DoneEvent, ErrorEvent, StreamResponse, TokenEvent, is_terminal
from services.diff_store import DiffStore

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


def error_event_for(exc: BaseException) -> ErrorEvent:
    """Map an exception onto a terminal error event"""
    if isinstance(exc, ValidationError):
        reason = "validation"
    elif isinstance(exc, ProtocolError):
        reason = "protocol"
    else:
        reason = "upstream"
    return ErrorEvent(error=str(exc) or "Unknown error", reason=reason)


class ChatStream:
    """Explicit state machine for one stream: state plus ordered event log"""

    def __init__(self, stream_id: str | None = None):
        self.id = stream_id or uuid.uuid4().hex
        self.state = StreamState.OPEN
        self.diffs = DiffStore()
        self._log: list[StreamResponse] = []
        self._tokens: list[str] = []

    @classmethod
    def replay(cls, events: Iterable[StreamResponse], stream_id: str | None = None) -> "ChatStream":
        """Rebuild a stream from a recorded event sequence

        Raises ProtocolError on the first event the protocol would reject.
        """
        stream = cls(stream_id)
        for event in events:
            stream.emit(event)
        return stream

    @property
    def is_closed(self) -> bool:
        return self.state is StreamState.CLOSED

    @property
    def events(self) -> tuple[StreamResponse, ...]:
        return tuple(self._log)

    @property
    def text(self) -> str:
        return "".join(self._tokens)

    @property
    def terminal(self) -> StreamResponse | None:
        if self.is_closed:
            return self._log[-1]
        return None

    @property
    def proposed_diffs(self) -> list[DiffProposal]:
        """Every diff emitted on this stream, in order"""
        return [event.diff for event in self._log if isinstance(event, DiffEvent)]

    def emit(self, event: StreamResponse) -> StreamResponse:
        """Advance the state machine, returning the event to deliver"""
        if self.is_closed:
            raise ProtocolError(f"event after terminal: {event.type}")

        if isinstance(event, TokenEvent):
            self._tokens.append(event.content)
        elif isinstance(event, DiffEvent):
            if self.diffs.has_seen(event.diff.id):
                raise ProtocolError(f"duplicate diff id: {event.diff.id}")
            self.diffs.add(event.diff)
        elif isinstance(event, DoneEvent) and event.stream_id is None:
            event = event.model_copy(update={"stream_id": self.id})

        self._log.append(event)
        if is_terminal(event):
            self.state = StreamState.CLOSED
        return event

    def offer(self, event: StreamResponse) -> StreamResponse | None:
        """Like emit, but violations are logged and dropped instead of raised"""
        try:
            return self.emit(event)
        except ProtocolError as e:
            logger.warning("Stream %s discarded %s event: %s", self.id, event.type, e.message)
            return None

    def cancel(self) -> StreamResponse:
        """Close an abandoned stream; held diffs stay discardable"""
        if not self.is_closed:
            logger.info("Stream %s cancelled", self.id)
            self.emit(ErrorEvent(error="Stream cancelled", reason="cancelled"))
        return self.terminal

    def synthesize(self, model: str | None = None) -> StreamResponse:
        """Single terminal response equivalent to the whole stream"""
        if not self.is_closed:
            raise ProtocolError("cannot synthesize an open stream")
        terminal = self.terminal
        if isinstance(terminal, ErrorEvent):
            return terminal
        return DoneEvent(
            stream_id=self.id,
            content=self.text,
            diffs=self.proposed_diffs,
            model=model,
        )


async def guard_stream(
    stream: ChatStream,
    source: AsyncIterator[StreamResponse],
    timeout: float | None = None,
) -> AsyncIterator[StreamResponse]:
    """Drive raw events from source through the stream state machine

    Yields only events the protocol accepts and always ends with exactly one
    terminal event: the source's own, an error built from a source failure,
    an error with reason "timeout" once the deadline passes, a synthesized
    done when the source runs dry, or the cancellation error when the stream
    is closed from outside (dropped or evicted) while still running. The
    source is not pulled again once the stream is closed. Closing this
    generator early cancels the stream.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout if timeout is not None else None
    iterator = source.__aiter__()
    terminal_sent = False

    try:
        while not stream.is_closed:
            remaining = None if deadline is None else deadline - loop.time()
            try:
                if remaining is not None and remaining <= 0:
                    raise asyncio.TimeoutError
                event = await asyncio.wait_for(iterator.__anext__(), remaining)
            except StopAsyncIteration:
                event = DoneEvent()
            except asyncio.TimeoutError:
                logger.warning("Stream %s timed out after %ss", stream.id, timeout)
                event = ErrorEvent(error=f"Stream timed out after {timeout}s", reason="timeout")
            except Exception as e:
                logger.exception("Stream %s source failed", stream.id)
                event = error_event_for(e)

            delivered = stream.offer(event)
            if delivered is not None:
                terminal_sent = is_terminal(delivered)
                yield delivered

        if not terminal_sent:
            # closed by someone else while the source was still running
            yield stream.terminal
    finally:
        if not stream.is_closed:
            stream.cancel()
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
