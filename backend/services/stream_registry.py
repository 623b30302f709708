"""
Stream Registry - Keep recent streams addressable so their diffs can be applied
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from errors import NotFoundError
from services.stream_protocol import ChatStream

logger = logging.getLogger(__name__)


class StreamRegistry:
    """Bounded, insertion-ordered map of stream id to ChatStream"""

    def __init__(self, max_streams: int = 256):
        self.max_streams = max_streams
        self._streams: OrderedDict[str, ChatStream] = OrderedDict()

    def __len__(self) -> int:
        return len(self._streams)

    def open(self, stream_id: str | None = None) -> ChatStream:
        """Register a new stream, evicting old ones past the bound

        Finished streams go first; an open stream is only evicted when every
        other stream is still running, and its client then receives the
        cancellation error as its terminal event.
        """
        stream = ChatStream(stream_id)
        self._streams[stream.id] = stream
        while len(self._streams) > self.max_streams:
            evicted_id = self._eviction_candidate()
            evicted = self._streams.pop(evicted_id)
            evicted.cancel()
            evicted.diffs.clear()
            logger.debug("Evicted stream %s", evicted_id)
        return stream

    def _eviction_candidate(self) -> str:
        for stream_id, stream in self._streams.items():
            if stream.is_closed:
                return stream_id
        return next(iter(self._streams))

    def get(self, stream_id: str) -> ChatStream:
        try:
            return self._streams[stream_id]
        except KeyError:
            raise NotFoundError(f"Stream not found: {stream_id}") from None

    def remove(self, stream_id: str) -> ChatStream:
        """Cancel the stream if still open and drop its diff store"""
        stream = self.get(stream_id)
        del self._streams[stream_id]
        stream.cancel()
        stream.diffs.clear()
        return stream
