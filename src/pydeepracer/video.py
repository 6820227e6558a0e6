"""Camera stream: JPEG frame extraction from the device's MJPEG route.

The device serves ``multipart/x-mixed-replace`` with its own boundary
tokens.  The decoder ignores that framing and cuts frames on
the raw JPEG start/end-of-image markers instead.  Marker bytes inside a
part header would desynchronize it; that has not been observed with the
device's boundary string and is left as is.
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import AsyncIterator
from urllib.parse import urlencode

from PIL import Image

from pydeepracer._constants import (
    JPEG_EOI,
    JPEG_SOI,
    STREAM_BUFFER_LIMIT,
    VIDEO_ROUTE_PATH,
    VIDEO_TOPIC,
)
from pydeepracer._transport import DeviceTransport
from pydeepracer.exceptions import DeepRacerFrameDecodeError
from pydeepracer.models.video import VideoFrame
from pydeepracer.session import Session

_logger = logging.getLogger(__name__)


def decode_jpeg(data: bytes) -> tuple[int, int]:
    """Fully decode *data* and return its ``(width, height)``.

    Raises
    ------
    DeepRacerFrameDecodeError
        If Pillow cannot decode the bytes as a complete image.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return image.size
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise DeepRacerFrameDecodeError(f"Invalid JPEG frame ({len(data)} bytes): {exc}") from exc


class MjpegFrameDecoder:
    """Turn arbitrarily split stream chunks into complete JPEG frames.

    Feed chunks in arrival order; each call returns the frames completed by
    that chunk, oldest first.  The internal buffer never holds more than
    *max_buffer_size* bytes once :meth:`feed` returns.
    """

    def __init__(self, max_buffer_size: int = STREAM_BUFFER_LIMIT) -> None:
        self._buffer = bytearray()
        self._max_buffer_size = max_buffer_size
        self._sequence = 0
        self.frames_dropped = 0
        self.buffer_resets = 0

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    @property
    def frames_emitted(self) -> int:
        return self._sequence

    def reset(self) -> None:
        self._buffer.clear()

    def feed(self, chunk: bytes) -> list[VideoFrame]:
        self._buffer.extend(chunk)
        frames: list[VideoFrame] = []

        while True:
            start = self._buffer.find(JPEG_SOI)
            if start < 0:
                break
            end = self._buffer.find(JPEG_EOI, start + len(JPEG_SOI))
            if end < 0:
                break
            end += len(JPEG_EOI)

            data = bytes(self._buffer[start:end])
            del self._buffer[:end]

            try:
                width, height = decode_jpeg(data)
            except DeepRacerFrameDecodeError as exc:
                self.frames_dropped += 1
                _logger.debug("Dropping frame: %s", exc)
                continue

            self._sequence += 1
            frames.append(VideoFrame(jpeg=data, width=width, height=height, sequence=self._sequence))

        if len(self._buffer) > self._max_buffer_size:
            _logger.debug("Stream buffer exceeded %d bytes without a frame; clearing", self._max_buffer_size)
            self._buffer.clear()
            self.buffer_resets += 1

        return frames


def build_stream_path(width: int, height: int) -> str:
    query = urlencode({"topic": VIDEO_TOPIC, "width": width, "height": height}, safe="/")
    return f"{VIDEO_ROUTE_PATH}?{query}"


class VideoStream:
    """Reader for the camera route of one authenticated session.

    Usage::

        stream = VideoStream(session, transport)
        async for frame in stream.frames():
            show(frame.jpeg)
    """

    def __init__(
        self,
        session: Session,
        transport: DeviceTransport,
        *,
        width: int = 480,
        height: int = 360,
        max_buffer_size: int = STREAM_BUFFER_LIMIT,
    ) -> None:
        self._session = session
        self._transport = transport
        self._path = build_stream_path(width, height)
        self.decoder = MjpegFrameDecoder(max_buffer_size)

    @property
    def path(self) -> str:
        return self._path

    async def frames(self) -> AsyncIterator[VideoFrame]:
        """Yield frames until the stream ends or the consumer stops iterating.

        Marker scanning and Pillow decoding run in a worker thread so the
        drive loop keeps its cadence.  Cancelling the consuming task closes
        the connection.
        """
        headers = {"Referer": self._session.home_url}
        self.decoder.reset()
        async with self._transport.stream(self._path, headers=headers) as chunks:
            _logger.debug("Video stream opened on %s", self._session.host)
            async for chunk in chunks:
                for frame in await asyncio.to_thread(self.decoder.feed, chunk):
                    yield frame
        _logger.debug("Video stream on %s ended", self._session.host)
