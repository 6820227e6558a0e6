"""Decoded video frame."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VideoFrame:
    """A complete JPEG image cut out of the camera stream.

    ``jpeg`` holds the bytes from the start-of-image marker through the
    end-of-image marker inclusive; ``width``/``height`` come from decoding
    them, which is also what qualified the bytes as a frame.
    """

    jpeg: bytes
    width: int
    height: int
    sequence: int
