"""
Binary scene file codec (fSpy-compatible).

Scene File Layout (little-endian):
    offset  size  field
    0       4     magic (2037412710)
    4       4     format version (1)
    8       4     length N of the JSON camera block
    12      4     length M of the image block
    16      N     JSON camera block (see scene.SceneDescription)
    16+N    M     original image file bytes, not re-encoded

Decoding is incremental: SceneDecoder.feed accepts arbitrary chunks and keeps
partial data buffered until a complete unit is available. States run
HEADER -> DATA -> IMAGE and back to HEADER after each emitted unit.
"""

import json
import struct
from enum import Enum
from typing import List
import logging

from .errors import MalformedInputError
from .scene import SceneData, SceneDescription

logger = logging.getLogger(__name__)

SCENE_MAGIC = 2037412710
SCENE_VERSION = 1

HEADER_FORMAT = '<IIII'
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

_UINT32_MAX = 0xFFFFFFFF


class ReadingState(Enum):
    HEADER = 'header'
    DATA = 'data'
    IMAGE = 'image'


def encode(scene: SceneData) -> bytes:
    """
    Encode a scene into the binary scene file format.

    Args:
        scene: Scene description and image bytes

    Returns:
        Encoded scene file contents
    """
    data = json.dumps(scene.description.to_dict(), separators=(',', ':')).encode('utf-8')
    image = bytes(scene.image)

    if len(data) > _UINT32_MAX or len(image) > _UINT32_MAX:
        raise ValueError("Scene blocks must each be smaller than 4 GiB")

    header = struct.pack(HEADER_FORMAT, SCENE_MAGIC, SCENE_VERSION, len(data), len(image))
    logger.debug(f"Encoded scene: data length {len(data)}, image length {len(image)}")
    return header + data + image


class SceneDecoder:
    """
    Incremental decoder for the binary scene format.

    Example usage:
        decoder = SceneDecoder()
        for chunk in chunks:
            for scene in decoder.feed(chunk):
                handle(scene)
    """

    def __init__(self):
        self._buffer = bytearray()
        self.state = ReadingState.HEADER
        self.data_length = 0
        self.image_length = 0
        self._description = None

    @property
    def buffered(self) -> int:
        """Number of bytes received but not yet consumed."""
        return len(self._buffer)

    def _take(self, n: int) -> bytes:
        chunk = bytes(self._buffer[:n])
        del self._buffer[:n]
        return chunk

    def _read_header(self) -> None:
        magic, version, self.data_length, self.image_length = struct.unpack(
            HEADER_FORMAT, self._take(HEADER_SIZE)
        )
        if magic != SCENE_MAGIC:
            raise MalformedInputError(f"Not a scene file: bad magic {magic}")
        if version != SCENE_VERSION:
            raise MalformedInputError(f"Unsupported scene file version {version}")

        logger.debug(
            f"Scene header: data length {self.data_length}, image length {self.image_length}"
        )
        self.state = ReadingState.DATA

    def _read_data(self) -> None:
        raw = self._take(self.data_length)
        try:
            document = json.loads(raw.decode('utf-8'))
        except ValueError as e:
            raise MalformedInputError(f"Camera block is not valid JSON: {e}") from e

        self._description = SceneDescription.from_dict(document)
        self.state = ReadingState.IMAGE

    def _read_image(self) -> SceneData:
        scene = SceneData(description=self._description, image=self._take(self.image_length))
        self._description = None
        self.state = ReadingState.HEADER
        return scene

    def feed(self, chunk: bytes) -> List[SceneData]:
        """
        Buffer a chunk and decode every unit that is now complete.

        Args:
            chunk: Next bytes of the stream (may be empty)

        Returns:
            Fully decoded scenes, possibly none

        Raises:
            MalformedInputError: On a bad header or camera block
        """
        self._buffer.extend(chunk)
        scenes = []

        while True:
            if self.state is ReadingState.HEADER and len(self._buffer) >= HEADER_SIZE:
                self._read_header()
            elif self.state is ReadingState.DATA and len(self._buffer) >= self.data_length:
                self._read_data()
            elif self.state is ReadingState.IMAGE and len(self._buffer) >= self.image_length:
                scenes.append(self._read_image())
            else:
                break

        return scenes

    def is_idle(self) -> bool:
        """True when no partially received unit is pending."""
        return self.state is ReadingState.HEADER and not self._buffer


def decode(buffer: bytes) -> SceneData:
    """
    Decode a complete scene file held in memory.

    Raises:
        MalformedInputError: If the buffer is truncated or malformed
    """
    decoder = SceneDecoder()
    scenes = decoder.feed(buffer)
    if not scenes:
        raise MalformedInputError(
            f"Truncated scene buffer ({len(buffer)} bytes, stopped in state {decoder.state.value})"
        )
    if len(scenes) > 1 or not decoder.is_idle():
        logger.warning("Scene buffer holds trailing data after the first scene")
    return scenes[0]
