# archive.py -- gzip archives carrying object metadata
# Copyright (C) 2023 The get contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# get is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Gzip encoder and decoder for stored objects.

Every stored object is a single RFC 1952 gzip member. The header is used to
carry metadata so an object can be reconstructed without a separate index:
``FNAME`` holds the entry name of trees and blobs, ``FCOMMENT`` holds the
commit message and ``MTIME`` the commit timestamp.

The standard library :mod:`gzip` module can read these files but cannot
write a comment field, hence the hand-rolled header handling. Decoding uses
the consumer pattern: feed data as it arrives, then call ``close()``.
"""

__all__ = [
    "MAX_MTIME",
    "ArchiveEntry",
    "GzipConsumer",
    "iter_archive_chunks",
    "read_archive",
    "write_archive",
]

import struct
import zlib
from collections.abc import Iterator
from typing import IO, NamedTuple

from .errors import UnexpectedFormat

GZIP_MAGIC = b"\x1f\x8b"
CM_DEFLATE = 8

FTEXT = 0x01
FHCRC = 0x02
FEXTRA = 0x04
FNAME = 0x08
FCOMMENT = 0x10

OS_UNKNOWN = 255

# MTIME is an unsigned 32-bit field.
MAX_MTIME = 0xFFFFFFFF

_TRAILER_SIZE = 8


class ArchiveEntry(NamedTuple):
    """Decoded archive: header metadata plus the uncompressed body."""

    name: str | None
    comment: str | None
    mtime: int
    body: bytes


def _encode_header_field(value: str, field: str) -> bytes:
    data = value.encode("utf-8")
    if b"\0" in data:
        raise ValueError(f"{field} may not contain NUL bytes: {value!r}")
    return data + b"\0"


def _decode_header_field(data: bytes, field: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UnexpectedFormat(f"gzip {field} is not valid utf-8") from exc


def iter_archive_chunks(
    body: bytes,
    name: str | None = None,
    comment: str | None = None,
    mtime: int = 0,
    compression_level: int = -1,
) -> Iterator[bytes]:
    """Generate the chunks of a gzip member.

    Args:
      body: Uncompressed payload
      name: Optional original file name stored in FNAME
      comment: Optional text stored in FCOMMENT
      mtime: Modification time stored in MTIME
      compression_level: zlib compression level
    Returns: Iterator over byte chunks
    """
    if not 0 <= mtime <= MAX_MTIME:
        raise ValueError(f"mtime out of range: {mtime}")
    flags = 0
    extra = b""
    if name is not None:
        flags |= FNAME
        extra += _encode_header_field(name, "name")
    if comment is not None:
        flags |= FCOMMENT
        extra += _encode_header_field(comment, "comment")
    yield GZIP_MAGIC + struct.pack("<BBIBB", CM_DEFLATE, flags, mtime, 0, OS_UNKNOWN)
    if extra:
        yield extra
    compobj = zlib.compressobj(compression_level, zlib.DEFLATED, -zlib.MAX_WBITS)
    yield compobj.compress(body)
    yield compobj.flush()
    yield struct.pack("<II", zlib.crc32(body) & 0xFFFFFFFF, len(body) & 0xFFFFFFFF)


def write_archive(
    f: IO[bytes],
    body: bytes,
    name: str | None = None,
    comment: str | None = None,
    mtime: int = 0,
    compression_level: int = -1,
) -> None:
    """Write a gzip member to a file-like object.

    See iter_archive_chunks for the meaning of the arguments.
    """
    for chunk in iter_archive_chunks(
        body,
        name=name,
        comment=comment,
        mtime=mtime,
        compression_level=compression_level,
    ):
        f.write(chunk)


def _parse_header(
    data: bytes,
) -> tuple[str | None, str | None, int, int] | None:
    """Parse a gzip header.

    Returns: Tuple of (name, comment, mtime, header length), or None if more
        data is needed.
    """
    if data[: len(GZIP_MAGIC)] != GZIP_MAGIC[: len(data)]:
        raise UnexpectedFormat("invalid gzip data")
    if len(data) < 10:
        return None
    cm, flags, mtime = struct.unpack("<BBI", data[2:8])
    if cm != CM_DEFLATE:
        raise UnexpectedFormat(f"unsupported gzip compression method {cm}")
    i = 10
    name = comment = None
    try:
        if flags & FEXTRA:
            (xlen,) = struct.unpack("<H", data[i : i + 2])
            i += 2 + xlen
        if flags & FNAME:
            end = data.index(b"\0", i)
            name = _decode_header_field(data[i:end], "name")
            i = end + 1
        if flags & FCOMMENT:
            end = data.index(b"\0", i)
            comment = _decode_header_field(data[i:end], "comment")
            i = end + 1
    except (ValueError, struct.error):
        # Field terminator not seen yet
        return None
    if flags & FHCRC:
        i += 2
    if len(data) < i:
        return None
    return name, comment, mtime, i


class GzipConsumer:
    """Consumer class to provide gzip decoding on the fly."""

    def __init__(self) -> None:
        self._data = b""
        self._decoder: "zlib._Decompress | None" = None
        self._header: tuple[str | None, str | None, int] | None = None
        self._chunks: list[bytes] = []
        self._trailer = b""

    def feed(self, data: bytes) -> None:
        """Feed compressed data to the decoder."""
        if self._decoder is None:
            # check if we have a full gzip header
            data = self._data + data
            parsed = _parse_header(data)
            if parsed is None:
                self._data = data
                return  # need more data
            name, comment, mtime, offset = parsed
            self._header = (name, comment, mtime)
            self._data = b""
            self._decoder = zlib.decompressobj(-zlib.MAX_WBITS)
            data = data[offset:]
        if self._decoder.eof:
            self._trailer += data
            return
        try:
            chunk = self._decoder.decompress(data)
        except zlib.error as exc:
            raise UnexpectedFormat(f"corrupt gzip stream: {exc}") from exc
        if chunk:
            self._chunks.append(chunk)
        if self._decoder.eof:
            self._trailer += self._decoder.unused_data

    def close(self) -> ArchiveEntry:
        """Finish decoding and verify the gzip trailer.

        Returns: The decoded ArchiveEntry
        Raises:
          UnexpectedFormat: if the data is truncated or fails verification
        """
        if self._decoder is None or self._header is None:
            raise UnexpectedFormat("truncated gzip header")
        if not self._decoder.eof:
            raise UnexpectedFormat("truncated gzip stream")
        if len(self._trailer) < _TRAILER_SIZE:
            raise UnexpectedFormat("truncated gzip trailer")
        if len(self._trailer) > _TRAILER_SIZE:
            raise UnexpectedFormat("trailing data after gzip member")
        body = b"".join(self._chunks)
        crc, size = struct.unpack("<II", self._trailer)
        if crc != zlib.crc32(body) & 0xFFFFFFFF:
            raise UnexpectedFormat("gzip crc mismatch")
        if size != len(body) & 0xFFFFFFFF:
            raise UnexpectedFormat("gzip size mismatch")
        name, comment, mtime = self._header
        return ArchiveEntry(name, comment, mtime, body)


def read_archive(f: IO[bytes], bufsize: int = 65536) -> ArchiveEntry:
    """Read a complete gzip member from a file-like object."""
    consumer = GzipConsumer()
    while True:
        data = f.read(bufsize)
        if not data:
            break
        consumer.feed(data)
    return consumer.close()
