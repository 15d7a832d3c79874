# test_archive.py -- tests for the gzip object encoding
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

"""Tests for get.archive."""

import gzip
import struct
from io import BytesIO

from get.archive import (
    FCOMMENT,
    FNAME,
    ArchiveEntry,
    GzipConsumer,
    read_archive,
    write_archive,
)
from get.errors import UnexpectedFormat

from . import TestCase


def _encode(body: bytes, **kwargs) -> bytes:  # type: ignore[no-untyped-def]
    f = BytesIO()
    write_archive(f, body, **kwargs)
    return f.getvalue()


class WriteArchiveTests(TestCase):
    def test_header_flags(self) -> None:
        data = _encode(b"x", name="a.txt", comment="msg", mtime=1680873704)
        self.assertEqual(b"\x1f\x8b\x08", data[:3])
        self.assertEqual(FNAME | FCOMMENT, data[3])
        self.assertEqual(1680873704, struct.unpack("<I", data[4:8])[0])
        self.assertEqual(b"a.txt\0msg\0", data[10:20])

    def test_no_optional_fields(self) -> None:
        data = _encode(b"x")
        self.assertEqual(0, data[3])

    def test_nul_in_comment_rejected(self) -> None:
        self.assertRaises(ValueError, _encode, b"x", comment="a\0b")

    def test_nul_in_name_rejected(self) -> None:
        self.assertRaises(ValueError, _encode, b"x", name="a\0b")

    def test_mtime_out_of_range(self) -> None:
        self.assertRaises(ValueError, _encode, b"x", mtime=-1)
        self.assertRaises(ValueError, _encode, b"x", mtime=2**32)

    def test_stdlib_can_read(self) -> None:
        data = _encode(b"thats\nall,\nfolks!", name="test_file.txt", mtime=5)
        with gzip.GzipFile(fileobj=BytesIO(data)) as f:
            self.assertEqual(b"thats\nall,\nfolks!", f.read())
            self.assertEqual(5, f.mtime)


class ReadArchiveTests(TestCase):
    def test_roundtrip_metadata(self) -> None:
        data = _encode(
            b"body\n",
            name="wörktree.rs",
            comment="descriptive commit message\nwith several\nlines.",
            mtime=1680873704,
        )
        self.assertEqual(
            ArchiveEntry(
                "wörktree.rs",
                "descriptive commit message\nwith several\nlines.",
                1680873704,
                b"body\n",
            ),
            read_archive(BytesIO(data)),
        )

    def test_empty_body(self) -> None:
        entry = read_archive(BytesIO(_encode(b"", name="empty")))
        self.assertEqual(b"", entry.body)
        self.assertEqual("empty", entry.name)
        self.assertIsNone(entry.comment)

    def test_reads_stdlib_output(self) -> None:
        data = gzip.compress(b"from the stdlib", mtime=0)
        entry = read_archive(BytesIO(data))
        self.assertEqual(b"from the stdlib", entry.body)
        self.assertIsNone(entry.name)

    def test_small_reads(self) -> None:
        data = _encode(b"a" * 1000, name="name", comment="comment")
        entry = read_archive(BytesIO(data), bufsize=1)
        self.assertEqual(b"a" * 1000, entry.body)
        self.assertEqual("comment", entry.comment)

    def test_not_gzip(self) -> None:
        self.assertRaises(UnexpectedFormat, read_archive, BytesIO(b"plain text"))

    def test_empty_file(self) -> None:
        self.assertRaises(UnexpectedFormat, read_archive, BytesIO(b""))

    def test_truncated(self) -> None:
        data = _encode(b"some body that is long enough", name="x")
        for cut in (5, 12, len(data) - 4):
            self.assertRaises(
                UnexpectedFormat, read_archive, BytesIO(data[:cut])
            )

    def test_crc_mismatch(self) -> None:
        data = bytearray(_encode(b"body"))
        data[-8] ^= 0xFF
        self.assertRaises(UnexpectedFormat, read_archive, BytesIO(bytes(data)))

    def test_trailing_data(self) -> None:
        data = _encode(b"body") + b"junk"
        self.assertRaises(UnexpectedFormat, read_archive, BytesIO(data))


class GzipConsumerTests(TestCase):
    def test_feed_in_chunks(self) -> None:
        data = _encode(b"hello world", name="greeting", mtime=7)
        consumer = GzipConsumer()
        for i in range(0, len(data), 3):
            consumer.feed(data[i : i + 3])
        self.assertEqual(
            ArchiveEntry("greeting", None, 7, b"hello world"), consumer.close()
        )

    def test_close_without_data(self) -> None:
        self.assertRaises(UnexpectedFormat, GzipConsumer().close)
