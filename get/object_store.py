# object_store.py -- Object store for get
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

"""Content-addressed object store on disk.

Objects live in ``<objects>/<kind>/<digest>``, one gzip archive each (see
:mod:`get.archive`). The store is write-once: an object that is already
present is never rewritten.
"""

__all__ = [
    "OBJECT_MODE",
    "DiskObjectStore",
]

import os
from collections.abc import Iterator

from .archive import ArchiveEntry, read_archive, write_archive
from .errors import IoFailure, ObjectNotFound, io_errors
from .file import GetFile
from .hash import valid_hexdigest
from .objects import OBJECT_KINDS

# Stored objects are immutable.
OBJECT_MODE = 0o444


class DiskObjectStore:
    """Object store that exists on disk."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        compression_level: int = -1,
        fsync_object_files: bool = False,
    ) -> None:
        """Open an object store.

        Args:
          path: Path of the object store.
          compression_level: zlib compression level for objects
          fsync_object_files: whether to fsync object files for durability
        """
        self.path = os.fspath(path)
        self.compression_level = compression_level
        self.fsync_object_files = fsync_object_files

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.path!r})>"

    @classmethod
    def init(
        cls, path: str | os.PathLike[str], *, dir_mode: int | None = None
    ) -> "DiskObjectStore":
        """Initialize a new disk object store.

        Creates the object directory and one subdirectory per object kind.

        Args:
          path: Path where the object store should be created
          dir_mode: Optional permission bits for the created directories
        Returns:
          New DiskObjectStore instance
        """
        dirs = [os.fspath(path)] + [os.path.join(path, kind) for kind in OBJECT_KINDS]
        with io_errors():
            for d in dirs:
                try:
                    os.mkdir(d)
                except FileExistsError:
                    continue
                if dir_mode is not None:
                    os.chmod(d, dir_mode)
        return cls(path)

    def _kind_path(self, kind: str) -> str:
        if kind not in OBJECT_KINDS:
            raise ValueError(f"unknown object kind {kind!r}")
        return os.path.join(self.path, kind)

    def _object_path(self, kind: str, digest: str) -> str:
        return os.path.join(self._kind_path(kind), digest)

    def contains(self, kind: str, digest: str) -> bool:
        """Check whether an object is present in the store."""
        if not valid_hexdigest(digest):
            return False
        return os.path.exists(self._object_path(kind, digest))

    def iter_digests(self, kind: str) -> Iterator[str]:
        """Iterate over the digests of all stored objects of one kind."""
        with io_errors():
            names = sorted(os.listdir(self._kind_path(kind)))
        for name in names:
            if valid_hexdigest(name):
                yield name

    def write(
        self,
        kind: str,
        digest: str,
        body: bytes,
        *,
        name: str | None = None,
        comment: str | None = None,
        mtime: int = 0,
    ) -> bool:
        """Add a single object to this object store.

        Args:
          kind: Object kind
          digest: Digest the object is stored under
          body: Uncompressed payload
          name: File name to record in the archive header
          comment: Comment to record in the archive header
          mtime: Modification time to record in the archive header
        Returns: False if an object with this digest was already present, in
          which case nothing is written
        """
        if not valid_hexdigest(digest):
            raise ValueError(f"invalid digest {digest!r}")
        path = self._object_path(kind, digest)
        with io_errors():
            if os.path.exists(path):
                return False  # Already there, no need to write again
            with GetFile(
                path, "wb", mask=OBJECT_MODE, fsync=self.fsync_object_files
            ) as f:
                write_archive(
                    f,
                    body,
                    name=name,
                    comment=comment,
                    mtime=mtime,
                    compression_level=self.compression_level,
                )
        return True

    def read(self, kind: str, digest: str) -> ArchiveEntry:
        """Read and decode a stored object.

        Raises:
          ObjectNotFound: if no object with this digest is stored
          UnexpectedFormat: if the archive is corrupt
        """
        if not valid_hexdigest(digest):
            raise ObjectNotFound(kind, digest)
        path = self._object_path(kind, digest)
        try:
            f = open(path, "rb")
        except FileNotFoundError as exc:
            raise ObjectNotFound(kind, digest) from exc
        except OSError as exc:
            raise IoFailure(exc) from exc
        with io_errors(), f:
            return read_archive(f)
