# file.py -- Safe access to get files
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

"""Safe access to get files."""

__all__ = [
    "FileLocked",
    "GetFile",
]

import os
import warnings
from types import TracebackType
from typing import IO


class FileLocked(OSError):
    """File is already locked."""

    def __init__(self, filename: str, lockfilename: str) -> None:
        """Initialize FileLocked.

        Args:
          filename: Name of the file that is locked
          lockfilename: Name of the lock file
        """
        super().__init__(f"{filename} is locked by {lockfilename}")
        self.filename = filename
        self.lockfilename = lockfilename


def GetFile(
    filename: str | os.PathLike[str],
    mode: str = "rb",
    mask: int = 0o644,
    fsync: bool = True,
) -> "IO[bytes] | _GetFile":
    """Create a file object that obeys the lock file protocol.

    Only read-only and write-only (binary) modes are supported. Writes go to
    ``<filename>.lock`` which replaces the target when the file is closed, so
    readers never observe a half-written file.

    Args:
      filename: Path to the file
      mode: File mode (only 'rb' and 'wb' are supported)
      mask: File mask for created files
      fsync: Whether to call fsync() before closing

    Returns: a builtin file object or a _GetFile object
    """
    if "a" in mode:
        raise OSError("append mode not supported for get files")
    if "+" in mode:
        raise OSError("read/write mode not supported for get files")
    if "b" not in mode:
        raise OSError("text mode not supported for get files")
    if "w" in mode:
        return _GetFile(filename, mode, mask, fsync)
    else:
        return open(filename, mode)


class _GetFile:
    """File that follows the lock file protocol for writes.

    All writes to a file foo will be written into foo.lock in the same
    directory, and the lockfile will be renamed to overwrite the original file
    on close.

    Note: You *must* call close() or abort() on a _GetFile for the lock to be
        released. Typically this will happen through the context manager.
    """

    def __init__(
        self,
        filename: str | os.PathLike[str],
        mode: str,
        mask: int,
        fsync: bool = True,
    ) -> None:
        self._filename = os.fspath(filename)
        self._lockfilename = self._filename + ".lock"
        self._fsync = fsync
        try:
            fd = os.open(
                self._lockfilename,
                os.O_RDWR | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0),
                mask,
            )
        except FileExistsError as exc:
            raise FileLocked(self._filename, self._lockfilename) from exc
        self._file = os.fdopen(fd, mode)
        self._closed = False

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def abort(self) -> None:
        """Close and discard the lockfile without overwriting the target.

        If the file is already closed, this is a no-op.
        """
        if self._closed:
            return
        self._file.close()
        try:
            os.remove(self._lockfilename)
        except FileNotFoundError:
            # The file may have been removed already, which is ok.
            pass
        self._closed = True

    def close(self) -> None:
        """Close this file, saving the lockfile over the original.

        Raises:
          OSError: if the original file could not be overwritten. The lock
            file is removed in that case.
        """
        if self._closed:
            return
        self._file.flush()
        if self._fsync:
            os.fsync(self._file.fileno())
        self._file.close()
        try:
            os.replace(self._lockfilename, self._filename)
        finally:
            self.abort()

    @property
    def closed(self) -> bool:
        """Return whether the file is closed."""
        return self._closed

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            warnings.warn(f"unclosed {self!r}", ResourceWarning, stacklevel=2)
            self.abort()

    def __enter__(self) -> "_GetFile":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()
