# errors.py -- errors for get
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

"""Exception classes raised by get.

Every error the engine can report derives from :class:`GetError`, so a caller
only needs a single ``except`` clause to present failures to the user.
"""

__all__ = [
    "GetError",
    "IoFailure",
    "NotARepo",
    "ObjectNotFound",
    "RepoAlreadyExists",
    "UnexpectedFormat",
    "Unsupported",
    "UnsupportedEncoding",
    "io_errors",
]

import os
from collections.abc import Iterator
from contextlib import contextmanager


class GetError(Exception):
    """Base class for all get errors."""


class RepoAlreadyExists(GetError):
    """Indicates that a repository already exists at the given path."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize a RepoAlreadyExists exception.

        Args:
            path: Work directory that already holds a repository.
        """
        self.path = os.fspath(path)
        super().__init__(f"repository already exists in {self.path}")


class NotARepo(GetError):
    """Indicates that no get repository was found."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize a NotARepo exception.

        Args:
            path: Directory that was searched.
        """
        self.path = os.fspath(path)
        super().__init__(f"not a get repository (or any parent): {self.path}")


class ObjectNotFound(GetError):
    """Indicates that a requested object is missing from the object store."""

    def __init__(self, kind: str, digest: str) -> None:
        """Initialize an ObjectNotFound exception.

        Args:
            kind: Object kind that was looked up ("commit", "tree" or "blob").
            digest: Digest of the missing object.
        """
        self.kind = kind
        self.digest = digest
        super().__init__(f"no such {kind}: {digest}")


class UnsupportedEncoding(GetError):
    """Indicates that a file is not valid UTF-8."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        super().__init__(f"only utf-8 is supported: {self.path}")


class UnexpectedFormat(GetError):
    """Indicates a malformed stored object, head or configuration file."""


class Unsupported(GetError):
    """Indicates a work tree entry get refuses to handle, like a symlink."""

    def __init__(self, path: str | os.PathLike[str], reason: str) -> None:
        """Initialize an Unsupported exception.

        Args:
            path: Offending path.
            reason: Short description of what is not supported.
        """
        self.path = os.fspath(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class IoFailure(GetError):
    """Wraps an underlying filesystem error.

    The original :class:`OSError` is available as ``__cause__``.
    """

    def __init__(self, error: OSError) -> None:
        self.error = error
        super().__init__(f"io error {error}")


@contextmanager
def io_errors() -> Iterator[None]:
    """Re-raise any OSError raised in the block as IoFailure."""
    try:
        yield
    except OSError as exc:
        raise IoFailure(exc) from exc
