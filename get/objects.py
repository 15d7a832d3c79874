# objects.py -- Access to get objects
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

"""Access to get objects.

There are exactly three kinds of object:

* :class:`Commit` -- the root of a snapshot. It lists the entries of the
  work directory and carries the parent digest, author, timestamp and
  message.
* :class:`Tree` -- a directory, listing its entries.
* :class:`Blob` -- the content of a regular file.

Trees and blobs are referenced from their parent by a *content line* of the
form ``"<kind>\\t<digest>\\t<name>"``. The lines of a commit or tree are
sorted before hashing so the digest does not depend on the order in which
the filesystem lists a directory.

The kinds form a closed union (:data:`ShaObject`); operations dispatch on it
with ``match`` rather than through a class hierarchy.
"""

__all__ = [
    "BLOB_KIND",
    "COMMIT_KIND",
    "OBJECT_KINDS",
    "TREE_KIND",
    "Blob",
    "Commit",
    "Serialized",
    "ShaObject",
    "Tree",
    "append_content",
    "check_entry_name",
    "content_line",
    "format_content_line",
    "kind_of",
    "parse_content_line",
    "read_blob",
    "read_commit",
    "read_tree",
    "save",
    "serialize",
    "update_digest",
]

import os
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple, TypeAlias

if sys.version_info >= (3, 11):
    from typing import assert_never
else:
    from typing_extensions import assert_never

from .archive import MAX_MTIME
from .errors import (
    UnexpectedFormat,
    Unsupported,
    UnsupportedEncoding,
    io_errors,
)
from .hash import new_hash, valid_hexdigest

if TYPE_CHECKING:
    from .object_store import DiskObjectStore

COMMIT_KIND = "commit"
TREE_KIND = "tree"
BLOB_KIND = "blob"

OBJECT_KINDS = (COMMIT_KIND, TREE_KIND, BLOB_KIND)

# Number of property lines at the start of a serialized commit body.
_COMMIT_PROPERTY_LINES = 3

_FORBIDDEN_NAME_CHARS = ("\t", "\n", "\r")


@dataclass
class Commit:
    """Root object of a snapshot.

    ``path`` is the absolute path of the work directory.
    """

    path: str
    parent: str
    author: str
    timestamp: int
    message: str
    content: list[str] = field(default_factory=list)
    digest: str = ""

    @property
    def properties(self) -> list[str]:
        """Properties folded into the digest, in hashing order."""
        return [self.parent, self.author, str(self.timestamp), self.message]


@dataclass
class Tree:
    """A directory; ``path`` is relative to the work directory."""

    path: str
    content: list[str] = field(default_factory=list)
    digest: str = ""


@dataclass
class Blob:
    """A regular file.

    ``path`` is relative to the work directory, ``abs_path`` is where the
    file is read from when building a snapshot and is None for blobs read
    back from the object store.
    """

    path: str
    abs_path: str | None = None
    content: bytes = b""
    digest: str = ""


ShaObject: TypeAlias = Commit | Tree | Blob


class Serialized(NamedTuple):
    """An object in the shape the object store persists it."""

    kind: str
    body: bytes
    name: str | None
    comment: str | None
    mtime: int


def kind_of(obj: ShaObject) -> str:
    """Return the kind name of an object."""
    match obj:
        case Commit():
            return COMMIT_KIND
        case Tree():
            return TREE_KIND
        case Blob():
            return BLOB_KIND
        case _:
            assert_never(obj)


def check_entry_name(name: str, path: str) -> None:
    """Check that name can be represented in a content line.

    Raises:
      Unsupported: if the name contains a tab or line break
      UnsupportedEncoding: if the name is not valid UTF-8
    """
    if not name or any(c in name for c in _FORBIDDEN_NAME_CHARS):
        raise Unsupported(path, "file names with tabs or line breaks")
    try:
        name.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise UnsupportedEncoding(path) from exc


def format_content_line(kind: str, digest: str, name: str) -> str:
    """Format the line a tree or blob contributes to its parent."""
    return f"{kind}\t{digest}\t{name}"


def parse_content_line(line: str) -> tuple[str, str, str]:
    """Parse a content line.

    Args:
      line: Line without terminator
    Returns: Tuple of (kind, digest, name)
    Raises:
      UnexpectedFormat: if the line is malformed
    """
    try:
        kind, digest, name = line.split("\t", 2)
    except ValueError as exc:
        raise UnexpectedFormat(f"malformed content line: {line!r}") from exc
    if kind not in (TREE_KIND, BLOB_KIND):
        raise UnexpectedFormat(f"unknown object kind {kind!r} in {line!r}")
    if not valid_hexdigest(digest):
        raise UnexpectedFormat(f"invalid digest {digest!r} in {line!r}")
    if name in ("", ".", "..") or "\t" in name or "/" in name or os.sep in name:
        raise UnexpectedFormat(f"invalid entry name in {line!r}")
    return kind, digest, name


def _line_key(line: str) -> str:
    # Lines are ordered as they are hashed, terminator included.
    return line + "\n"


def _hash_lines(h, lines: list[str]) -> None:
    for line in lines:
        h.update(line.encode("utf-8"))
        h.update(b"\n")


def update_digest(obj: ShaObject) -> str:
    """Compute and store the digest of an object.

    For a blob the file is read from disk. For commits and trees the content
    lines are sorted first; a commit additionally hashes its properties.

    Returns: The new digest
    Raises:
      IoFailure: if a blob's file cannot be read
      UnsupportedEncoding: if a blob's file is not valid UTF-8
    """
    h = new_hash()
    match obj:
        case Commit():
            obj.content.sort(key=_line_key)
            _hash_lines(h, obj.content)
            for prop in obj.properties:
                h.update(prop.encode("utf-8"))
        case Tree():
            obj.content.sort(key=_line_key)
            _hash_lines(h, obj.content)
        case Blob():
            if obj.abs_path is not None:
                with io_errors(), open(obj.abs_path, "rb") as f:
                    obj.content = f.read()
            try:
                obj.content.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise UnsupportedEncoding(obj.abs_path or obj.path) from exc
            h.update(obj.content)
        case _:
            assert_never(obj)
    obj.digest = h.hexdigest()
    return obj.digest


def append_content(obj: ShaObject, line: str) -> None:
    """Add a child content line to a commit or tree.

    Raises:
      TypeError: for blobs, whose content is the file body
    """
    match obj:
        case Commit() | Tree():
            obj.content.append(line)
        case Blob():
            raise TypeError(f"blob {obj.path} cannot have children")
        case _:
            assert_never(obj)


def content_line(obj: ShaObject) -> str:
    """Return the line an object contributes to its parent's content.

    Raises:
      TypeError: for commits, which are never children
      ValueError: if the digest has not been computed yet
    """
    match obj:
        case Commit():
            raise TypeError("a commit has no content line")
        case Tree() | Blob():
            if not obj.digest:
                raise ValueError(f"digest of {obj.path} has not been computed")
            name = os.path.basename(obj.path)
            check_entry_name(name, obj.path)
            return format_content_line(kind_of(obj), obj.digest, name)
        case _:
            assert_never(obj)


def _lines_body(lines: list[str]) -> bytes:
    return "".join(line + "\n" for line in lines).encode("utf-8")


def serialize(obj: ShaObject) -> Serialized:
    """Serialize an object for storage.

    Raises:
      ValueError: if the digest has not been computed, or a commit
        property cannot be represented
    """
    if not obj.digest:
        raise ValueError(f"digest of {obj.path} has not been computed")
    match obj:
        case Commit():
            if "\n" in obj.author:
                raise ValueError(f"author may not contain newlines: {obj.author!r}")
            props = [obj.parent, obj.author, str(obj.timestamp)]
            mtime = obj.timestamp if 0 <= obj.timestamp <= MAX_MTIME else 0
            return Serialized(
                COMMIT_KIND,
                _lines_body(props + obj.content),
                None,
                obj.message,
                mtime,
            )
        case Tree():
            return Serialized(
                TREE_KIND,
                _lines_body(obj.content),
                os.path.basename(obj.path),
                None,
                0,
            )
        case Blob():
            return Serialized(
                BLOB_KIND, obj.content, os.path.basename(obj.path), None, 0
            )
        case _:
            assert_never(obj)


def save(obj: ShaObject, store: "DiskObjectStore") -> bool:
    """Write an object to the object store, keyed by its digest.

    Returns: False if the store already held the object
    """
    kind, body, name, comment, mtime = serialize(obj)
    return store.write(kind, obj.digest, body, name=name, comment=comment, mtime=mtime)


def _split_lines(body: bytes, kind: str, digest: str) -> list[str]:
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UnexpectedFormat(f"{kind} {digest} is not valid utf-8") from exc
    lines = text.split("\n")
    if lines[-1] != "":
        raise UnexpectedFormat(f"{kind} {digest} does not end with a newline")
    return lines[:-1]


def _check_digest(obj: ShaObject) -> None:
    expected = obj.digest
    if update_digest(obj) != expected:
        raise UnexpectedFormat(
            f"{kind_of(obj)} {expected} is corrupt: content hashes to {obj.digest}"
        )


def read_commit(store: "DiskObjectStore", work_dir: str, digest: str) -> Commit:
    """Read a commit back from the object store.

    Args:
      store: Object store to read from
      work_dir: Work directory the commit is restored into
      digest: Digest of the commit
    Raises:
      ObjectNotFound: if there is no such commit
      UnexpectedFormat: if the stored commit lacks required fields
    """
    entry = store.read(COMMIT_KIND, digest)
    if entry.comment is None:
        raise UnexpectedFormat(f"commit {digest} has no message")
    lines = _split_lines(entry.body, COMMIT_KIND, digest)
    if len(lines) < _COMMIT_PROPERTY_LINES:
        raise UnexpectedFormat(f"commit {digest} has too few header fields")
    parent, author, timestamp = lines[:_COMMIT_PROPERTY_LINES]
    if not valid_hexdigest(parent):
        raise UnexpectedFormat(f"commit {digest} has invalid parent {parent!r}")
    try:
        ts = int(timestamp)
    except ValueError as exc:
        raise UnexpectedFormat(
            f"commit {digest} has invalid timestamp {timestamp!r}"
        ) from exc
    content = lines[_COMMIT_PROPERTY_LINES:]
    for line in content:
        parse_content_line(line)
    commit = Commit(
        path=work_dir,
        parent=parent,
        author=author,
        timestamp=ts,
        message=entry.comment,
        content=content,
        digest=digest,
    )
    _check_digest(commit)
    return commit


def _entry_name(header_name: str | None, name: str | None, kind: str, digest: str) -> str:
    # Objects are shared by every entry with identical content, so the name
    # recorded by whoever stored it first only serves as a fallback.
    if name is None:
        name = header_name
    if name is None:
        raise UnexpectedFormat(f"{kind} {digest} has no file name")
    return name


def read_tree(
    store: "DiskObjectStore", parent_path: str, digest: str, name: str | None = None
) -> Tree:
    """Read a tree back from the object store.

    Args:
      store: Object store to read from
      parent_path: Path of the parent directory, relative to the work dir
      digest: Digest of the tree
      name: Entry name from the parent's content line; defaults to the
        name recorded in the archive header
    """
    entry = store.read(TREE_KIND, digest)
    name = _entry_name(entry.name, name, TREE_KIND, digest)
    content = _split_lines(entry.body, TREE_KIND, digest)
    for line in content:
        parse_content_line(line)
    tree = Tree(path=os.path.join(parent_path, name), content=content, digest=digest)
    _check_digest(tree)
    return tree


def read_blob(
    store: "DiskObjectStore", parent_path: str, digest: str, name: str | None = None
) -> Blob:
    """Read a blob back from the object store.

    See read_tree for the arguments.
    """
    entry = store.read(BLOB_KIND, digest)
    name = _entry_name(entry.name, name, BLOB_KIND, digest)
    blob = Blob(path=os.path.join(parent_path, name), content=entry.body, digest=digest)
    try:
        _check_digest(blob)
    except UnsupportedEncoding as exc:
        raise UnexpectedFormat(f"blob {digest} is not valid utf-8") from exc
    return blob

