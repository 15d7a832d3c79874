# worktree.py -- Snapshot and restore of work directories
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

"""Snapshot and restore of work directories.

A :class:`Worktree` holds all objects of one commit. It is an arena: nodes
live in a list and refer to their children by index, the commit is always
node 0. A worktree is built either by walking the work directory
(:meth:`Worktree.from_files`) or by reading a commit back from the object
store (:meth:`Worktree.from_commit`), and is discarded once the operation
that needed it is done.
"""

__all__ = [
    "Node",
    "NodeId",
    "Worktree",
    "build_commit",
    "clean_work_dir",
    "persist",
    "restore_commit",
    "restore_files",
]

import os
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TypeAlias

if sys.version_info >= (3, 11):
    from typing import assert_never
else:
    from typing_extensions import assert_never

from .errors import UnexpectedFormat, Unsupported, io_errors
from .ignore import IgnoreFilter
from .object_store import DiskObjectStore
from .objects import (
    TREE_KIND,
    Blob,
    Commit,
    ShaObject,
    Tree,
    append_content,
    check_entry_name,
    content_line,
    parse_content_line,
    read_blob,
    read_commit,
    read_tree,
    save,
    update_digest,
)
from .repo import RepoState, open_object_store, read_head, write_head

NodeId: TypeAlias = int

ROOT: NodeId = 0


@dataclass
class Node:
    """An arena entry: an object plus the indexes of its children."""

    obj: ShaObject
    children: list[NodeId] = field(default_factory=list)


class Worktree:
    """All objects of a single commit, stored as an arena."""

    def __init__(self, root: Commit) -> None:
        self._nodes: list[Node] = [Node(root)]

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.commit.digest or 'unhashed'}, {len(self)} nodes)>"

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, node_id: NodeId) -> Node:
        return self._nodes[node_id]

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    @property
    def commit(self) -> Commit:
        """The root commit."""
        root = self._nodes[ROOT].obj
        assert isinstance(root, Commit)
        return root

    @property
    def digest(self) -> str:
        """Digest of the root commit."""
        return self.commit.digest

    def add(self, obj: Tree | Blob, parent: NodeId) -> NodeId:
        """Push a new node into the arena and link it to its parent.

        Returns: Index of the new node
        """
        self._nodes.append(Node(obj))
        node_id = len(self._nodes) - 1
        self._nodes[parent].children.append(node_id)
        return node_id

    def iter_objects(self) -> Iterator[Tree | Blob]:
        """Iterate over all trees and blobs, parents before children."""
        for node in self._nodes[ROOT + 1 :]:
            obj = node.obj
            assert not isinstance(obj, Commit)
            yield obj

    @classmethod
    def from_files(
        cls,
        state: RepoState,
        parent: str,
        message: str,
        timestamp: int,
    ) -> "Worktree":
        """Build a worktree by walking the work directory.

        Children are hashed before their parents; a parent's digest is
        recomputed every time a child line is appended to it.

        Args:
          state: Repository to snapshot
          parent: Digest of the parent commit
          message: Commit message
          timestamp: Commit time in seconds since the epoch
        Raises:
          Unsupported: on symbolic links and special files
          UnsupportedEncoding: on files or file names that are not valid UTF-8
          UnexpectedFormat: if the author or message cannot be stored
          IoFailure: if the directory walk fails
        """
        _check_text(state.author, "author", "\n")
        _check_text(message, "commit message", "\0")
        commit = Commit(
            path=state.work_dir,
            parent=parent,
            author=state.author,
            timestamp=timestamp,
            message=message,
        )
        wt = cls(commit)
        ignore = IgnoreFilter(state.ignore_patterns)
        with io_errors():
            _build_tree(wt, ROOT, state.work_dir, "", ignore)
        update_digest(commit)
        return wt

    @classmethod
    def from_commit(
        cls, store: DiskObjectStore, work_dir: str, digest: str
    ) -> "Worktree":
        """Rebuild the worktree of a stored commit.

        The tree shape is recovered purely from the content lines of the
        commit and its trees. Every object is verified against its digest.

        Raises:
          ObjectNotFound: if the commit or any object it refers to is missing
          UnexpectedFormat: if a stored object is malformed or corrupt
        """
        wt = cls(read_commit(store, work_dir, digest))
        _read_children(wt, store, ROOT, "")
        return wt


def _check_text(value: str, what: str, forbidden: str) -> None:
    if forbidden in value:
        raise UnexpectedFormat(f"{what} may not contain {forbidden!r}: {value!r}")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise UnexpectedFormat(f"{what} is not valid utf-8: {value!r}") from exc


def _build_tree(
    wt: Worktree, current: NodeId, abs_dir: str, rel_dir: str, ignore: IgnoreFilter
) -> None:
    with os.scandir(abs_dir) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        rel_path = os.path.join(rel_dir, entry.name)
        if ignore.is_ignored(rel_path):
            continue
        check_entry_name(entry.name, entry.path)

        obj: Tree | Blob
        if entry.is_symlink():
            raise Unsupported(entry.path, "symbolic links are not supported")
        elif entry.is_dir(follow_symlinks=False):
            obj = Tree(path=rel_path)
            new_cur = wt.add(obj, current)
            _build_tree(wt, new_cur, entry.path, rel_path, ignore)
        elif entry.is_file(follow_symlinks=False):
            obj = Blob(path=rel_path, abs_path=entry.path)
            wt.add(obj, current)
            update_digest(obj)
        else:
            raise Unsupported(entry.path, "special files are not supported")

        # A directory's digest is final once all of its entries are in.
        if isinstance(obj, Tree):
            update_digest(obj)

        parent = wt[current].obj
        append_content(parent, content_line(obj))
        update_digest(parent)


def _read_children(
    wt: Worktree, store: DiskObjectStore, current: NodeId, rel_dir: str
) -> None:
    parent = wt[current].obj
    assert not isinstance(parent, Blob)
    for line in parent.content:
        kind, digest, name = parse_content_line(line)
        if kind == TREE_KIND:
            tree = read_tree(store, rel_dir, digest, name)
            new_cur = wt.add(tree, current)
            _read_children(wt, store, new_cur, tree.path)
        else:
            wt.add(read_blob(store, rel_dir, digest, name), current)


def _save_all_children(wt: Worktree, store: DiskObjectStore, cursor: NodeId) -> None:
    for child in wt[cursor].children:
        _save_all_children(wt, store, child)
    save(wt[cursor].obj, store)


def persist(wt: Worktree, store: DiskObjectStore) -> str:
    """Write every object of a worktree to the object store.

    Children are written before their parents, so the commit is the last
    object written and never refers to a missing object.

    Returns: Digest of the commit
    """
    _save_all_children(wt, store, ROOT)
    return wt.digest


def _clean_dir(abs_dir: str, rel_dir: str, ignore: IgnoreFilter) -> bool:
    empty = True
    with os.scandir(abs_dir) as it:
        entries = list(it)
    for entry in entries:
        rel_path = os.path.join(rel_dir, entry.name)
        if ignore.is_ignored(rel_path):
            empty = False
        elif entry.is_dir(follow_symlinks=False):
            if _clean_dir(entry.path, rel_path, ignore):
                os.rmdir(entry.path)
            else:
                empty = False
        else:
            os.unlink(entry.path)
    return empty


def clean_work_dir(work_dir: str, ignore: IgnoreFilter) -> None:
    """Delete everything from the work directory that is not ignored.

    Deletion is bottom-up; directories that still hold ignored entries are
    kept.
    """
    with io_errors():
        _clean_dir(work_dir, "", ignore)


def restore_files(wt: Worktree, work_dir: str) -> None:
    """Replay a worktree onto the filesystem.

    Nodes are visited in arena order, which puts every directory before
    its contents.
    """
    with io_errors():
        for obj in wt.iter_objects():
            path = os.path.join(work_dir, obj.path)
            match obj:
                case Tree():
                    os.makedirs(path, exist_ok=True)
                case Blob():
                    with open(path, "wb") as f:
                        f.write(obj.content)
                case _:
                    assert_never(obj)


def build_commit(state: RepoState, message: str, timestamp: int) -> str:
    """Snapshot the work directory as a new commit.

    The head is only moved after every object has been stored, so a failed
    commit leaves the repository as it was.

    Args:
      state: Repository to commit in
      message: Commit message
      timestamp: Commit time in seconds since the epoch
    Returns: Digest of the new commit
    """
    store = open_object_store(state.work_dir)
    parent = read_head(state.work_dir)
    wt = Worktree.from_files(state, parent, message, timestamp)
    digest = persist(wt, store)
    write_head(state.work_dir, digest)
    return digest


def restore_commit(state: RepoState, digest: str) -> Worktree:
    """Replace the work directory with the contents of a commit.

    The whole commit is read and verified before anything in the work
    directory is touched.

    Returns: The restored worktree
    """
    store = open_object_store(state.work_dir)
    wt = Worktree.from_commit(store, state.work_dir, digest)
    clean_work_dir(state.work_dir, IgnoreFilter(state.ignore_patterns))
    restore_files(wt, state.work_dir)
    write_head(state.work_dir, digest)
    return wt
