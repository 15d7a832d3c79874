# porcelain.py -- Porcelain-like layer on top of get
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

"""Simple wrapper that provides porcelain-like functions on top of get.

Currently implemented:
 * commit
 * head
 * init
 * log
 * restore
 * show

Paths are interpreted relative to the current working directory; the
repository is found by searching upwards from the given path.
"""

__all__ = [
    "DEFAULT_MESSAGE",
    "commit",
    "head",
    "init",
    "log",
    "print_commit",
    "restore",
    "show",
]

import os
import sys
import time
from collections.abc import Iterator
from typing import TextIO

from .config import load_repo_state
from .errors import io_errors
from .hash import EMPTY_HEAD
from .log_utils import getLogger
from .objects import Commit, read_commit
from .reflog import append_log, format_log_line
from .repo import find_repo_root, init_repo, open_object_store, read_head
from .worktree import build_commit, restore_commit

logger = getLogger(__name__)

DEFAULT_MESSAGE = "default commit message"

RepoPath = str | os.PathLike[str]


def _now(now: int | None) -> int:
    return int(time.time()) if now is None else now


def init(path: RepoPath = ".") -> str:
    """Create a new repository.

    Args:
      path: Directory to create the repository in; created if missing
    Returns: Absolute path of the repository root
    """
    if not os.path.exists(path):
        with io_errors():
            os.mkdir(path)
    root = init_repo(path)
    logger.info("Initialized empty repository in %s", root)
    return root


def head(repo: RepoPath = ".") -> str:
    """Return the digest of the current commit, or EMPTY_HEAD."""
    return read_head(find_repo_root(repo))


def commit(
    repo: RepoPath = ".",
    message: str = DEFAULT_MESSAGE,
    now: int | None = None,
) -> str:
    """Snapshot the work directory as a new commit.

    Args:
      repo: Path inside the repository
      message: Commit message
      now: Commit time in seconds since the epoch; defaults to the clock
    Returns: Digest of the new commit
    """
    state = load_repo_state(find_repo_root(repo))
    timestamp = _now(now)
    old = read_head(state.work_dir)
    digest = build_commit(state, message, timestamp)
    logger.debug("Committed %s on top of %s", digest, old)
    append_log(
        state.work_dir,
        [format_log_line(old, digest, state.author, timestamp, "commit", message)],
    )
    return digest


def restore(repo: RepoPath, digest: str, now: int | None = None) -> Commit:
    """Replace the work directory with the contents of a commit.

    Ignored entries are left in place. Nothing is touched if the commit or
    any object it refers to is missing or corrupt.

    Args:
      repo: Path inside the repository
      digest: Digest of the commit to restore
      now: Time recorded in the log; defaults to the clock
    Returns: The restored commit
    """
    state = load_repo_state(find_repo_root(repo))
    old = read_head(state.work_dir)
    wt = restore_commit(state, digest)
    logger.debug("Restored %s (%d objects)", digest, len(wt))
    append_log(
        state.work_dir,
        [
            format_log_line(
                old, digest, state.author, _now(now), "restore", wt.commit.message
            )
        ],
    )
    return wt.commit


def show(repo: RepoPath, digest: str) -> Commit:
    """Read a single commit.

    Raises:
      ObjectNotFound: if there is no such commit
    """
    root = find_repo_root(repo)
    return read_commit(open_object_store(root), root, digest)


def log(repo: RepoPath = ".", max_entries: int | None = None) -> Iterator[Commit]:
    """Walk the history from the head, newest commit first.

    Args:
      repo: Path inside the repository
      max_entries: Optional maximum number of commits to yield
    """
    root = find_repo_root(repo)
    store = open_object_store(root)
    digest = read_head(root)
    count = 0
    while digest != EMPTY_HEAD:
        if max_entries is not None and count >= max_entries:
            return
        c = read_commit(store, root, digest)
        yield c
        count += 1
        digest = c.parent


def print_commit(
    c: Commit, outstream: TextIO = sys.stdout, content: bool = False
) -> None:
    """Write a human-readable description of a commit.

    Args:
      c: Commit to describe
      outstream: Stream to write to
      content: Whether to list the top-level entries as well
    """
    outstream.write("-" * 50 + "\n")
    outstream.write(f"commit: {c.digest}\n")
    if c.parent != EMPTY_HEAD:
        outstream.write(f"parent: {c.parent}\n")
    outstream.write(f"Author: {c.author}\n")
    time_tuple = time.gmtime(c.timestamp)
    time_str = time.strftime("%a %b %d %Y %H:%M:%S", time_tuple)
    outstream.write(f"Date:   {time_str} +0000\n")
    outstream.write("\n")
    outstream.write(c.message)
    if not c.message.endswith("\n"):
        outstream.write("\n")
    if content:
        outstream.write("\n")
        for line in c.content:
            outstream.write(line + "\n")
