# repo.py -- For dealing with get repositories.
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

"""Repository layout and the head reference.

A repository is a work directory with a ``.get`` control directory::

    .get/HEAD                 digest of the current commit
    .get/LOG                  append-only human log
    .get/objects/<kind>/...   the object store

The HEAD file is not protected against concurrent writers beyond the lock
file used for atomic replacement; callers must serialize commits and
restores on the same repository.
"""

__all__ = [
    "CONFIG_FILE",
    "CONTROLDIR",
    "DEFAULT_AUTHOR",
    "HEAD_FILE",
    "LOG_FILE",
    "OBJECTDIR",
    "RepoState",
    "check_no_repo",
    "check_repo",
    "control_dir",
    "find_repo_root",
    "head_path",
    "init_repo",
    "log_path",
    "objects_path",
    "open_object_store",
    "read_head",
    "write_head",
]

import os
from dataclasses import dataclass, field

from .errors import NotARepo, RepoAlreadyExists, UnexpectedFormat, io_errors
from .file import GetFile
from .hash import EMPTY_HEAD, valid_hexdigest
from .object_store import DiskObjectStore

CONTROLDIR = ".get"
CONFIG_FILE = ".getconfig"
HEAD_FILE = "HEAD"
LOG_FILE = "LOG"
OBJECTDIR = "objects"

DEFAULT_AUTHOR = "unknown author"

DEFAULT_FILE_PERMISSIONS = 0o644
DEFAULT_DIR_PERMISSIONS = 0o755


@dataclass(frozen=True)
class RepoState:
    """Resolved state of a repository, passed to every engine operation.

    Attributes:
      work_dir: Absolute path of the work directory (the repository root)
      ignore_patterns: Path components excluded from snapshots
      author: Author recorded in new commits
    """

    work_dir: str
    ignore_patterns: frozenset[str] = field(default_factory=frozenset)
    author: str = DEFAULT_AUTHOR


def control_dir(root: str) -> str:
    return os.path.join(root, CONTROLDIR)


def objects_path(root: str) -> str:
    return os.path.join(root, CONTROLDIR, OBJECTDIR)


def head_path(root: str) -> str:
    return os.path.join(root, CONTROLDIR, HEAD_FILE)


def log_path(root: str) -> str:
    return os.path.join(root, CONTROLDIR, LOG_FILE)


def check_repo(root: str) -> None:
    """Raise NotARepo unless root holds a repository."""
    if not os.path.isdir(control_dir(root)):
        raise NotARepo(root)


def check_no_repo(root: str) -> None:
    """Raise RepoAlreadyExists if root already holds a repository."""
    if os.path.isdir(control_dir(root)):
        raise RepoAlreadyExists(root)


def find_repo_root(start: str | os.PathLike[str] = ".") -> str:
    """Look for a repository in start or any of its parents.

    Args:
      start: Directory to start searching from
    Returns: Absolute path of the repository root
    Raises:
      NotARepo: if no repository was found
    """
    path = os.path.abspath(start)
    while True:
        if os.path.isdir(control_dir(path)):
            return path
        parent = os.path.dirname(path)
        if parent == path:
            raise NotARepo(os.path.abspath(start))
        path = parent


def _create_dir(path: str) -> None:
    os.mkdir(path)
    os.chmod(path, DEFAULT_DIR_PERMISSIONS)


def _create_file(path: str, contents: bytes) -> None:
    with open(path, "xb") as f:
        f.write(contents)
    os.chmod(path, DEFAULT_FILE_PERMISSIONS)


def init_repo(root: str | os.PathLike[str]) -> str:
    """Create a new repository in an existing directory.

    Args:
      root: Work directory to initialize
    Returns: Absolute path of the repository root
    Raises:
      RepoAlreadyExists: if root already holds a repository
    """
    root = os.path.abspath(root)
    check_no_repo(root)
    with io_errors():
        _create_dir(control_dir(root))
        DiskObjectStore.init(objects_path(root), dir_mode=DEFAULT_DIR_PERMISSIONS)
        _create_file(head_path(root), EMPTY_HEAD.encode("ascii"))
        _create_file(log_path(root), b"")
    return root


def open_object_store(root: str) -> DiskObjectStore:
    """Open the object store of a repository."""
    check_repo(root)
    return DiskObjectStore(objects_path(root))


def read_head(root: str) -> str:
    """Read the digest of the current commit.

    Returns: The head digest, or EMPTY_HEAD if nothing was committed yet
    Raises:
      NotARepo: if root does not hold a repository
      UnexpectedFormat: if HEAD does not hold a digest
    """
    check_repo(root)
    with io_errors(), open(head_path(root), "rb") as f:
        contents = f.read()
    try:
        digest = contents.decode("ascii").strip()
    except UnicodeDecodeError as exc:
        raise UnexpectedFormat(f"HEAD is not a digest: {contents!r}") from exc
    if not valid_hexdigest(digest):
        raise UnexpectedFormat(f"HEAD is not a digest: {digest!r}")
    return digest


def write_head(root: str, digest: str) -> None:
    """Point the head at a commit.

    The file is replaced atomically.

    Raises:
      NotARepo: if root does not hold a repository
      ValueError: if digest is not a valid digest
    """
    if not valid_hexdigest(digest):
        raise ValueError(f"invalid digest {digest!r}")
    check_repo(root)
    with io_errors(), GetFile(
        head_path(root), "wb", mask=DEFAULT_FILE_PERMISSIONS
    ) as f:
        f.write(digest.encode("ascii"))
