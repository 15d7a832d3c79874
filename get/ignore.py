# ignore.py -- Ignore patterns for get
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

"""Ignore patterns.

An ignore pattern is a plain path component. It excludes every entry that
has a component equal to the pattern anywhere along its path: ``target``
excludes ``target`` and ``src/target/out.txt`` but not ``targetfile.txt``.
There are no globs and no negations.
"""

__all__ = [
    "DEFAULT_IGNORE",
    "IgnoreFilter",
    "path_components",
]

import os
from collections.abc import Iterable, Iterator

from .repo import CONFIG_FILE, CONTROLDIR

# Always excluded, whatever the configuration says.
DEFAULT_IGNORE = frozenset({CONTROLDIR, CONFIG_FILE})


def path_components(path: str) -> list[str]:
    """Split a relative path into its components."""
    if os.altsep:
        path = path.replace(os.altsep, os.sep)
    return [part for part in path.split(os.sep) if part and part != "."]


class IgnoreFilter:
    """Filter that matches paths against a set of ignore patterns."""

    def __init__(self, patterns: Iterable[str] = (), include_defaults: bool = True) -> None:
        """Initialize an IgnoreFilter.

        Args:
            patterns: Path components to ignore. Empty strings are skipped.
            include_defaults: Whether to add DEFAULT_IGNORE to the patterns.
        """
        ignored = {pattern for pattern in patterns if pattern}
        if include_defaults:
            ignored |= DEFAULT_IGNORE
        self._patterns = frozenset(ignored)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({sorted(self._patterns)!r})"

    @property
    def patterns(self) -> frozenset[str]:
        return self._patterns

    def find_matching(self, path: str) -> Iterator[str]:
        """Yield the patterns matching a component of path.

        Args:
          path: Path relative to the work directory
        """
        for part in path_components(path):
            if part in self._patterns:
                yield part

    def is_ignored(self, path: str) -> bool:
        """Check whether a path relative to the work directory is ignored."""
        return any(True for _ in self.find_matching(path))
