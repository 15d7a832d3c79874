# hash.py -- Digest computation for get objects
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

"""Digest engine.

Objects are identified by the hex SHA-1 of their canonical byte sequence.
The hash is order sensitive: callers are responsible for feeding inputs in
a fixed order (see :mod:`get.objects`).
"""

__all__ = [
    "DEFAULT_HASH_ALGORITHM",
    "EMPTY_HEAD",
    "SHA1",
    "HashAlgorithm",
    "hexdigest",
    "new_hash",
    "valid_hexdigest",
]

from collections.abc import Callable
from hashlib import sha1
from typing import Any


class HashAlgorithm:
    """A hash algorithm producing hex digests of a fixed length."""

    def __init__(self, name: str, hex_length: int, hash_func: Callable) -> None:
        """Initialize a hash algorithm.

        Args:
            name: Name of the algorithm (e.g., "sha1")
            hex_length: Length of the hexadecimal digest in characters
            hash_func: Hash function from hashlib
        """
        self.name = name
        self.hex_length = hex_length
        self.hash_func = hash_func
        self.zero_digest = "0" * hex_length

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"HashAlgorithm({self.name!r})"

    def new_hash(self) -> Any:  # noqa: ANN401
        """Create a new incremental hash object."""
        return self.hash_func()

    def hexdigest(self, data: bytes) -> str:
        """Hash data and return the lowercase hexadecimal digest.

        Args:
            data: Data to hash

        Returns:
            Hexadecimal digest string
        """
        h = self.new_hash()
        h.update(data)
        return h.hexdigest()

    def valid_hexdigest(self, value: object) -> bool:
        """Check whether value looks like a digest of this algorithm."""
        if not isinstance(value, str) or len(value) != self.hex_length:
            return False
        return all(c in "0123456789abcdef" for c in value)


SHA1 = HashAlgorithm("sha1", 40, sha1)

DEFAULT_HASH_ALGORITHM = SHA1

# Head value of a repository without commits.
EMPTY_HEAD = DEFAULT_HASH_ALGORITHM.zero_digest


def new_hash() -> Any:  # noqa: ANN401
    """Create an incremental hasher of the default algorithm."""
    return DEFAULT_HASH_ALGORITHM.new_hash()


def hexdigest(data: bytes) -> str:
    """Return the hex digest of data using the default algorithm."""
    return DEFAULT_HASH_ALGORITHM.hexdigest(data)


def valid_hexdigest(value: object) -> bool:
    """Check whether value is a well-formed digest of the default algorithm."""
    return DEFAULT_HASH_ALGORITHM.valid_hexdigest(value)
