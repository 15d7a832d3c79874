# config.py - Reading and writing get config files
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

"""Reading get config files.

The config file lives at ``<root>/.getconfig`` and uses the git-config
syntax::

    [user]
        name = Jane Doe
    [core]
        ignore = target
        ignore = build

Recognized settings:

* ``user.name`` -- author recorded in new commits
* ``core.ignore`` (multivar) -- path components excluded from snapshots

TODO:
 * ``include``/``includeIf`` directives
"""

__all__ = [
    "Config",
    "ConfigDict",
    "ConfigFile",
    "get_default_author",
    "load_repo_state",
    "read_repo_config",
]

import logging
import os
from collections.abc import Iterator
from typing import IO

from .errors import IoFailure, UnexpectedFormat
from .ignore import DEFAULT_IGNORE
from .repo import CONFIG_FILE, DEFAULT_AUTHOR, RepoState, check_repo

logger = logging.getLogger(__name__)

Section = tuple[str, ...]
SectionLike = str | tuple[str, ...]


class _SectionValues:
    """Ordered, case-insensitive mapping of names to one or more values."""

    def __init__(self) -> None:
        self._real: list[tuple[str, str]] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._real!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _SectionValues) and other._real == self._real

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and any(
            k.lower() == name.lower() for k, _ in self._real
        )

    def __getitem__(self, name: str) -> str:
        """Get the last value for a name.

        Raises:
          KeyError: If the name is not set
        """
        for actual, value in reversed(self._real):
            if actual.lower() == name.lower():
                return value
        raise KeyError(name)

    def add(self, name: str, value: str) -> None:
        self._real.append((name, value))

    def get_all(self, name: str) -> Iterator[str]:
        for actual, value in self._real:
            if actual.lower() == name.lower():
                yield value


def _lower_section(section: Section) -> Section:
    # Section names are case-insensitive, subsection names are not.
    return (section[0].lower(), *section[1:])


class Config:
    """A get configuration."""

    def get(self, section: SectionLike, name: str) -> str:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Tuple with section name and optional subsection name
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        raise NotImplementedError(self.get)

    def get_multivar(self, section: SectionLike, name: str) -> Iterator[str]:
        """Retrieve all values of a multivar setting, in file order.

        Raises:
          KeyError: if the section does not exist
        """
        raise NotImplementedError(self.get_multivar)


class ConfigDict(Config):
    """Configuration stored in a dictionary."""

    def __init__(self) -> None:
        self._values: dict[Section, _SectionValues] = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, self.__class__) and other._values == self._values

    def __contains__(self, section: object) -> bool:
        return isinstance(section, tuple) and _lower_section(section) in self._values

    @staticmethod
    def _check_section(section: SectionLike) -> Section:
        if not isinstance(section, tuple):
            section = (section,)
        return _lower_section(section)

    def _section_values(self, section: SectionLike) -> _SectionValues:
        return self._values.setdefault(self._check_section(section), _SectionValues())

    def get(self, section: SectionLike, name: str) -> str:
        section = self._check_section(section)
        if len(section) > 1:
            try:
                return self._values[section][name]
            except KeyError:
                pass
        return self._values[(section[0],)][name]

    def get_multivar(self, section: SectionLike, name: str) -> Iterator[str]:
        section = self._check_section(section)
        if len(section) > 1:
            try:
                return self._values[section].get_all(name)
            except KeyError:
                pass
        return self._values[(section[0],)].get_all(name)

    def add(self, section: SectionLike, name: str, value: str) -> None:
        """Add a value to a setting, creating a multivar if needed."""
        self._section_values(section).add(name, value)


_ESCAPE_TABLE = {
    "\\": "\\",
    '"': '"',
    "n": "\n",
    "t": "\t",
    "b": "\b",
}
_COMMENT_CHARS = ("#", ";")
_WHITESPACE_CHARS = ("\t", " ")


def _parse_string(value: str) -> str:
    value = value.strip()
    ret: list[str] = []
    whitespace: list[str] = []
    in_quotes = False
    i = 0
    while i < len(value):
        c = value[i]
        if c == "\\":
            i += 1
            ret.extend(whitespace)
            whitespace = []
            if i >= len(value):
                ret.append("\\")
            elif value[i] in _ESCAPE_TABLE:
                ret.append(_ESCAPE_TABLE[value[i]])
            else:
                # Unknown escape: keep the backslash, reprocess the character
                ret.append("\\")
                i -= 1
        elif c == '"':
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            break
        elif c in _WHITESPACE_CHARS and not in_quotes:
            whitespace.append(c)
        else:
            ret.extend(whitespace)
            whitespace = []
            ret.append(c)
        i += 1

    if in_quotes:
        raise ValueError("missing end quote")

    return "".join(ret)


def _check_variable_name(name: str) -> bool:
    return bool(name) and all(c.isalnum() or c == "-" for c in name)


def _check_section_name(name: str) -> bool:
    return bool(name) and all(c.isalnum() or c in "-." for c in name)


def _strip_comments(line: str) -> str:
    string_open = False
    for i, c in enumerate(line):
        if c == '"':
            string_open = not string_open
        elif not string_open and c in _COMMENT_CHARS:
            return line[:i]
    return line


def _is_line_continuation(value: str) -> bool:
    """Check whether a value ends with an unescaped, unquoted backslash."""
    content = value.rstrip("\r\n")
    if content == value:
        return False
    trailing = len(content) - len(content.rstrip("\\"))
    return trailing % 2 == 1


def _parse_section_header_line(line: str) -> tuple[Section, str]:
    line = _strip_comments(line).rstrip()
    in_quotes = False
    escaped = False
    for i, c in enumerate(line):
        if escaped:
            escaped = False
            continue
        if c == '"':
            in_quotes = not in_quotes
        if c == "\\":
            escaped = True
        if c == "]" and not in_quotes:
            last = i
            break
    else:
        raise ValueError("expected trailing ]")
    pts = line[1:last].split(" ", 1)
    rest = line[last + 1 :]
    if not _check_section_name(pts[0]):
        raise ValueError(f"invalid section name {pts[0]!r}")
    section: Section
    if len(pts) == 2:
        if not (pts[1][:1] == '"' and pts[1][-1:] == '"'):
            raise ValueError(f"invalid subsection {pts[1]!r}")
        section = (pts[0], pts[1][1:-1])
    else:
        dotted = pts[0].split(".", 1)
        section = tuple(dotted)
    return section, rest


class ConfigFile(ConfigDict):
    """A get configuration file, like .getconfig."""

    def __init__(self) -> None:
        super().__init__()
        self.path: str | None = None

    @classmethod
    def from_file(cls, f: IO[bytes]) -> "ConfigFile":
        """Read configuration from a file-like object.

        Raises:
          ValueError: if the file is malformed
        """
        ret = cls()
        section: Section | None = None
        setting: str | None = None
        continuation: str | None = None
        for lineno, raw in enumerate(f.readlines()):
            if lineno == 0 and raw.startswith(b"\xef\xbb\xbf"):
                raw = raw[3:]
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ValueError(f"line {lineno + 1} is not valid utf-8") from exc
            if setting is None:
                line = line.lstrip()
                if line[:1] == "[":
                    section, line = _parse_section_header_line(line)
                    ret._section_values(section)
                if _strip_comments(line).strip() == "":
                    continue
                if section is None:
                    raise ValueError(f"setting {line!r} without section")
                name, sep, value = line.partition("=")
                if not sep:
                    value = "true"
                setting = name.strip()
                if not _check_variable_name(setting):
                    raise ValueError(f"invalid variable name {setting!r}")
            else:
                value = line
            if _is_line_continuation(value):
                continuation = (continuation or "") + value.rstrip("\r\n")[:-1]
                continue
            assert section is not None
            ret.add(section, setting, _parse_string((continuation or "") + value))
            setting = None
            continuation = None
        if setting is not None:
            # Continuation at end of file
            assert section is not None
            ret.add(section, setting, _parse_string(continuation or ""))
        return ret

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        with open(path, "rb") as f:
            ret = cls.from_file(f)
        ret.path = os.fspath(path)
        return ret


def _get_login_name() -> str | None:
    for name in ("LOGNAME", "USER", "LNAME", "USERNAME"):
        username = os.environ.get(name)
        if username:
            return username
    try:
        import pwd
    except ImportError:
        return None
    try:
        entry = pwd.getpwuid(os.getuid())
    except KeyError:
        return None
    return entry.pw_gecos.split(",", 1)[0] or entry.pw_name


def get_default_author(config: Config | None = None) -> str:
    """Determine the author recorded in new commits.

    Uses ``user.name`` from the configuration, then the login name of the
    current user, and finally DEFAULT_AUTHOR.
    """
    if config is not None:
        try:
            name = config.get(("user",), "name")
        except KeyError:
            pass
        else:
            if "\n" in name:
                raise UnexpectedFormat(f"user.name may not contain newlines: {name!r}")
            if name:
                return name
    name = _get_login_name()
    if name:
        return name
    logger.warning("Unable to determine author, using %r", DEFAULT_AUTHOR)
    return DEFAULT_AUTHOR


def read_repo_config(root: str) -> ConfigFile:
    """Read the config file of a repository.

    Returns: The parsed configuration; empty if there is no config file
    Raises:
      UnexpectedFormat: if the config file is malformed
    """
    path = os.path.join(root, CONFIG_FILE)
    try:
        return ConfigFile.from_path(path)
    except FileNotFoundError:
        return ConfigFile()
    except ValueError as exc:
        raise UnexpectedFormat(f"{path}: {exc}") from exc
    except OSError as exc:
        raise IoFailure(exc) from exc


def load_repo_state(root: str | os.PathLike[str]) -> RepoState:
    """Resolve the state engine operations run against.

    Args:
      root: Repository root
    Raises:
      NotARepo: if root does not hold a repository
      UnexpectedFormat: if the config file is malformed
    """
    root = os.path.abspath(root)
    check_repo(root)
    config = read_repo_config(root)
    try:
        patterns = frozenset(config.get_multivar(("core",), "ignore"))
    except KeyError:
        patterns = frozenset()
    return RepoState(
        work_dir=root,
        ignore_patterns=DEFAULT_IGNORE | {p for p in patterns if p},
        author=get_default_author(config),
    )

