# test_porcelain.py -- porcelain tests
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

"""Tests for get.porcelain."""

import os
from io import StringIO

from get import porcelain
from get.errors import NotARepo, ObjectNotFound, RepoAlreadyExists
from get.hash import EMPTY_HEAD
from get.objects import Commit
from get.reflog import Entry, read_log
from get.repo import CONFIG_FILE, CONTROLDIR

from . import TestCase

SEED_COMMIT = "9e8f3db307256646a205a25ed857e03b3e84b47c"
SEED_BLOB = "e1f0dbaf38d36cf46352b65ed6f07c3fe4563f52"
TIMESTAMP = 1680873704


class PorcelainTestCase(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.overrideEnv("LOGNAME", "tester")
        self.root = porcelain.init(self.mkdtemp())

    def commit_seed(self) -> str:
        self.write_file(self.root, "test_file.txt", "thats\nall,\nfolks!")
        return porcelain.commit(self.root, "descriptive message", now=TIMESTAMP)


class InitTests(TestCase):
    def test_creates_directory(self) -> None:
        path = os.path.join(self.mkdtemp(), "new")
        root = porcelain.init(path)
        self.assertEqual(path, root)
        self.assertTrue(os.path.isdir(os.path.join(path, CONTROLDIR)))
        self.assertEqual(EMPTY_HEAD, porcelain.head(path))

    def test_existing(self) -> None:
        path = self.mkdtemp()
        porcelain.init(path)
        self.assertRaises(RepoAlreadyExists, porcelain.init, path)

    def test_logs(self) -> None:
        path = self.mkdtemp()
        with self.assertLogs("get.porcelain", level="INFO") as cm:
            porcelain.init(path)
        self.assertIn(path, cm.output[0])


class CommitTests(PorcelainTestCase):
    def test_seed(self) -> None:
        self.assertEqual(SEED_COMMIT, self.commit_seed())
        self.assertEqual(SEED_COMMIT, porcelain.head(self.root))

    def test_appends_log(self) -> None:
        self.commit_seed()
        self.assertEqual(
            [Entry(EMPTY_HEAD, SEED_COMMIT, "tester", TIMESTAMP, "commit: descriptive message")],
            read_log(self.root),
        )

    def test_from_subdirectory(self) -> None:
        self.write_file(self.root, "test_file.txt", "thats\nall,\nfolks!")
        sub = os.path.join(self.root, "sub")
        os.mkdir(sub)
        digest = porcelain.commit(sub, "msg", now=TIMESTAMP)
        self.assertEqual(digest, porcelain.head(self.root))

    def test_default_message(self) -> None:
        porcelain.commit(self.root, now=TIMESTAMP)
        c = porcelain.show(self.root, porcelain.head(self.root))
        self.assertEqual(porcelain.DEFAULT_MESSAGE, c.message)

    def test_uses_config(self) -> None:
        self.write_file(
            self.root,
            CONFIG_FILE,
            "[user]\n\tname = Jane Doe\n[core]\n\tignore = target\n",
        )
        self.write_file(self.root, "test_file.txt", "thats\nall,\nfolks!")
        self.write_file(self.root, "target/out", "build output")
        digest = porcelain.commit(self.root, "msg", now=TIMESTAMP)
        c = porcelain.show(self.root, digest)
        self.assertEqual("Jane Doe", c.author)
        self.assertEqual([f"blob\t{SEED_BLOB}\ttest_file.txt"], c.content)

    def test_not_a_repo(self) -> None:
        self.assertRaises(NotARepo, porcelain.commit, self.mkdtemp(), "msg")


class LogTests(PorcelainTestCase):
    def test_empty(self) -> None:
        self.assertEqual([], list(porcelain.log(self.root)))

    def test_history(self) -> None:
        first = self.commit_seed()
        self.write_file(self.root, "test_file.txt", "changed")
        second = porcelain.commit(self.root, "second", now=TIMESTAMP + 10)
        commits = list(porcelain.log(self.root))
        self.assertEqual([second, first], [c.digest for c in commits])
        self.assertEqual(first, commits[0].parent)
        self.assertEqual(EMPTY_HEAD, commits[1].parent)

    def test_max_entries(self) -> None:
        self.commit_seed()
        second = porcelain.commit(self.root, "second", now=TIMESTAMP + 10)
        self.assertEqual([second], [c.digest for c in porcelain.log(self.root, 1)])
        self.assertEqual([], list(porcelain.log(self.root, 0)))

    def test_not_a_repo(self) -> None:
        self.assertRaises(NotARepo, list, porcelain.log(self.mkdtemp()))


class ShowTests(PorcelainTestCase):
    def test_show(self) -> None:
        self.commit_seed()
        c = porcelain.show(self.root, SEED_COMMIT)
        self.assertIsInstance(c, Commit)
        self.assertEqual("descriptive message", c.message)
        self.assertEqual(TIMESTAMP, c.timestamp)
        self.assertEqual("tester", c.author)

    def test_missing(self) -> None:
        self.assertRaises(ObjectNotFound, porcelain.show, self.root, SEED_COMMIT)


class RestoreTests(PorcelainTestCase):
    def test_restore(self) -> None:
        first = self.commit_seed()
        self.write_file(self.root, "test_file.txt", "changed")
        self.write_file(self.root, "extra.txt", "extra")
        second = porcelain.commit(self.root, "second", now=TIMESTAMP + 10)

        c = porcelain.restore(self.root, first, now=TIMESTAMP + 20)
        self.assertEqual(first, c.digest)
        self.assertEqual(b"thats\nall,\nfolks!", self.read_file(self.root, "test_file.txt"))
        self.assertFalse(os.path.exists(os.path.join(self.root, "extra.txt")))
        self.assertEqual(first, porcelain.head(self.root))
        self.assertEqual(
            Entry(second, first, "tester", TIMESTAMP + 20, "restore: descriptive message"),
            read_log(self.root)[-1],
        )

    def test_missing_commit(self) -> None:
        self.commit_seed()
        self.assertRaises(ObjectNotFound, porcelain.restore, self.root, "0" * 39 + "1")
        self.assertEqual(1, len(read_log(self.root)))
        self.assertEqual(SEED_COMMIT, porcelain.head(self.root))


class PrintCommitTests(PorcelainTestCase):
    def test_print(self) -> None:
        self.commit_seed()
        outstream = StringIO()
        porcelain.print_commit(porcelain.show(self.root, SEED_COMMIT), outstream)
        self.assertEqual(
            "-" * 50
            + "\n"
            + f"commit: {SEED_COMMIT}\n"
            + "Author: tester\n"
            + "Date:   Fri Apr 07 2023 13:21:44 +0000\n"
            + "\n"
            + "descriptive message\n",
            outstream.getvalue(),
        )

    def test_print_with_parent_and_content(self) -> None:
        first = self.commit_seed()
        second = porcelain.commit(self.root, "second\n", now=TIMESTAMP)
        outstream = StringIO()
        porcelain.print_commit(
            porcelain.show(self.root, second), outstream, content=True
        )
        lines = outstream.getvalue().splitlines()
        self.assertEqual(f"parent: {first}", lines[2])
        self.assertEqual("second", lines[6])
        self.assertEqual(f"blob\t{SEED_BLOB}\ttest_file.txt", lines[-1])
