# test_repo.py -- tests for repo.py
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

"""Tests for the repository layout."""

import os
import stat

from get.errors import NotARepo, RepoAlreadyExists, UnexpectedFormat
from get.hash import EMPTY_HEAD
from get.objects import OBJECT_KINDS
from get.repo import (
    CONTROLDIR,
    DEFAULT_DIR_PERMISSIONS,
    DEFAULT_FILE_PERMISSIONS,
    check_repo,
    find_repo_root,
    head_path,
    init_repo,
    log_path,
    objects_path,
    open_object_store,
    read_head,
    write_head,
)

from . import TestCase

DIGEST = "9e8f3db307256646a205a25ed857e03b3e84b47c"


class InitRepoTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.root = self.mkdtemp()

    def test_layout(self) -> None:
        self.assertEqual(self.root, init_repo(self.root))
        control = os.path.join(self.root, CONTROLDIR)
        self.assertTrue(os.path.isdir(control))
        for kind in OBJECT_KINDS:
            self.assertTrue(os.path.isdir(os.path.join(objects_path(self.root), kind)))
        self.assertEqual(EMPTY_HEAD.encode(), self.read_file(self.root, ".get/HEAD"))
        self.assertEqual(b"", self.read_file(self.root, ".get/LOG"))

    def test_permissions(self) -> None:
        init_repo(self.root)
        for path in (os.path.join(self.root, CONTROLDIR), objects_path(self.root)):
            self.assertEqual(DEFAULT_DIR_PERMISSIONS, stat.S_IMODE(os.stat(path).st_mode))
        for path in (head_path(self.root), log_path(self.root)):
            self.assertEqual(
                DEFAULT_FILE_PERMISSIONS, stat.S_IMODE(os.stat(path).st_mode)
            )

    def test_already_exists(self) -> None:
        init_repo(self.root)
        with self.assertRaises(RepoAlreadyExists) as cm:
            init_repo(self.root)
        self.assertEqual(self.root, cm.exception.path)

    def test_relative_path(self) -> None:
        cwd = os.getcwd()
        self.addCleanup(os.chdir, cwd)
        os.chdir(self.root)
        os.mkdir("sub")
        self.assertEqual(os.path.join(os.getcwd(), "sub"), init_repo("sub"))


class FindRepoRootTests(TestCase):
    def test_in_root(self) -> None:
        root = init_repo(self.mkdtemp())
        self.assertEqual(root, find_repo_root(root))

    def test_in_subdirectory(self) -> None:
        root = init_repo(self.mkdtemp())
        sub = os.path.join(root, "a", "b")
        os.makedirs(sub)
        self.assertEqual(root, find_repo_root(sub))

    def test_not_found(self) -> None:
        d = self.mkdtemp()
        self.assertRaises(NotARepo, find_repo_root, d)
        self.assertRaises(NotARepo, check_repo, d)


class HeadTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.root = init_repo(self.mkdtemp())

    def test_initial(self) -> None:
        self.assertEqual(EMPTY_HEAD, read_head(self.root))

    def test_write_read(self) -> None:
        write_head(self.root, DIGEST)
        self.assertEqual(DIGEST, read_head(self.root))
        self.assertEqual(DIGEST.encode(), self.read_file(self.root, ".get/HEAD"))
        self.assertFalse(os.path.exists(head_path(self.root) + ".lock"))

    def test_surrounding_whitespace(self) -> None:
        with open(head_path(self.root), "wb") as f:
            f.write(DIGEST.encode() + b"\n")
        self.assertEqual(DIGEST, read_head(self.root))

    def test_garbage(self) -> None:
        with open(head_path(self.root), "wb") as f:
            f.write(b"ref: refs/heads/master\n")
        self.assertRaises(UnexpectedFormat, read_head, self.root)

    def test_write_invalid(self) -> None:
        self.assertRaises(ValueError, write_head, self.root, "nonsense")
        self.assertEqual(EMPTY_HEAD, read_head(self.root))

    def test_not_a_repo(self) -> None:
        d = self.mkdtemp()
        self.assertRaises(NotARepo, read_head, d)
        self.assertRaises(NotARepo, write_head, d, DIGEST)

    def test_open_object_store(self) -> None:
        store = open_object_store(self.root)
        self.assertEqual(objects_path(self.root), store.path)
