#!/usr/bin/env python3
"""
Tests for repository synchronization against real git repositories.

Each test builds a bare "remote" plus an author clone in a temporary
directory and syncs a third directory from it.
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent))

from git_test_utils import (
    branches, commit_file, create_bare_remote, current_branch, git,
    isolated_git_env, push, rev_parse, seed_remote,
)
from reposync.config import Config
from reposync.errors import SyncError, SyncErrorKind
from reposync.git_sync import RemoteSpec, RepoTarget, sync


def no_sleep(seconds):
    pass


class TestRepositorySync(unittest.TestCase):
    """Clone-or-update behaviour of sync()."""

    def setUp(self):
        print(f"\nSetting up test: {self._testMethodName}")
        self.temp_dir = Path(tempfile.mkdtemp())
        self.env = patch.dict(os.environ, isolated_git_env(self.temp_dir / "home"))
        self.env.start()

        self.remote, self.author = seed_remote(self.temp_dir)
        self.clone = self.temp_dir / "work" / "repo"
        self.config = Config(auth_retry_count=2, retry_sleep_interval=0.0)

    def tearDown(self):
        self.env.stop()
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def target(self, **kwargs) -> RepoTarget:
        return RepoTarget(
            path=kwargs.pop("path", self.clone),
            remotes=kwargs.pop("remotes", [RemoteSpec(name="origin", fetch_url=str(self.remote))]),
            **kwargs,
        )

    def sync(self, target=None):
        return sync(target or self.target(), self.config, sleep=no_sleep)

    def test_clone_into_missing_directory(self):
        """Syncing into a missing directory clones the default branch."""
        result = self.sync()

        self.assertTrue(result.did_work)
        self.assertEqual(result.branch, "main")
        self.assertEqual(current_branch(self.clone), "main")
        self.assertEqual((self.clone / "README.md").read_text(), "# Test Repository\n")
        self.assertEqual(git(self.clone, "rev-parse", "--abbrev-ref", "main@{upstream}"), "origin/main")
        self.assertEqual(git(self.clone, "symbolic-ref", "refs/remotes/origin/HEAD"), "refs/remotes/origin/main")
        print("  ✓ Cloned default branch with upstream and remote HEAD")

    def test_second_sync_does_nothing(self):
        """A sync right after a sync reports no work."""
        self.assertTrue(self.sync().did_work)
        self.assertFalse(self.sync().did_work)
        print("  ✓ Second sync is a no-op")

    def test_clone_into_existing_empty_directory(self):
        """An existing empty directory is treated like a fresh clone."""
        self.clone.mkdir(parents=True)

        self.assertTrue(self.sync().did_work)
        self.assertEqual(current_branch(self.clone), "main")
        self.assertEqual(rev_parse(self.clone, "HEAD"), rev_parse(self.author, "HEAD"))
        self.assertFalse(self.sync().did_work)
        print("  ✓ Existing empty directory cloned")

    def test_remote_default_branch_other_than_main(self):
        """The branch the remote's HEAD points at is the one checked out."""
        commit_file(self.author, "DEV.md", "dev\n")
        push(self.author, "main:develop")
        git(self.remote, "symbolic-ref", "HEAD", "refs/heads/develop")

        self.sync()

        self.assertEqual(current_branch(self.clone), "develop")
        self.assertTrue((self.clone / "DEV.md").exists())
        print("  ✓ Remote default branch 'develop' checked out")

    def test_fast_forward(self):
        """New upstream commits are fast-forwarded into the checked out branch."""
        self.sync()
        new_commit = commit_file(self.author, "NEW.md", "new\n")
        push(self.author)

        result = self.sync()

        self.assertTrue(result.did_work)
        self.assertEqual(rev_parse(self.clone, "HEAD"), new_commit)
        self.assertEqual((self.clone / "NEW.md").read_text(), "new\n")
        self.assertEqual(git(self.clone, "status", "--porcelain"), "")
        print("  ✓ Fast-forwarded to upstream")

    def test_fast_forward_removes_deleted_files(self):
        """Files deleted upstream disappear from the working tree."""
        commit_file(self.author, "OLD.md", "old\n")
        push(self.author)
        self.sync()
        git(self.author, "rm", "--quiet", "OLD.md")
        git(self.author, "commit", "--quiet", "-m", "Remove OLD.md")
        push(self.author)

        self.sync()

        self.assertFalse((self.clone / "OLD.md").exists())
        print("  ✓ Deleted file removed on fast-forward")

    def test_uncommitted_changes_block_fast_forward(self):
        """A dirty tree is never overwritten by a fast-forward."""
        self.sync()
        before = rev_parse(self.clone, "HEAD")
        (self.clone / "README.md").write_text("local edit\n")
        commit_file(self.author, "NEW.md", "new\n")
        push(self.author)

        with self.assertRaises(SyncError) as cm:
            self.sync()

        self.assertEqual(cm.exception.kind, SyncErrorKind.UNCOMMITTED_CHANGES)
        self.assertIn(" M README.md", cm.exception.status)
        self.assertEqual(cm.exception.path, self.clone)
        self.assertEqual(rev_parse(self.clone, "HEAD"), before)
        self.assertEqual((self.clone / "README.md").read_text(), "local edit\n")
        self.assertFalse((self.clone / "NEW.md").exists())
        print("  ✓ Dirty tree left untouched")

    def test_untracked_file_blocks_fast_forward(self):
        self.sync()
        before = rev_parse(self.clone, "HEAD")
        (self.clone / "scratch.txt").write_text("notes\n")
        commit_file(self.author, "NEW.md", "new\n")
        push(self.author)

        with self.assertRaises(SyncError) as cm:
            self.sync()

        self.assertEqual(cm.exception.kind, SyncErrorKind.UNCOMMITTED_CHANGES)
        self.assertIn("?? scratch.txt", cm.exception.status)
        self.assertEqual(rev_parse(self.clone, "HEAD"), before)
        print("  ✓ Untracked file blocks fast-forward")

    def test_diverged_history_is_an_error(self):
        """Local and upstream commits on the same branch are never merged."""
        self.sync()
        local_commit = commit_file(self.clone, "LOCAL.md", "local\n")
        commit_file(self.author, "UPSTREAM.md", "upstream\n")
        push(self.author)

        with self.assertRaises(SyncError) as cm:
            self.sync()

        self.assertEqual(cm.exception.kind, SyncErrorKind.DIVERGED_HISTORY)
        self.assertEqual(cm.exception.branch, "main")
        self.assertIn("origin/main", str(cm.exception))
        self.assertEqual(rev_parse(self.clone, "HEAD"), local_commit)
        self.assertFalse((self.clone / "UPSTREAM.md").exists())
        print("  ✓ Diverged history reported, nothing merged")

    def test_local_commits_ahead_of_upstream(self):
        """A branch ahead of its upstream is left alone."""
        self.sync()
        local_commit = commit_file(self.clone, "LOCAL.md", "local\n")

        with self.assertLogs('reposync.git_sync.status', level='WARNING') as logs:
            result = self.sync()

        self.assertFalse(result.did_work)
        self.assertEqual(rev_parse(self.clone, "HEAD"), local_commit)
        self.assertTrue(any("not merged into" in line for line in logs.output))
        print("  ✓ Local commits kept and reported")

    def test_requested_branch_is_created_from_remote(self):
        commit_file(self.author, "FEATURE.md", "feature\n")
        push(self.author, "main:feature")
        git(self.author, "reset", "--quiet", "--hard", "HEAD~1")

        result = self.sync(self.target(desired_branch="feature"))

        self.assertTrue(result.did_work)
        self.assertEqual(current_branch(self.clone), "feature")
        self.assertTrue((self.clone / "FEATURE.md").exists())
        self.assertEqual(git(self.clone, "rev-parse", "--abbrev-ref", "feature@{upstream}"), "origin/feature")
        print("  ✓ Requested branch created tracking origin/feature")

    def test_switching_to_requested_branch_on_existing_clone(self):
        self.sync()
        commit_file(self.author, "FEATURE.md", "feature\n")
        push(self.author, "main:feature")

        self.assertTrue(self.sync(self.target(desired_branch="refs/heads/feature")).did_work)
        self.assertEqual(current_branch(self.clone), "feature")
        self.assertIn("main", branches(self.clone))
        print("  ✓ Switched existing clone to requested branch")

    def test_switching_branch_refuses_dirty_tree(self):
        self.sync()
        push(self.author, "main:feature")
        (self.clone / "README.md").write_text("local edit\n")

        with self.assertRaises(SyncError) as cm:
            self.sync(self.target(desired_branch="feature"))

        self.assertEqual(cm.exception.kind, SyncErrorKind.UNCOMMITTED_CHANGES)
        self.assertEqual(current_branch(self.clone), "main")
        self.assertEqual((self.clone / "README.md").read_text(), "local edit\n")
        print("  ✓ Branch switch refused with dirty tree")

    def test_missing_branch_is_invalid_reference(self):
        with self.assertRaises(SyncError) as cm:
            self.sync(self.target(desired_branch="does-not-exist"))

        self.assertEqual(cm.exception.kind, SyncErrorKind.INVALID_BRANCH_REFERENCE)
        print("  ✓ Unknown branch rejected")

    def test_malformed_branch_name_is_invalid_reference(self):
        self.sync()
        with self.assertRaises(SyncError) as cm:
            self.sync(self.target(desired_branch="bad..name"))

        self.assertEqual(cm.exception.kind, SyncErrorKind.INVALID_BRANCH_REFERENCE)
        print("  ✓ Malformed branch name rejected")

    def test_detached_head_without_branch(self):
        self.sync()
        git(self.clone, "checkout", "--quiet", "--detach")

        with self.assertRaises(SyncError) as cm:
            self.sync()

        self.assertEqual(cm.exception.kind, SyncErrorKind.NO_DEFAULT_BRANCH_RESOLVED)
        print("  ✓ Detached HEAD needs an explicit branch")

    def test_detached_head_with_requested_branch(self):
        self.sync()
        git(self.clone, "checkout", "--quiet", "--detach")

        self.assertTrue(self.sync(self.target(desired_branch="main")).did_work)
        self.assertEqual(current_branch(self.clone), "main")
        print("  ✓ Detached HEAD reattached to requested branch")

    def test_push_branch_preferred_over_upstream(self):
        """The @{push} branch, when it exists, is what gets fast-forwarded to."""
        fork = create_bare_remote(self.temp_dir / "fork.git")
        git(self.author, "remote", "add", "fork", str(fork))
        push(self.author, "main", remote="fork")
        fork_commit = commit_file(self.author, "FORK.md", "fork\n")
        push(self.author, "main", remote="fork")

        remotes = [
            RemoteSpec(name="origin", fetch_url=str(self.remote)),
            RemoteSpec(name="fork", fetch_url=str(fork)),
        ]
        self.sync(self.target(remotes=remotes))
        self.assertNotEqual(rev_parse(self.clone, "HEAD"), fork_commit)

        git(self.clone, "config", "branch.main.pushRemote", "fork")
        self.assertTrue(self.sync(self.target(remotes=remotes)).did_work)
        self.assertEqual(rev_parse(self.clone, "HEAD"), fork_commit)
        print("  ✓ Fast-forwarded to fork/main via pushRemote")

    def test_push_remote_that_is_a_url_falls_back_to_upstream(self):
        self.sync()
        git(self.clone, "config", "remote.pushDefault", "https://example.com/someone/repo.git")
        new_commit = commit_file(self.author, "NEW.md", "new\n")
        push(self.author)

        self.assertTrue(self.sync().did_work)
        self.assertEqual(rev_parse(self.clone, "HEAD"), new_commit)
        print("  ✓ Non-remote pushDefault ignored")

    def test_fetch_url_is_updated(self):
        self.sync()
        mirror = self.temp_dir / "mirror.git"
        git(self.temp_dir, "clone", "--quiet", "--bare", str(self.remote), str(mirror))

        result = self.sync(self.target(remotes=[RemoteSpec(name="origin", fetch_url=str(mirror))]))

        self.assertTrue(result.did_work)
        self.assertEqual(git(self.clone, "remote", "get-url", "origin"), str(mirror))
        print("  ✓ Remote URL corrected")

    def test_push_url_is_set(self):
        spec = RemoteSpec(name="origin", fetch_url=str(self.remote), push_url="git@example.com:me/repo.git")
        self.sync(self.target(remotes=[spec]))

        self.assertEqual(git(self.clone, "remote", "get-url", "--push", "origin"), "git@example.com:me/repo.git")
        print("  ✓ Push URL configured")

    def test_additional_remote_is_added_and_fetched(self):
        self.sync()
        other = self.temp_dir / "other.git"
        git(self.temp_dir, "clone", "--quiet", "--bare", str(self.remote), str(other))
        remotes = [
            RemoteSpec(name="origin", fetch_url=str(self.remote)),
            RemoteSpec(name="other", fetch_url=str(other)),
        ]

        self.assertTrue(self.sync(self.target(remotes=remotes)).did_work)
        self.assertEqual(rev_parse(self.clone, "refs/remotes/other/main"), rev_parse(self.author, "HEAD"))
        self.assertFalse(self.sync(self.target(remotes=remotes)).did_work)
        print("  ✓ Second remote added")

    def test_remote_head_is_corrected(self):
        self.sync()
        push(self.author, "main:develop")
        git(self.remote, "symbolic-ref", "HEAD", "refs/heads/develop")

        self.sync()
        self.assertEqual(git(self.clone, "symbolic-ref", "refs/remotes/origin/HEAD"), "refs/remotes/origin/develop")
        self.assertEqual(current_branch(self.clone), "main")
        print("  ✓ refs/remotes/origin/HEAD moved to develop")

    def test_fetch_failure(self):
        missing = self.temp_dir / "missing.git"
        target = self.target(remotes=[RemoteSpec(name="origin", fetch_url=str(missing))])

        with self.assertRaises(SyncError) as cm:
            self.sync(target)

        self.assertEqual(cm.exception.kind, SyncErrorKind.FETCH_FAILED)
        self.assertEqual(cm.exception.remote, "origin")
        self.assertEqual(cm.exception.path, self.clone)
        self.assertTrue(cm.exception.hints)
        print("  ✓ Unreachable remote reported as fetch failure")

    def test_directory_create_failure(self):
        blocker = self.temp_dir / "file"
        blocker.write_text("not a directory\n")

        with self.assertRaises(SyncError) as cm:
            self.sync(self.target(path=blocker / "repo"))

        self.assertEqual(cm.exception.kind, SyncErrorKind.DIRECTORY_CREATE_FAILED)
        print("  ✓ Directory creation failure reported")

    def test_target_needs_a_remote(self):
        with self.assertRaises(SyncError) as cm:
            RepoTarget(path=self.clone, remotes=[])

        self.assertEqual(cm.exception.kind, SyncErrorKind.NO_REMOTES_CONFIGURED)
        print("  ✓ Target without remotes rejected")


class TestSubmodules(unittest.TestCase):
    """Submodules are checked out recursively."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.env = patch.dict(os.environ, isolated_git_env(self.temp_dir / "home"))
        self.env.start()

        self.sub_remote, sub_author = seed_remote(self.temp_dir / "sub")
        commit_file(sub_author, "lib.txt", "library\n")
        push(sub_author)

        self.remote, self.author = seed_remote(self.temp_dir / "super")
        git(self.author, "submodule", "--quiet", "add", str(self.sub_remote), "vendor/lib")
        git(self.author, "commit", "--quiet", "-m", "Add submodule")
        push(self.author)

        self.clone = self.temp_dir / "clone"

    def tearDown(self):
        self.env.stop()
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_submodule_checked_out(self):
        target = RepoTarget(path=self.clone, remotes=[RemoteSpec(name="origin", fetch_url=str(self.remote))])

        sync(target, Config(), sleep=no_sleep)

        self.assertEqual((self.clone / "vendor" / "lib" / "lib.txt").read_text(), "library\n")
        self.assertFalse(sync(target, Config(), sleep=no_sleep).did_work)
        print("  ✓ Submodule initialized and checked out")

    def test_submodule_depth_limit(self):
        from git import Repo
        from reposync.git_sync.backend import GitBackend
        from reposync.git_sync.checkout import update_submodules

        target = RepoTarget(path=self.clone, remotes=[RemoteSpec(name="origin", fetch_url=str(self.remote))])
        sync(target, Config(), sleep=no_sleep)

        with self.assertRaises(SyncError) as cm:
            update_submodules(GitBackend(Repo(self.clone)), max_depth=0)

        self.assertEqual(cm.exception.kind, SyncErrorKind.SUBMODULE_UPDATE_FAILED)
        print("  ✓ Submodule nesting limit enforced")


if __name__ == "__main__":
    unittest.main(verbosity=2)
