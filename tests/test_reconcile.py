"""Tests for reconciling registry entries against disk and live remotes."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fussy_git.exceptions import PersistenceError, RegistryIOError
from fussy_git.models import RepositoryEntry
from fussy_git.reconcile import ActionKind, EntryStatus, Reconciler
from fussy_git.registry import RegistryStore

from .helpers import FakeInspector, make_repo


def tracked(path: Path, url: str, name: str) -> RepositoryEntry:
    return RepositoryEntry(name=name, path=str(path), original_url=url, current_url=url)


class ReconcilerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.base = Path(self._tmp.name)
        self.root = self.base / "git"
        self.root.mkdir()
        self.state_file = self.base / "repos.json"
        self.store = RegistryStore.load(self.state_file)
        self.inspector = FakeInspector()
        self.reconciler = Reconciler(store=self.store, inspector=self.inspector, root=self.root)

    def canonical(self, *parts: str) -> Path:
        return self.root.joinpath(*parts)


class DryRunTests(ReconcilerTestCase):
    def setUp(self) -> None:
        super().setUp()
        healthy = make_repo(self.canonical("github.com", "spf13", "cobra"), "https://github.com/spf13/cobra")
        drifted = make_repo(self.canonical("github.com", "spf13", "viper"), "git@github.com:spf13/viper.git")
        misplaced = make_repo(self.base / "elsewhere" / "pflag", "git@github.com:spf13/pflag.git")
        make_repo(self.canonical("github.com", "spf13", "pflag"))

        self.store.upsert(tracked(healthy, "git@github.com:spf13/cobra.git", "cobra"))
        self.store.upsert(tracked(drifted, "git@github.com:old-owner/viper.git", "viper"))
        self.store.upsert(tracked(misplaced, "git@github.com:spf13/pflag.git", "pflag"))
        self.store.save()
        self.saved_state = self.state_file.read_text()
        self.before = [entry.to_dict() for entry in self.store.entries()]

    def test_reports_proposals_without_side_effects(self) -> None:
        with mock.patch.object(self.store, "save") as save:
            result = self.reconciler.run(dry_run=True)

        self.assertEqual(len(result.url_updates), 1)
        self.assertEqual(len(result.moves), 1)
        self.assertEqual(len(result.conflicts), 1)
        self.assertEqual(result.moved, 0)
        self.assertEqual(result.proposed, 2)
        self.assertEqual(result.taken, 0)
        self.assertFalse(result.persisted)
        save.assert_not_called()

        self.assertEqual(self.state_file.read_text(), self.saved_state)
        self.assertEqual([entry.to_dict() for entry in self.store.entries()], self.before)
        self.assertTrue((self.base / "elsewhere" / "pflag").is_dir())

    def test_ssh_and_https_forms_of_same_remote_are_not_drift(self) -> None:
        result = self.reconciler.run(dry_run=True)

        cobra = next(report for report in result.reports if report.name == "cobra")
        self.assertEqual(cobra.status, EntryStatus.OK)
        self.assertEqual(cobra.actions, [])

    def test_url_drift_report(self) -> None:
        result = self.reconciler.run(dry_run=True)

        update = result.url_updates[0]
        self.assertEqual(update.old, "git@github.com:old-owner/viper.git")
        self.assertEqual(update.new, "git@github.com:spf13/viper.git")
        self.assertFalse(update.applied)


class ApplyTests(ReconcilerTestCase):
    def test_moves_repository_and_persists(self) -> None:
        source = make_repo(self.base / "elsewhere" / "cobra", "https://github.com/spf13/cobra")
        self.store.upsert(tracked(source, "https://github.com/spf13/cobra", "cobra"))
        target = self.canonical("github.com", "spf13", "cobra")

        result = self.reconciler.run()

        self.assertEqual(result.moved, 1)
        self.assertEqual(result.taken, 1)
        self.assertTrue(result.persisted)
        self.assertFalse(source.exists())
        self.assertTrue((target / ".git").is_dir())

        entry = self.store.find_by_path(target)
        self.assertIsNotNone(entry)
        self.assertEqual(entry.domain, "github.com")
        self.assertEqual(entry.normalized_path, "github.com/spf13/cobra")
        saved = json.loads(self.state_file.read_text())["repositories"]
        self.assertEqual([item["path"] for item in saved], [str(target)])

    def test_second_run_is_idempotent(self) -> None:
        source = make_repo(self.base / "elsewhere" / "cobra", "git@github.com:spf13/cobra.git")
        self.store.upsert(tracked(source, "git@github.com:spf13/cobra.git", "cobra"))
        self.reconciler.run()
        saved = self.state_file.read_text()

        result = self.reconciler.run()

        self.assertEqual(result.proposed, 0)
        self.assertFalse(result.persisted)
        self.assertEqual(self.state_file.read_text(), saved)

    def test_url_update_moves_original_url_along(self) -> None:
        path = make_repo(self.canonical("github.com", "spf13", "viper"), "git@github.com:spf13/viper.git")
        self.store.upsert(tracked(path, "git@github.com:old-owner/viper.git", "viper"))

        result = self.reconciler.run()

        self.assertEqual(len(result.url_updates), 1)
        self.assertTrue(result.url_updates[0].applied)
        entry = self.store.find_by_path(path)
        self.assertEqual(entry.current_url, "git@github.com:spf13/viper.git")
        self.assertEqual(entry.original_url, "git@github.com:spf13/viper.git")

    def test_unparsable_stored_url_is_replaced_by_live_url(self) -> None:
        path = make_repo(self.canonical("github.com", "spf13", "viper"), "git@github.com:spf13/viper.git")
        self.store.upsert(tracked(path, "not a url:at all", "viper"))

        preview = self.reconciler.run(dry_run=True)
        self.assertEqual([(a.old, a.new) for a in preview.url_updates], [("not a url:at all", "git@github.com:spf13/viper.git")])
        self.assertEqual(preview.moves, [])

        self.reconciler.run()

        stored = self.store.find_by_path(path)
        self.assertEqual(stored.current_url, "git@github.com:spf13/viper.git")
        self.assertEqual(stored.original_url, "git@github.com:spf13/viper.git")

    def test_url_update_keeps_distinct_original_url(self) -> None:
        path = make_repo(self.canonical("github.com", "spf13", "viper"), "git@github.com:spf13/viper.git")
        entry = tracked(path, "git@github.com:fork/viper.git", "viper")
        entry.current_url = "git@github.com:old-owner/viper.git"
        self.store.upsert(entry)

        self.reconciler.run()

        stored = self.store.find_by_path(path)
        self.assertEqual(stored.current_url, "git@github.com:spf13/viper.git")
        self.assertEqual(stored.original_url, "git@github.com:fork/viper.git")

    def test_occupied_target_is_never_overwritten(self) -> None:
        source = make_repo(self.base / "elsewhere" / "cobra", "https://github.com/spf13/cobra")
        target = make_repo(self.canonical("github.com", "spf13", "cobra"))
        (target / "keep.txt").write_text("mine")
        self.store.upsert(tracked(source, "https://github.com/spf13/cobra", "cobra"))

        result = self.reconciler.run()

        self.assertEqual(len(result.conflicts), 1)
        self.assertEqual(result.moved, 0)
        self.assertTrue(source.is_dir())
        self.assertEqual((target / "keep.txt").read_text(), "mine")
        self.assertIsNotNone(self.store.find_by_path(source))

    def test_target_tracked_by_another_entry_conflicts(self) -> None:
        source = make_repo(self.base / "elsewhere" / "cobra", "https://github.com/spf13/cobra")
        target = self.canonical("github.com", "spf13", "cobra")
        self.store.upsert(tracked(source, "https://github.com/spf13/cobra", "cobra"))
        self.store.upsert(tracked(target, "https://github.com/spf13/cobra", "cobra"))

        result = self.reconciler.run()

        self.assertEqual(len(result.conflicts), 1)
        self.assertFalse(target.exists())
        self.assertTrue(source.is_dir())

    def test_failed_move_is_reported_and_entry_kept(self) -> None:
        source = make_repo(self.base / "elsewhere" / "cobra", "https://github.com/spf13/cobra")
        self.store.upsert(tracked(source, "https://github.com/spf13/cobra", "cobra"))

        with mock.patch("fussy_git.reconcile.move_directory", side_effect=OSError("cross-device link")):
            result = self.reconciler.run()

        move = result.moves[0]
        self.assertFalse(move.applied)
        self.assertIn("cross-device link", move.error)
        self.assertIsNotNone(self.store.find_by_path(source))

    def test_rename_is_cosmetic(self) -> None:
        path = make_repo(self.canonical("github.com", "spf13", "cobra"), "https://github.com/spf13/cobra")
        self.store.upsert(tracked(path, "https://github.com/spf13/cobra", "old-name"))

        result = self.reconciler.run()

        kinds = [action.kind for report in result.reports for action in report.actions]
        self.assertEqual(kinds, [ActionKind.RENAME])
        self.assertEqual(result.proposed, 0)
        self.assertEqual(self.store.find_by_path(path).name, "cobra")

    def test_save_failure_raises_persistence_error(self) -> None:
        source = make_repo(self.base / "elsewhere" / "cobra", "https://github.com/spf13/cobra")
        self.store.upsert(tracked(source, "https://github.com/spf13/cobra", "cobra"))

        with mock.patch.object(self.store, "save", side_effect=RegistryIOError("read-only filesystem")):
            with self.assertRaises(PersistenceError) as ctx:
                self.reconciler.run()

        self.assertEqual(ctx.exception.result.moved, 1)
        self.assertIsNotNone(self.store.find_by_path(self.canonical("github.com", "spf13", "cobra")))


class SkipTests(ReconcilerTestCase):
    def test_unusable_entries_are_skipped(self) -> None:
        missing = self.base / "gone"
        plain = self.base / "plain"
        plain.mkdir()
        no_origin = make_repo(self.base / "no-origin")
        bad_origin = make_repo(self.base / "bad-origin", "not a url:at all")
        healthy = make_repo(self.canonical("github.com", "spf13", "cobra"), "git@github.com:spf13/cobra.git")
        for path in (missing, plain, no_origin, bad_origin):
            self.store.upsert(tracked(path, f"https://github.com/x/{path.name}", path.name))
        self.store.upsert(tracked(healthy, "git@github.com:spf13/cobra.git", "cobra"))

        with self.assertLogs("fussy_git.reconcile", level="WARNING"):
            result = self.reconciler.run()

        self.assertEqual(len(result.skipped), 4)
        self.assertEqual({report.path for report in result.skipped}, {str(p) for p in (missing, plain, no_origin, bad_origin)})
        self.assertIn("Consider removing it", result.skipped[0].issues[0])
        cobra = next(report for report in result.reports if report.name == "cobra")
        self.assertEqual(cobra.status, EntryStatus.OK)


if __name__ == "__main__":
    unittest.main()
