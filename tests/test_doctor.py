"""Tests for the read-only health checks."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from fussy_git.doctor import diagnose
from fussy_git.models import RepositoryEntry
from fussy_git.registry import RegistryStore

from .helpers import FakeInspector, make_repo


class DiagnoseTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.base = Path(self._tmp.name)
        self.root = self.base / "git"
        self.store = RegistryStore()
        self.inspector = FakeInspector()

    def add(self, path: Path, url: str, *, manually_added: bool = False) -> None:
        self.store.upsert(
            RepositoryEntry(
                name=path.name,
                path=str(path),
                original_url=url,
                current_url=url,
                manually_added=manually_added,
            )
        )

    def reports_by_path(self) -> dict[str, list[str]]:
        return {report.entry.path: report.issues for report in diagnose(self.store, self.inspector, self.root)}

    def test_healthy_repository(self) -> None:
        path = make_repo(self.root / "github.com" / "spf13" / "cobra", "https://github.com/spf13/cobra")
        self.add(path, "git@github.com:spf13/cobra.git")

        reports = diagnose(self.store, self.inspector, self.root)

        self.assertEqual(len(reports), 1)
        self.assertTrue(reports[0].ok)

    def test_reports_each_kind_of_issue(self) -> None:
        missing = self.base / "missing"
        plain = self.base / "plain"
        plain.mkdir()
        drifted = make_repo(self.root / "github.com" / "spf13" / "viper", "git@github.com:spf13/viper.git")
        misplaced = make_repo(self.base / "elsewhere" / "pflag", "git@github.com:spf13/pflag.git")
        self.add(missing, "git@github.com:spf13/missing.git")
        self.add(plain, "git@github.com:spf13/plain.git")
        self.add(drifted, "git@github.com:old-owner/viper.git")
        self.add(misplaced, "git@github.com:spf13/pflag.git", manually_added=True)

        issues = self.reports_by_path()

        self.assertIn("path does not exist", issues[str(missing)][0])
        self.assertIn("not a git repository", issues[str(plain)][0])
        self.assertEqual(len(issues[str(drifted)]), 1)
        self.assertIn("remote URL mismatch", issues[str(drifted)][0])
        self.assertIn("not in canonical location", issues[str(misplaced)][0])
        self.assertTrue(issues[str(misplaced)][0].endswith("(manually added)"))

    def test_duplicate_original_urls_are_flagged(self) -> None:
        first = make_repo(self.root / "github.com" / "spf13" / "cobra", "git@github.com:spf13/cobra.git")
        second = make_repo(self.base / "copy" / "cobra", "git@github.com:spf13/cobra.git")
        self.add(first, "git@github.com:spf13/cobra.git")
        with self.assertLogs("fussy_git.registry", level="WARNING"):
            self.add(second, "git@github.com:spf13/cobra.git")

        issues = self.reports_by_path()

        self.assertIn(str(second), issues[str(first)][0])
        self.assertIn(str(first), issues[str(second)][0])

    def test_does_not_modify_the_store(self) -> None:
        path = make_repo(self.base / "elsewhere" / "cobra", "https://github.com/spf13/cobra")
        self.add(path, "git@github.com:old/cobra.git")
        before = [entry.to_dict() for entry in self.store.entries()]

        diagnose(self.store, self.inspector, self.root)

        self.assertEqual([entry.to_dict() for entry in self.store.entries()], before)
        self.assertTrue(path.is_dir())


if __name__ == "__main__":
    unittest.main()
