"""
Unit tests for reading the local cargo state.
"""

import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from crate_seek.cargo.commands import cargo_available, run_cargo
from crate_seek.cargo.environment import CargoEnvironment, EnvironmentSnapshot
from crate_seek.cargo.metadata import parse_install_list, parse_metadata
from crate_seek.cargo.project import Project, ProjectSnapshot, find_manifest
from crate_seek.core.exceptions import CargoCommandError
from tests.fixtures.sample_data import SAMPLE_CARGO_METADATA_JSON, SAMPLE_INSTALL_LIST


class TestParsing(unittest.TestCase):
    """Test parsing cargo output."""

    def test_parse_metadata(self):
        packages = parse_metadata(SAMPLE_CARGO_METADATA_JSON)

        self.assertEqual([p.name for p in packages], ["app", "app-core"])
        app = packages[0]
        self.assertEqual(app.version, "0.1.0")
        self.assertEqual([d.name for d in app.dependencies], ["serde", "serde_json", "tokio", "pretty_assertions"])
        self.assertEqual(app.dependencies[3].kind, "dev")
        self.assertTrue(packages[1].dependencies[0].optional)

    def test_parse_metadata_invalid(self):
        with self.assertRaises(CargoCommandError):
            parse_metadata("error: could not find `Cargo.toml`")
        with self.assertRaises(CargoCommandError):
            parse_metadata('{"version": 1}')

    def test_parse_install_list(self):
        binaries = parse_install_list(SAMPLE_INSTALL_LIST)

        self.assertEqual(
            [(b.name, b.version) for b in binaries],
            [
                ("cargo-edit", "0.12.3"),
                ("cargo-seek", "0.1.0"),
                ("ripgrep", "14.1.0"),
                ("serde-tool", "0.3.0"),
            ]
        )

    def test_parse_empty_install_list(self):
        self.assertEqual(parse_install_list(""), [])


class TestProjectSnapshot(unittest.TestCase):
    """Test dependency lookups across workspace members."""

    def setUp(self):
        self.snapshot = ProjectSnapshot(packages=tuple(parse_metadata(SAMPLE_CARGO_METADATA_JSON)))

    def test_dependency_matches(self):
        matches = self.snapshot.dependency_matches("SERDE")
        self.assertEqual([d.name for d in matches], ["serde", "serde_json", "serde"])

    def test_later_members_win_for_local_version(self):
        self.assertEqual(self.snapshot.local_version("serde"), "^1.0.200")
        self.assertEqual(self.snapshot.local_version("tokio"), "^1.40")
        self.assertIsNone(self.snapshot.local_version("rand"))


class TestFindManifest(unittest.TestCase):
    """Test locating Cargo.toml."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name).resolve()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_finds_manifest_in_parent(self):
        (self.root / "Cargo.toml").write_text("[package]\nname = \"app\"\n")
        nested = self.root / "src" / "bin"
        nested.mkdir(parents=True)

        self.assertEqual(find_manifest(nested), self.root / "Cargo.toml")

    def test_name_is_case_insensitive(self):
        (self.root / "cargo.toml").write_text("")
        self.assertEqual(find_manifest(self.root).name, "cargo.toml")

    def test_missing_directory(self):
        self.assertIsNone(find_manifest(self.root / "missing"))

    def test_discover(self):
        (self.root / "Cargo.toml").write_text("")
        project = Project.discover(self.root)
        self.assertEqual(project.manifest_path, self.root / "Cargo.toml")


class TestProject(unittest.TestCase):
    """Test reading project metadata."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.manifest = Path(self.temp_dir.name) / "Cargo.toml"
        self.manifest.write_text("")

    def tearDown(self):
        self.temp_dir.cleanup()

    @mock.patch("crate_seek.cargo.project.run_cargo")
    def test_read(self, mock_run):
        mock_run.return_value = SAMPLE_CARGO_METADATA_JSON
        project = Project(self.manifest)

        snapshot = project.read()

        args = mock_run.call_args.args[0]
        self.assertEqual(args[:4], ["metadata", "--no-deps", "--format-version", "1"])
        self.assertIn(str(self.manifest), args)
        self.assertEqual(len(snapshot.packages), 2)
        self.assertIs(project.snapshot, snapshot)

    @mock.patch("crate_seek.cargo.project.run_cargo")
    def test_read_missing_manifest(self, mock_run):
        project = Project(self.manifest)
        self.manifest.unlink()

        with self.assertRaises(CargoCommandError):
            project.read()
        mock_run.assert_not_called()


class TestCargoEnvironment(unittest.TestCase):
    """Test refreshing the environment snapshot."""

    def test_empty_environment(self):
        environment = CargoEnvironment()
        snapshot = environment.snapshot()
        self.assertIsInstance(snapshot, EnvironmentSnapshot)
        self.assertIsNone(snapshot.project)
        self.assertIsNone(snapshot.installed_version("ripgrep"))

    @mock.patch("crate_seek.cargo.environment.run_cargo")
    def test_refresh(self, mock_run):
        mock_run.return_value = SAMPLE_INSTALL_LIST
        project = mock.Mock()
        project.read.return_value = ProjectSnapshot(packages=tuple(parse_metadata(SAMPLE_CARGO_METADATA_JSON)))
        environment = CargoEnvironment(project=project)
        before = environment.snapshot()

        snapshot = environment.refresh()

        self.assertIsNot(snapshot, before)
        self.assertIs(environment.snapshot(), snapshot)
        self.assertEqual(snapshot.local_version("serde_json"), "^1.0")
        self.assertEqual(snapshot.installed_version("ripgrep"), "14.1.0")
        mock_run.assert_called_once_with(["install", "--list"])

    @mock.patch("crate_seek.cargo.environment.run_cargo")
    def test_refresh_degrades_when_cargo_fails(self, mock_run):
        mock_run.side_effect = CargoCommandError("cargo executable not found on PATH")
        project = mock.Mock()
        project.read.side_effect = CargoCommandError("metadata failed")
        project.snapshot = ProjectSnapshot()

        with self.assertLogs("crate_seek.cargo.environment", level="WARNING") as logs:
            snapshot = CargoEnvironment(project=project).refresh()

        self.assertEqual(len(logs.output), 2)
        self.assertIs(snapshot.project, project.snapshot)
        self.assertEqual(snapshot.installed.binaries, ())


class TestRunCargo(unittest.TestCase):
    """Test invoking the cargo executable."""

    @mock.patch("crate_seek.cargo.commands.shutil.which", return_value=None)
    def test_cargo_missing(self, mock_which):
        self.assertFalse(cargo_available())
        with self.assertRaises(CargoCommandError):
            run_cargo(["install", "--list"])

    @mock.patch("crate_seek.cargo.commands.subprocess.run")
    @mock.patch("crate_seek.cargo.commands.shutil.which", return_value="/usr/bin/cargo")
    def test_success(self, mock_which, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=["cargo"], returncode=0, stdout="ripgrep v14.1.0:\n", stderr=""
        )

        self.assertEqual(run_cargo(["install", "--list"]), "ripgrep v14.1.0:\n")
        self.assertEqual(mock_run.call_args.args[0], ["cargo", "install", "--list"])

    @mock.patch("crate_seek.cargo.commands.subprocess.run")
    @mock.patch("crate_seek.cargo.commands.shutil.which", return_value="/usr/bin/cargo")
    def test_non_zero_exit(self, mock_which, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=["cargo"], returncode=101, stdout="", stderr="error: manifest not found\n"
        )

        with self.assertRaises(CargoCommandError) as context:
            run_cargo(["metadata"])
        self.assertIn("manifest not found", str(context.exception))

    @mock.patch("crate_seek.cargo.commands.subprocess.run")
    @mock.patch("crate_seek.cargo.commands.shutil.which", return_value="/usr/bin/cargo")
    def test_timeout(self, mock_which, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="cargo", timeout=30)

        with self.assertRaises(CargoCommandError) as context:
            run_cargo(["metadata"])
        self.assertIn("timed out", str(context.exception))


if __name__ == "__main__":
    unittest.main()
