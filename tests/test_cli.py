"""
Tests for the CLI commands.

Uses Python's unittest module.
Tests argument parsing and the init, info, backup, restore and reset
commands against a temporary installation.
"""

from __future__ import annotations

import io
import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from imagebox.cli import PASSWORD_ENV_VAR, create_parser, main
from imagebox.storage import ConfigStore, Provider


class TestArgumentParser(unittest.TestCase):
    """Tests for CLI argument parsing."""

    def setUp(self) -> None:
        """Set up parser for tests."""
        self.parser = create_parser()

    def test_version_argument(self) -> None:
        """Test --version argument."""
        with self.assertRaises(SystemExit) as cm:
            self.parser.parse_args(["--version"])
        self.assertEqual(cm.exception.code, 0)

    def test_no_command_defaults(self) -> None:
        """Test parsing with no command."""
        args = self.parser.parse_args([])
        self.assertIsNone(args.command)
        self.assertEqual(args.verbose, 0)
        self.assertFalse(args.quiet)

    def test_verbose_flag(self) -> None:
        """Test -v verbose flag."""
        self.assertEqual(self.parser.parse_args(["-vv"]).verbose, 2)

    def test_backup_output(self) -> None:
        """Test backup -o option."""
        args = self.parser.parse_args(["backup", "-o", "/tmp/out"])
        self.assertEqual(args.output, "/tmp/out")
        self.assertTrue(hasattr(args, "func"))

    def test_restore_requires_file(self) -> None:
        """Test restore needs a file argument."""
        with self.assertRaises(SystemExit):
            self.parser.parse_args(["restore"])

    def test_reset_force(self) -> None:
        """Test reset --force flag."""
        self.assertTrue(self.parser.parse_args(["reset", "--force"]).force)
        self.assertFalse(self.parser.parse_args(["reset"]).force)

    def test_info_json(self) -> None:
        """Test info --json flag."""
        self.assertTrue(self.parser.parse_args(["info", "--json"]).json)


class CliTestCase(unittest.TestCase):
    """Base class running main() against a temporary installation."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()
        base = Path(self.temp_dir)
        self.config_path = base / "config.yaml"
        self.data_dir = base / "data"
        self.backup_dir = base / "backups"
        self.env = patch.dict(
            os.environ,
            {
                "IMAGEBOX_CONFIG": str(self.config_path),
                "IMAGEBOX_DATA_DIR": str(self.data_dir),
                "IMAGEBOX_BACKUP_DIR": str(self.backup_dir),
                PASSWORD_ENV_VAR: "cli-password",
            },
        )
        self.env.start()

    def tearDown(self) -> None:
        self.env.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def run_cli(self, *argv: str) -> tuple[int, str, str]:
        """Run main() and return (exit code, stdout, stderr)."""
        with (
            patch("sys.stdout", new_callable=io.StringIO) as stdout,
            patch("sys.stderr", new_callable=io.StringIO) as stderr,
        ):
            with self.assertRaises(SystemExit) as cm:
                main(list(argv))
        return cm.exception.code, stdout.getvalue(), stderr.getvalue()


class TestInitAndInfo(CliTestCase):
    """Tests for init and info."""

    def test_init_creates_config_and_presets(self) -> None:
        """Test init writes the config file and seeds presets."""
        code, out, _ = self.run_cli("init")

        self.assertEqual(code, 0)
        self.assertTrue(self.config_path.exists())
        self.assertIn("Preset providers", out)
        self.assertGreater(len(ConfigStore(self.data_dir).list_providers()), 0)

    def test_init_twice(self) -> None:
        """Test a second init leaves presets alone."""
        self.run_cli("init")
        code, out, _ = self.run_cli("init")
        self.assertEqual(code, 0)
        self.assertIn("already installed", out)

    def test_info_json(self) -> None:
        """Test info --json output."""
        self.run_cli("init")
        code, out, _ = self.run_cli("info", "--json")

        self.assertEqual(code, 0)
        info = json.loads(out)
        self.assertTrue(info["initialized"])
        self.assertEqual(info["data_dir"], str(self.data_dir))
        self.assertEqual(info["counts"]["access_tokens"], 0)


class TestBackupRestore(CliTestCase):
    """Tests for backup and restore."""

    def test_backup_then_restore_elsewhere(self) -> None:
        """Test a backup file restores into another data directory."""
        ConfigStore(self.data_dir).save_provider(Provider.create("Acme", "OPENAI"))

        code, out, _ = self.run_cli("backup")
        self.assertEqual(code, 0)
        (backup_file,) = self.backup_dir.iterdir()
        self.assertEqual(backup_file.suffix, ".ibx")
        self.assertIn(str(backup_file), out)

        other = Path(self.temp_dir) / "other"
        with patch.dict(os.environ, {"IMAGEBOX_DATA_DIR": str(other)}):
            code, out, _ = self.run_cli("restore", str(backup_file))

        self.assertEqual(code, 0)
        self.assertIn("Providers restored: 1", out)
        self.assertEqual([p.name for p in ConfigStore(other).list_providers()], ["Acme"])

    def test_init_after_restore_into_new_installation(self) -> None:
        """Test init seeds presets on an installation filled by a restore."""
        self.run_cli("init")
        self.run_cli("backup")
        (backup_file,) = self.backup_dir.iterdir()

        other = Path(self.temp_dir) / "other"
        with patch.dict(os.environ, {"IMAGEBOX_DATA_DIR": str(other)}):
            self.assertEqual(self.run_cli("restore", str(backup_file))[0], 0)
            code, out, err = self.run_cli("init")

        self.assertEqual(code, 0, err)
        self.assertIn("Preset providers", out)
        self.assertEqual(
            len(ConfigStore(other).list_models()),
            len(ConfigStore(self.data_dir).list_models()),
        )

    def test_backup_output_option(self) -> None:
        """Test -o overrides the configured directory."""
        out_dir = Path(self.temp_dir) / "elsewhere"
        code, _, _ = self.run_cli("backup", "-o", str(out_dir))
        self.assertEqual(code, 0)
        self.assertEqual(len(list(out_dir.iterdir())), 1)

    def test_restore_wrong_password(self) -> None:
        """Test a wrong password exits 1 with the user-facing message."""
        self.run_cli("backup")
        (backup_file,) = self.backup_dir.iterdir()

        with patch.dict(os.environ, {PASSWORD_ENV_VAR: "not-it"}):
            code, _, err = self.run_cli("restore", str(backup_file))

        self.assertEqual(code, 1)
        self.assertIn("Invalid password or corrupted backup file", err)

    def test_restore_missing_file(self) -> None:
        """Test restoring a missing file exits 1."""
        code, _, err = self.run_cli("restore", str(Path(self.temp_dir) / "nope.ibx"))
        self.assertEqual(code, 1)
        self.assertIn("not found", err)

    def test_backup_empty_password(self) -> None:
        """Test an empty password exits 1."""
        with patch.dict(os.environ, {PASSWORD_ENV_VAR: ""}):
            code, _, err = self.run_cli("backup")
        self.assertEqual(code, 1)
        self.assertIn("Password is required", err)

    def test_interactive_password_mismatch(self) -> None:
        """Test mismatched prompted passwords abort the backup."""
        del os.environ[PASSWORD_ENV_VAR]
        with patch("imagebox.cli.getpass.getpass", side_effect=["one", "two"]):
            code, _, err = self.run_cli("backup")
        self.assertEqual(code, 1)
        self.assertIn("do not match", err)


class TestReset(CliTestCase):
    """Tests for reset."""

    def test_reset_force(self) -> None:
        """Test reset --force deletes user providers."""
        self.run_cli("init")
        ConfigStore(self.data_dir).save_provider(Provider.create("Mine", "OPENAI"))

        code, out, _ = self.run_cli("reset", "--force")

        self.assertEqual(code, 0)
        self.assertIn("Configuration reset", out)
        names = [p.name for p in ConfigStore(self.data_dir).list_providers()]
        self.assertNotIn("Mine", names)

    def test_reset_cancelled(self) -> None:
        """Test answering no keeps everything."""
        ConfigStore(self.data_dir).save_provider(Provider.create("Mine", "OPENAI"))
        with patch("builtins.input", return_value="n"):
            code, out, _ = self.run_cli("reset")

        self.assertEqual(code, 0)
        self.assertIn("cancelled", out)
        self.assertEqual(len(ConfigStore(self.data_dir).list_providers()), 1)


if __name__ == "__main__":
    unittest.main()
