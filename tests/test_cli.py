"""
Tests for the vibes command line interface.
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout


class TestCheckCommand(unittest.TestCase):
    """Test `vibes check`."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, name, content):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def run_cli(self, *argv):
        from vibes.cli import _main

        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = _main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_valid_file(self):
        path = self.write("ok.vibe", "def run()\n  1\nend\n")

        code, out, err = self.run_cli("check", path)

        self.assertEqual(code, 0)
        self.assertEqual(out, f"{path}: ok\n")
        self.assertEqual(err, "")

    def test_invalid_file(self):
        good = self.write("ok.vibe", "def run()\n  1\nend\n")
        bad = self.write("bad.vibe", "def run(\n  1\nend\n")

        code, out, err = self.run_cli("check", "--quiet", good, bad)

        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn(f"{bad}: compile failed: parse error at 3:1", err)

    def test_missing_file(self):
        path = os.path.join(self.tmp.name, "missing.vibe")

        code, _, err = self.run_cli("check", path)

        self.assertEqual(code, 1)
        self.assertIn(f"{path}: read script:", err)


class TestParser(unittest.TestCase):
    """Test argument parsing."""

    def test_lsp_arguments(self):
        from vibes.cli import create_parser

        args = create_parser().parse_args(["lsp", "--log", "lsp.log", "-q"])
        self.assertEqual(args.subcommand, "lsp")
        self.assertEqual(args.log, "lsp.log")
        self.assertTrue(args.quiet)

        args = create_parser().parse_args(["lsp"])
        self.assertIsNone(args.log)
        self.assertFalse(args.quiet)

    def test_no_subcommand(self):
        from vibes.cli import _main

        with redirect_stderr(io.StringIO()):
            self.assertEqual(_main([]), 2)


if __name__ == "__main__":
    unittest.main()
