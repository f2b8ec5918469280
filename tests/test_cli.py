import tempfile
import unittest
from pathlib import Path

from typer.testing import CliRunner

from textmorph_cli.main import app


class TestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, text):
        path = self.tmp / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_examples(self):
        result = self.runner.invoke(app, ["examples"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("counter", result.output)
        self.assertIn("todo", result.output)

    def test_render(self):
        result = self.runner.invoke(app, ["render", "counter"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("# Counter Example", result.output)
        self.assertEqual(result.output.count("Value: 1"), 2)

    def test_render_with_key_presses(self):
        result = self.runner.invoke(app, ["render", "counter", "--press", "5:16:<CR>", "--press", "5:16:<CR>"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Value: 3", result.output)
        self.assertIn("Value: 1", result.output)

    def test_render_bad_press(self):
        result = self.runner.invoke(app, ["render", "counter", "--press", "nonsense"])
        self.assertEqual(result.exit_code, 1)

    def test_render_unknown_example(self):
        result = self.runner.invoke(app, ["render", "nope"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("unknown example", result.output)

    def test_diff(self):
        old = self.write("old.txt", "a\nb\nc")
        new = self.write("new.txt", "a\nx\nc\nd")
        result = self.runner.invoke(app, ["diff", old, new])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("replace 1:0-1:1 with 'x'", result.output)
        self.assertIn("insert line 3: 'd'", result.output)
        self.assertIn("2 edit(s)", result.output)

    def test_diff_identical_files(self):
        old = self.write("old.txt", "same\n")
        result = self.runner.invoke(app, ["diff", old, old])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("0 edit(s), 0 line(s) differ", result.output)

    def test_malformed_config(self):
        config = self.write("bad.yaml", "modes: [i\n")
        result = self.runner.invoke(app, ["--config", config, "examples"])
        self.assertEqual(result.exit_code, 1)

    def test_log_level(self):
        result = self.runner.invoke(app, ["--log-level", "debug", "examples"])
        self.assertEqual(result.exit_code, 0, result.output)
        result = self.runner.invoke(app, ["--log-level", "loud", "examples"])
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
