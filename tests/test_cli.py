import json
import tempfile
import unittest
from pathlib import Path

from typer.testing import CliRunner

from lineprof_explorer.cli import app, handle_command
from lineprof_explorer.errors import MalformedSelector
from lineprof_explorer.navigation import NavigationController
from lineprof_explorer.tree import tree_to_dict
from tests.helpers import node


def _tree():
    return node("R", time=2.0, children=[
        node("foo", time=2.0, children=[
            node("bar", ref="x.R:5", time=1.5, children=[node("x"), node("y")]),
            node("baz", time=0.5)
        ])
    ])


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = Path(self._tmp.name)
        self.tree_path = self.dir / "tree.json"
        self.tree_path.write_text(json.dumps(tree_to_dict(_tree())))


class TestShow(CliTestCase):
    def test_show_writes_table_json(self):
        out = self.dir / "table.json"
        result = self.runner.invoke(app, ["show", "--tree", str(self.tree_path), "--out", str(out)])
        self.assertEqual(result.exit_code, 0, result.output)
        payload = json.loads(out.read_text())
        self.assertEqual(payload["mode"], "depth_reduced")
        self.assertEqual([row["label"] for row in payload["rows"]], ["foo", "  bar", "  baz"])
        self.assertEqual(payload["rows"][1]["handle"], "ref:x.R:5")

    def test_show_with_focus(self):
        out = self.dir / "table.json"
        result = self.runner.invoke(
            app,
            ["show", "--tree", str(self.tree_path), "--focus", "x.R:5", "--out", str(out)]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        payload = json.loads(out.read_text())
        self.assertEqual([row["label"] for row in payload["rows"]], ["x", "y"])

    def test_show_rejects_bad_selector(self):
        result = self.runner.invoke(app, ["show", "--tree", str(self.tree_path), "--focus", "os.system"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error", result.output)

    def test_show_requires_exactly_one_input(self):
        result = self.runner.invoke(app, ["show"])
        self.assertEqual(result.exit_code, 1)
        result = self.runner.invoke(
            app, ["show", "--tree", str(self.tree_path), "--trace", str(self.tree_path)]
        )
        self.assertEqual(result.exit_code, 1)

    def test_show_missing_file(self):
        result = self.runner.invoke(app, ["show", "--tree", str(self.dir / "nope.json")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("not found", result.output)

    def test_show_invalid_tree_file(self):
        bad = self.dir / "bad.json"
        bad.write_text(json.dumps({"children": []}))
        result = self.runner.invoke(app, ["show", "--tree", str(bad)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error loading profile", result.output)


class TestExplore(CliTestCase):
    def test_explore_drill_back_quit(self):
        result = self.runner.invoke(
            app,
            ["explore", "--tree", str(self.tree_path)],
            input="2\nnonsense\nb\nb\nq\n"
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Starting interactive profile explorer", result.output)
        self.assertIn("Unrecognised selector", result.output)


class TestHandleCommand(unittest.TestCase):
    def test_commands(self):
        controller = NavigationController(_tree())
        model = controller.table()
        self.assertIsNone(handle_command(controller, model, "quit"))

        zoomed = handle_command(controller, model, "2")
        self.assertEqual(controller.current.label, "bar")
        self.assertEqual([row.label for row in zoomed.rows], ["x", "y"])

        with self.assertRaises(MalformedSelector):
            handle_command(controller, zoomed, "1")
        with self.assertRaises(MalformedSelector):
            handle_command(controller, zoomed, "99")

        restored = handle_command(controller, zoomed, "back")
        self.assertEqual(restored, model)

        handle_command(controller, restored, "call:baz")
        self.assertEqual(controller.current.label, "baz")


if __name__ == "__main__":
    unittest.main()
