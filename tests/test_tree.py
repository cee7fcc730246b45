import unittest

from lineprof_explorer.tree import (
    ProfilingNode,
    SourceRef,
    iter_nodes,
    node_at,
    source_paths,
    tree_from_dict,
    tree_to_dict
)
from tests.helpers import node


class TestSourceRef(unittest.TestCase):
    def test_parse_single_line(self):
        ref = SourceRef.parse("f.R:10")
        self.assertEqual(ref.path, "f.R")
        self.assertEqual(ref.first_line, 10)
        self.assertEqual(ref.last_line, 10)
        self.assertEqual(ref.token(), "f.R:10")

    def test_parse_range_and_drive_letter(self):
        ref = SourceRef.parse("C:\\src\\f.R:3-7")
        self.assertEqual(ref.path, "C:\\src\\f.R")
        self.assertEqual((ref.first_line, ref.last_line), (3, 7))
        self.assertEqual(ref.token(), "C:\\src\\f.R:3-7")

    def test_parse_rejects_garbage(self):
        for token in ["f.R", ":10", "f.R:ten", "f.R:0", "f.R:9-2"]:
            with self.assertRaises(ValueError, msg=token):
                SourceRef.parse(token)


class TestProfilingNode(unittest.TestCase):
    def test_children_are_tuples(self):
        tree = ProfilingNode(label="root", children=[ProfilingNode(label="a")])
        self.assertIsInstance(tree.children, tuple)
        self.assertFalse(tree.is_leaf)
        self.assertTrue(tree.children[0].is_leaf)

    def test_negative_metrics_rejected(self):
        with self.assertRaises(ValueError):
            ProfilingNode(label="bad", time=-1.0)
        with self.assertRaises(ValueError):
            ProfilingNode(label="bad", duplications=-2)

    def test_iter_nodes_is_preorder(self):
        tree = node("a", children=[
            node("b", children=[node("c"), node("d")]),
            node("e")
        ])
        self.assertEqual([n.label for n in iter_nodes(tree)], ["a", "b", "c", "d", "e"])

    def test_source_paths_distinct_in_order(self):
        tree = node("a", children=[
            node("b", ref="y.R:1"),
            node("c", ref="x.R:2", children=[node("d", ref="y.R:4")])
        ])
        self.assertEqual(source_paths(tree), ["y.R", "x.R"])
        self.assertEqual(source_paths(node("solo")), [])

    def test_node_at(self):
        tree = node("a", children=[node("b", children=[node("c")])])
        self.assertEqual(node_at(tree, ()).label, "a")
        self.assertEqual(node_at(tree, (0, 0)).label, "c")
        self.assertIsNone(node_at(tree, (1,)))
        self.assertIsNone(node_at(tree, (0, 0, 0)))


class TestTreeDicts(unittest.TestCase):
    def test_from_dict(self):
        tree = tree_from_dict({
            "label": "root",
            "time": 2,
            "children": [
                {"label": "x <- f()", "source_ref": "f.R:3", "memory_allocated": 1.5, "duplications": 2},
                {"label": "g", "source_ref": {"path": "g.R", "first_line": 1, "last_line": 4}}
            ]
        })
        self.assertEqual(tree.time, 2.0)
        self.assertEqual(tree.children[0].source_ref, SourceRef("f.R", 3))
        self.assertEqual(tree.children[0].duplications, 2)
        self.assertEqual(tree.children[1].source_ref.token(), "g.R:1-4")

    def test_to_dict_matches_input_shape(self):
        data = {
            "label": "root",
            "source_ref": None,
            "time": 1.0,
            "memory_released": 0.0,
            "memory_allocated": 0.5,
            "duplications": 0,
            "children": [{
                "label": "leaf",
                "source_ref": "f.R:2",
                "time": 1.0,
                "memory_released": 0.25,
                "memory_allocated": 0.5,
                "duplications": 1,
                "children": []
            }]
        }
        self.assertEqual(tree_to_dict(tree_from_dict(data)), data)

    def test_dict_ref_line_numbers_may_be_strings(self):
        tree = tree_from_dict({
            "label": "f",
            "source_ref": {"path": "f.R", "first_line": "3", "last_line": "12"}
        })
        self.assertEqual(tree.source_ref, SourceRef("f.R", 3, 12))

    def test_deep_trees_convert_without_recursion(self):
        depth = 5000
        data = {"label": "leaf"}
        for level in range(depth):
            data = {"label": f"call{level}", "children": [data]}

        tree = tree_from_dict(data)
        self.assertEqual(sum(1 for _ in iter_nodes(tree)), depth + 1)

        out = tree_to_dict(tree)
        levels = 0
        while out["children"]:
            out = out["children"][0]
            levels += 1
        self.assertEqual(levels, depth)
        self.assertEqual(out["label"], "leaf")

    def test_from_dict_keeps_child_order(self):
        tree = tree_from_dict({"label": "r", "children": [
            {"label": "a", "children": [{"label": "a1"}, {"label": "a2"}]},
            {"label": "b"}
        ]})
        self.assertEqual([n.label for n in iter_nodes(tree)], ["r", "a", "a1", "a2", "b"])

    def test_from_dict_requires_label(self):
        with self.assertRaises(ValueError):
            tree_from_dict({"time": 1.0})


if __name__ == "__main__":
    unittest.main()
