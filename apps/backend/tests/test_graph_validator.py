import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from toolforge.workflow.errors import GraphError
from toolforge.workflow.schema import WorkflowGraph
from toolforge.workflow.validator import validate


def _graph(node_ids, edges):
    return WorkflowGraph.model_validate(
        {
            "id": "test-graph",
            "nodes": [{"id": nid, "api": f"api_{nid}"} for nid in node_ids],
            "edges": [
                edge if isinstance(edge, dict) else {"source": edge[0], "target": edge[1]}
                for edge in edges
            ],
        }
    )


class GraphValidatorTests(unittest.TestCase):
    def assertGraphError(self, graph, kind):
        with self.assertRaises(GraphError) as ctx:
            validate(graph)
        self.assertEqual(ctx.exception.kind, kind, str(ctx.exception))
        return ctx.exception

    def test_single_node_without_edges_is_its_own_path(self):
        self.assertEqual(validate(_graph(["only"], [])), ["only"])

    def test_orders_nodes_from_start_to_end_regardless_of_declaration_order(self):
        graph = _graph(["c", "a", "b"], [("b", "c"), ("a", "b")])
        self.assertEqual(validate(graph), ["a", "b", "c"])

    def test_validation_is_deterministic(self):
        graph = _graph(["a", "b", "c", "d"], [("a", "b"), ("b", "c"), ("c", "d")])
        self.assertEqual(validate(graph), validate(graph.model_copy(deep=True)))

    def test_empty_graph_has_no_start_node(self):
        self.assertGraphError(_graph([], []), "NoStartNode")

    def test_two_unconnected_nodes_have_multiple_starts(self):
        err = self.assertGraphError(_graph(["a", "b"], []), "MultipleStartNodes")
        self.assertEqual(err.node_ids, ["a", "b"])

    def test_merge_into_one_node_reports_multiple_starts(self):
        self.assertGraphError(_graph(["a", "b", "c"], [("a", "c"), ("b", "c")]), "MultipleStartNodes")

    def test_fan_out_from_start_reports_multiple_ends(self):
        self.assertGraphError(_graph(["a", "b", "c"], [("a", "b"), ("a", "c")]), "MultipleEndNodes")

    def test_cycle_over_all_nodes_is_cycle_detected(self):
        err = self.assertGraphError(_graph(["a", "b"], [("a", "b"), ("b", "a")]), "CycleDetected")
        self.assertEqual(sorted(err.node_ids), ["a", "b"])

    def test_self_loop_is_cycle_detected(self):
        err = self.assertGraphError(_graph(["a", "b"], [("a", "b"), ("b", "b")]), "CycleDetected")
        self.assertEqual(err.node_ids, ["b"])

    def test_cycle_reachable_from_start_is_cycle_detected(self):
        graph = _graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "b")])
        err = self.assertGraphError(graph, "CycleDetected")
        self.assertEqual(sorted(err.node_ids), ["b", "c"])

    def test_cycle_in_separate_component_is_cycle_detected(self):
        graph = _graph(["a", "b", "c", "d"], [("a", "b"), ("c", "d"), ("d", "c")])
        err = self.assertGraphError(graph, "CycleDetected")
        self.assertEqual(sorted(err.node_ids), ["c", "d"])

    def test_cycle_with_a_tail_reports_the_cycle_nodes_in_edge_order(self):
        graph = _graph(["x", "y", "z"], [("x", "y"), ("y", "x"), ("y", "z")])
        err = self.assertGraphError(graph, "CycleDetected")
        self.assertIn(err.node_ids, (["x", "y"], ["y", "x"]))
        self.assertIn("->", err.message)

    def test_middle_node_with_two_outgoing_edges_is_branching(self):
        for mappings in [(None, None), ({"source": "id", "target": "id"}, {"source": "name", "target": "q"})]:
            graph = _graph(
                ["start", "middle", "end"],
                [
                    ("start", "middle"),
                    {"source": "middle", "target": "end", "mapping": mappings[0]},
                    {"source": "middle", "target": "end", "mapping": mappings[1]},
                ],
            )
            err = self.assertGraphError(graph, "BranchingNode")
            self.assertEqual(err.node_id, "middle")

    def test_error_serializes_with_node_id(self):
        err = self.assertGraphError(_graph(["a", "b"], []), "MultipleStartNodes")
        payload = err.to_dict()
        self.assertEqual(payload["kind"], "MultipleStartNodes")
        self.assertEqual(payload["nodeId"], "a")
        self.assertEqual(payload["nodeIds"], ["a", "b"])
        self.assertIn("2 start nodes", payload["message"])

    def test_graph_model_rejects_edges_to_unknown_nodes(self):
        with self.assertRaises(ValidationError):
            _graph(["a"], [("a", "ghost")])

    def test_graph_model_rejects_duplicate_node_ids(self):
        with self.assertRaises(ValidationError):
            _graph(["a", "a"], [])


if __name__ == "__main__":
    unittest.main()
