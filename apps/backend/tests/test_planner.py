import sys
import threading
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from toolforge.catalog import InMemoryCatalog
from toolforge.workflow.errors import PlanError, SchemaError
from toolforge.workflow.planner import plan
from toolforge.workflow.schema import WorkflowGraph
from toolforge.workflow.validator import validate

API_DEFINITIONS = {
    "fetch_list": {
        "method": "GET",
        "path": "/items",
        "parameters": [{"name": "limit", "location": "query", "schema": {"type": "integer"}}],
        "responses": {
            "200": {
                "type": "object",
                "properties": {
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {"id": {"type": "string"}, "count": {"type": "integer"}},
                        },
                    },
                    "next": {"type": ["string", "null"]},
                },
            }
        },
    },
    "fetch_detail": {
        "method": "GET",
        "path": "/items/{id}",
        "parameters": [{"name": "id", "location": "path", "schema": {"type": "string"}}],
        "responses": {
            "200": {
                "type": "object",
                "properties": {"id": {"type": "string"}, "name": {"type": "string"}},
            },
            "404": {"type": "object"},
        },
    },
    "create_note": {
        "method": "POST",
        "path": "/notes",
        "parameters": [
            {"name": "text", "location": "body", "required": True, "schema": {"type": "string"}},
            {"name": "weight", "location": "body", "schema": {"type": "number"}},
        ],
        "responses": {"201": {"type": "object", "properties": {"note_id": {"type": "string"}}}},
    },
    "broken": {
        "method": "GET",
        "path": "/broken",
        "parameters": [],
        "responses": {"500": {"type": "object"}},
    },
}


def _catalog():
    return InMemoryCatalog(API_DEFINITIONS)


def _two_step(first_api, second_api, mapping=None, first_overrides=None, second_overrides=None):
    return WorkflowGraph.model_validate(
        {
            "id": "two-step",
            "nodes": [
                {"id": "first", "api": first_api, "overrides": first_overrides or {}},
                {"id": "second", "api": second_api, "overrides": second_overrides or {}},
            ],
            "edges": [{"source": "first", "target": "second", "mapping": mapping}],
        }
    )


def _plan(graph, catalog=None):
    return plan(validate(graph), graph, catalog or _catalog())


class PlannerTests(unittest.TestCase):
    def assertPlanError(self, graph, kind, error_type=PlanError):
        with self.assertRaises(error_type) as ctx:
            _plan(graph)
        self.assertEqual(ctx.exception.kind, kind, str(ctx.exception))
        return ctx.exception

    def test_resolves_steps_in_path_order_with_mapping(self):
        graph = _two_step("fetch_list", "fetch_detail", {"source": "items[0].id", "target": "id"})
        execution_plan = _plan(graph)

        self.assertEqual([s.node_id for s in execution_plan.steps], ["first", "second"])
        self.assertEqual(execution_plan.steps[1].api.path, "/items/{id}")
        self.assertIsNone(execution_plan.steps[0].mapping)
        mapping = execution_plan.steps[1].mapping
        self.assertEqual(mapping.source, ["items", 0, "id"])
        self.assertEqual(mapping.target, ["id"])

    def test_planning_is_deterministic(self):
        graph = _two_step("fetch_list", "fetch_detail", {"source": "items[0].id", "target": "id"})
        self.assertEqual(_plan(graph).model_dump(), _plan(graph).model_dump())

    def test_unknown_api_names_the_node(self):
        graph = _two_step("fetch_list", "does_not_exist", {"source": "items[0].id", "target": "id"})
        err = self.assertPlanError(graph, "UnknownApi")
        self.assertEqual(err.node_id, "second")

    def test_source_path_missing_from_response_schema(self):
        graph = _two_step("fetch_list", "fetch_detail", {"source": "items[0].uuid", "target": "id"})
        err = self.assertPlanError(graph, "InvalidMappingPath")
        self.assertEqual(err.path, "items[0].uuid")
        self.assertEqual(err.node_id, "second")

    def test_unsupported_path_syntax_is_rejected(self):
        graph = _two_step("fetch_list", "fetch_detail", {"source": "items[*].id", "target": "id"})
        self.assertPlanError(graph, "InvalidMappingPath")

    def test_target_must_name_a_declared_parameter(self):
        graph = _two_step("fetch_list", "fetch_detail", {"source": "items[0].id", "target": "item_id"})
        self.assertPlanError(graph, "InvalidMappingPath")

    def test_array_into_scalar_is_a_type_mismatch(self):
        graph = _two_step("fetch_list", "fetch_detail", {"source": "items", "target": "id"})
        self.assertPlanError(graph, "TypeMismatch")

    def test_nullable_into_required_is_a_type_mismatch(self):
        graph = _two_step("fetch_list", "fetch_detail", {"source": "next", "target": "id"})
        err = self.assertPlanError(graph, "TypeMismatch")
        self.assertIn("string|null", err.message)

    def test_integer_into_number_body_field_is_accepted(self):
        graph = _two_step(
            "fetch_list",
            "create_note",
            {"source": "items[0].count", "target": "weight"},
            second_overrides={"text": "hello"},
        )
        execution_plan = _plan(graph)
        self.assertEqual(execution_plan.steps[1].overrides, {"text": "hello"})

    def test_unmapped_required_parameter_after_first_step(self):
        graph = _two_step("fetch_list", "fetch_detail")
        err = self.assertPlanError(graph, "MissingParameter")
        self.assertEqual(err.path, "id")

    def test_static_override_satisfies_a_required_parameter(self):
        graph = _two_step("fetch_list", "fetch_detail", second_overrides={"id": "7"})
        self.assertEqual(_plan(graph).steps[1].overrides, {"id": "7"})

    def test_override_of_undeclared_parameter(self):
        graph = _two_step(
            "fetch_list",
            "fetch_detail",
            {"source": "items[0].id", "target": "id"},
            first_overrides={"page": 2},
        )
        err = self.assertPlanError(graph, "UnknownParameter")
        self.assertEqual(err.node_id, "first")

    def test_mapping_from_api_without_success_response(self):
        graph = _two_step("broken", "fetch_detail", {"source": "id", "target": "id"})
        err = self.assertPlanError(graph, "NoSuccessResponse", error_type=SchemaError)
        self.assertEqual(err.node_id, "first")

    def test_each_api_is_fetched_once_and_results_keep_path_order(self):
        class RecordingCatalog(InMemoryCatalog):
            def __init__(self, definitions):
                super().__init__(definitions)
                self.calls = []
                self.lock = threading.Lock()

            def get(self, api_id):
                with self.lock:
                    self.calls.append(api_id)
                return super().get(api_id)

        catalog = RecordingCatalog(API_DEFINITIONS)
        graph = WorkflowGraph.model_validate(
            {
                "id": "repeat",
                "nodes": [
                    {"id": "one", "api": "fetch_list"},
                    {"id": "two", "api": "fetch_detail", "overrides": {"id": "1"}},
                    {"id": "three", "api": "fetch_detail"},
                ],
                "edges": [
                    {"source": "one", "target": "two"},
                    {"source": "two", "target": "three", "mapping": {"source": "id", "target": "id"}},
                ],
            }
        )
        execution_plan = _plan(graph, catalog)

        self.assertEqual(sorted(catalog.calls), ["fetch_detail", "fetch_list"])
        self.assertEqual([s.api.id for s in execution_plan.steps], ["fetch_list", "fetch_detail", "fetch_detail"])


if __name__ == "__main__":
    unittest.main()
