import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from toolforge.workflow.paths import (
    PathSyntaxError,
    SchemaPathError,
    format_path,
    parse_path,
    resolve_schema,
    types_compatible,
)

LIST_RESPONSE = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"id": {"type": "string"}, "tags": {"type": "array", "items": {"type": "string"}}},
            },
        },
        "total": {"type": "integer"},
    },
}


class ParsePathTests(unittest.TestCase):
    def test_parses_names_and_indices(self):
        self.assertEqual(parse_path("items[0].id"), ["items", 0, "id"])
        self.assertEqual(parse_path("rows[2][1]"), ["rows", 2, 1])
        self.assertEqual(parse_path("a.b_c.d-e"), ["a", "b_c", "d-e"])

    def test_format_round_trips_supported_paths(self):
        for expression in ("items[0].id", "total", "rows[2][1].value"):
            self.assertEqual(format_path(parse_path(expression)), expression)

    def test_rejects_unsupported_syntax(self):
        for expression in ("", "items[*].id", "items[-1]", "$.items", "a..b", "a.", "a[0]b", "items['x']", "a b"):
            with self.subTest(expression=expression):
                with self.assertRaises(PathSyntaxError):
                    parse_path(expression)


class ResolveSchemaTests(unittest.TestCase):
    def test_resolves_declared_fields_through_arrays(self):
        self.assertEqual(resolve_schema(LIST_RESPONSE, ["items", 0, "id"]), {"type": "string"})
        self.assertEqual(resolve_schema(LIST_RESPONSE, ["items", 0, "tags", 3]), {"type": "string"})

    def test_undeclared_field_is_an_error(self):
        with self.assertRaises(SchemaPathError) as ctx:
            resolve_schema(LIST_RESPONSE, ["items", 0, "name"])
        self.assertEqual(ctx.exception.segment, "name")

    def test_index_into_non_array_is_an_error(self):
        with self.assertRaises(SchemaPathError):
            resolve_schema(LIST_RESPONSE, ["total", 0])

    def test_name_on_array_is_an_error(self):
        with self.assertRaises(SchemaPathError):
            resolve_schema(LIST_RESPONSE, ["items", "id"])


class TypesCompatibleTests(unittest.TestCase):
    def test_identical_scalars_are_compatible(self):
        self.assertTrue(types_compatible({"type": "string"}, {"type": "string"}))

    def test_integer_fits_number_but_not_the_reverse(self):
        self.assertTrue(types_compatible({"type": "integer"}, {"type": "number"}))
        self.assertFalse(types_compatible({"type": "number"}, {"type": "integer"}))

    def test_array_into_scalar_is_a_mismatch(self):
        self.assertFalse(types_compatible({"type": "array", "items": {"type": "string"}}, {"type": "string"}))

    def test_nullable_source_into_required_target_is_a_mismatch(self):
        self.assertFalse(types_compatible({"type": ["string", "null"]}, {"type": "string"}))
        self.assertFalse(types_compatible({"type": "string", "nullable": True}, {"type": "string"}))
        self.assertTrue(types_compatible({"type": "string"}, {"type": ["string", "null"]}))

    def test_untyped_schemas(self):
        self.assertTrue(types_compatible({}, {}))
        self.assertTrue(types_compatible({"type": "integer"}, {}))
        self.assertFalse(types_compatible({}, {"type": "string"}))

    def test_array_item_types_are_compared(self):
        strings = {"type": "array", "items": {"type": "string"}}
        ints = {"type": "array", "items": {"type": "integer"}}
        self.assertTrue(types_compatible(strings, strings))
        self.assertFalse(types_compatible(ints, strings))
        self.assertTrue(types_compatible(ints, {"type": "array"}))


if __name__ == "__main__":
    unittest.main()
