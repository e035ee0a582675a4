import json

import pytest

from apirunner import assertion
from apirunner.exceptions import ValidationFailure
from apirunner.models import ApiHttpResponse

BODY = json.dumps(
    {
        "code": 0,
        "message": "query success",
        "data": [
            {"id": 1, "name": "a.txt", "meta": {"size": 10}},
            {"id": 2, "name": "b.txt", "meta": {"size": 20}},
        ],
        "owner": {"name": "demo", "roles": ["admin", "qa"]},
        "token": "abcdef",
        "deleted": None,
    }
)


class TestReadPath:
    def test_prefix_added(self):
        assert assertion.read_path(BODY, "owner.name") == "demo"
        assert assertion.read_path(BODY, "$.owner.name") == "demo"

    def test_several_matches_list(self):
        assert assertion.read_path(BODY, "$.data[*].id") == [1, 2]

    def test_no_match(self):
        assert assertion.read_path(BODY, "$.missing") is None

    def test_invalid_expression(self):
        assert assertion.read_path(BODY, "$.data[") is None

    def test_not_json(self):
        assert assertion.read_path("<html></html>", "$.code") is None
        assert assertion.read_path(None, "$.code") is None

    def test_sources(self):
        response = ApiHttpResponse(status_code=200, body=BODY)
        assert assertion.read_path(response, "code") == 0
        assert assertion.read_path(json.loads(BODY), "code") == 0


class TestSizeOf:
    def test_polymorphic(self):
        assert assertion.size_of("abc") == 3
        assert assertion.size_of([1, 2]) == 2
        assert assertion.size_of({"a": 1}) == 1
        assert assertion.size_of(None) == -1
        assert assertion.size_of(12345) == 5


class TestAssertions:
    def test_status_code(self):
        response = ApiHttpResponse(status_code=201)
        assertion.assert_status_code(response, 201)
        with pytest.raises(ValidationFailure):
            assertion.assert_status_code(response, 200)

    def test_code_equals(self):
        assertion.assert_code_equals(BODY, 0)
        with pytest.raises(ValidationFailure) as exc_info:
            assertion.assert_code_equals(BODY, 500)

        failure = exc_info.value
        assert failure.path == "$.code"
        assert failure.expected == 500
        assert failure.actual == 0
        assert "$.code" in str(failure) and "500" in str(failure) and "0" in str(failure)

    def test_code_missing(self):
        with pytest.raises(ValidationFailure):
            assertion.assert_code_equals('{"message": "x"}', 0)

    def test_message_contains(self):
        assertion.assert_message_contains(BODY, "success")
        with pytest.raises(ValidationFailure):
            assertion.assert_message_contains(BODY, "failed")

    def test_equals_at(self):
        assertion.assert_equals_at(BODY, "$.data[1].meta.size", 20)
        with pytest.raises(ValidationFailure):
            assertion.assert_equals_at(BODY, "$.data[1].meta.size", "20")

    def test_contains_at(self):
        assertion.assert_contains_at(BODY, "$.owner.roles", "qa")
        assertion.assert_contains_at(BODY, "$.data[0].name", ".txt")
        with pytest.raises(ValidationFailure):
            assertion.assert_contains_at(BODY, "$.owner.name", "root")
        with pytest.raises(ValidationFailure):
            assertion.assert_contains_at(BODY, "$.missing", "x")

    def test_equals_at_boolean_not_number(self):
        assertion.assert_equals_at('{"ok": true}', "ok", True)
        with pytest.raises(ValidationFailure):
            assertion.assert_equals_at('{"ok": false}', "ok", 0)
        with pytest.raises(ValidationFailure):
            assertion.assert_equals_at('{"ok": true}', "ok", 1)
        with pytest.raises(ValidationFailure):
            assertion.assert_equals_at('{"count": 1}', "count", True)
        with pytest.raises(ValidationFailure):
            assertion.assert_equals_at('{"flags": [true, false]}', "flags", [1, 0])

    def test_contains_at_boolean_not_number(self):
        assertion.assert_contains_at('{"ids": [1, 2]}', "ids", 2)
        assertion.assert_contains_at('{"flags": [false]}', "flags", False)
        with pytest.raises(ValidationFailure):
            assertion.assert_contains_at('{"ids": [1, 2]}', "ids", True)
        with pytest.raises(ValidationFailure):
            assertion.assert_contains_at('{"flags": [false]}', "flags", 0)

    def test_same_value(self):
        assert assertion.same_value(1, 1.0)
        assert assertion.same_value({"a": [True]}, {"a": [True]})
        assert not assertion.same_value({"a": [True]}, {"a": [1]})
        assert not assertion.same_value(False, 0)

    def test_size_at(self):
        assertion.assert_size_at(BODY, "$.owner", 2)
        assertion.assert_size_at(BODY, "$.token", 6)
        with pytest.raises(ValidationFailure):
            assertion.assert_size_at(BODY, "$.owner.roles", 3)

    def test_data_length_and_array_size(self):
        assertion.assert_data_length_equals(BODY, 2)
        assertion.assert_data_array_size(BODY, 2)

        with pytest.raises(ValidationFailure):
            assertion.assert_data_array_size('{"data": "ab"}', 2)
        assertion.assert_data_length_equals('{"data": "ab"}', 2)

    def test_array_element_equals(self):
        assertion.assert_array_element_equals(BODY, 1, "name", "b.txt")
        assertion.assert_array_element_equals(BODY, 0, "meta.size", "10")
        assertion.assert_array_element_equals(BODY, 1, "", "qa", array_path="$.owner.roles")
        assertion.assert_array_element_equals(BODY, 0, None, "admin", array_path="owner.roles")

    def test_array_element_out_of_range(self):
        with pytest.raises(ValidationFailure) as exc_info:
            assertion.assert_array_element_equals(BODY, 5, "name", "x")
        assert "index out of range" in str(exc_info.value)

    def test_array_element_mismatch(self):
        with pytest.raises(ValidationFailure) as exc_info:
            assertion.assert_array_element_equals(BODY, 0, "name", "b.txt")
        assert exc_info.value.actual == "a.txt"

    def test_null_checks(self):
        assertion.assert_not_null_at(BODY, "$.owner")
        assertion.assert_null_at(BODY, "$.deleted")
        assertion.assert_null_at(BODY, "$.missing")
        with pytest.raises(ValidationFailure):
            assertion.assert_not_null_at(BODY, "$.deleted")
        with pytest.raises(ValidationFailure):
            assertion.assert_null_at(BODY, "$.owner.name")

    def test_field_length(self):
        assertion.assert_field_length(BODY, "$.token", 6)
        assertion.assert_field_length(BODY, "$.data[0].id", 1)
        with pytest.raises(ValidationFailure):
            assertion.assert_field_length(BODY, "$.missing", 1)

    def test_random_string_length(self):
        assertion.assert_random_string_length("abc123", 6)
        with pytest.raises(ValidationFailure):
            assertion.assert_random_string_length(None, 6)
