from apirunner.models import ApiDefinition, BodyParameters, FormDataPart, ResponseSpec
from apirunner.parser import (
    Parser,
    VariableScope,
    get_by_dot_path,
    regex_findall_variables,
    resolve_data,
    resolve_definition,
    resolve_string,
)


class TestGetByDotPath:
    def test_nested(self):
        assert get_by_dot_path({"user": {"profile": {"name": "demo"}}}, "user.profile.name") == "demo"

    def test_non_mapping_mid_path(self):
        assert get_by_dot_path({"user": "demo"}, "user.name") is None

    def test_missing_segment(self):
        assert get_by_dot_path({"user": {}}, "user.name") is None
        assert get_by_dot_path(None, "user") is None


class TestVariableScope:
    def test_precedence_case_over_module_over_env(self):
        scope = VariableScope({"k": "case"}, {"k": "module"}, {"k": "env"})
        assert resolve_string("{k}", scope) == "case"

        scope = VariableScope({}, {"k": "module"}, {"k": "env"})
        assert resolve_string("{k}", scope) == "module"

        scope = VariableScope(None, None, {"k": "env"})
        assert resolve_string("{k}", scope) == "env"

    def test_null_value_falls_through(self):
        scope = VariableScope({"k": None}, {"k": "module"})
        assert scope.lookup("k") == "module"

    def test_layers_read_only(self):
        module_vars = {"k": "module"}
        scope = VariableScope(None, module_vars)
        derived = scope.with_case_vars({"k": "case"})

        assert derived.lookup("k") == "case"
        assert scope.lookup("k") == "module"
        assert module_vars == {"k": "module"}


class TestResolveString:
    def test_multiple_placeholders(self):
        scope = VariableScope({"id": 3}, {"user": {"name": "demo"}})
        assert resolve_string("/users/{id}?name={user.name}", scope) == "/users/3?name=demo"

    def test_unresolved_becomes_empty(self):
        assert resolve_string("a{missing}b", VariableScope()) == "ab"

    def test_value_rendering(self):
        scope = VariableScope({"flag": True, "ids": [1, 2], "meta": {"a": 1}, "n": 1.5})
        assert resolve_string("{flag}|{ids}|{meta}|{n}", scope) == 'true|[1,2]|{"a":1}|1.5'

    def test_postman_style_placeholder(self):
        scope = VariableScope(None, None, {"baseUrl": "http://127.0.0.1:8080"})
        assert resolve_string("{{baseUrl}}/files", scope) == "http://127.0.0.1:8080/files"

    def test_json_literal_untouched(self):
        scope = VariableScope({"user": {"name": "demo", "age": 18}})
        raw = '{"name": "{user.name}", "age": {user.age}, "tags": {}}'
        assert resolve_string(raw, scope) == '{"name": "demo", "age": 18, "tags": {}}'

    def test_idempotent_on_resolved_string(self):
        scope = VariableScope({"id": 3})
        resolved = resolve_string("/users/{id}", scope)
        assert resolve_string(resolved, scope) == resolved

    def test_findall_variables(self):
        assert regex_findall_variables("/api/{user.id}/orders/{order_id}") == [
            "user.id",
            "order_id",
        ]
        assert regex_findall_variables('{"name": "abc"}') == []


class TestResolveData:
    def test_recursive(self):
        scope = VariableScope({"id": 7, "name": "demo"})
        raw = {"id": "{id}", "items": ["{name}", 1, None], "nested": {"{id}": "{name}"}}

        assert resolve_data(raw, scope) == {
            "id": "7",
            "items": ["demo", 1, None],
            "nested": {"{id}": "demo"},
        }


class TestResolveDefinition:
    def test_new_definition_returned(self):
        definition = ApiDefinition(
            method="POST",
            host="{{baseUrl}}",
            path="/users/{id}",
            headers={"X-User": "{user.name}"},
            query={"page": "{page}"},
            body='{"name": "{user.name}"}',
            body_parameters=BodyParameters(
                formdata=[FormDataPart(key="avatar", type="file", src="{avatar}")]
            ),
            responses={"200": ResponseSpec(description="user {id}")},
        )
        scope = VariableScope(
            {"id": 5, "page": 2, "avatar": "/tmp/a.png"},
            {"user": {"name": "demo"}},
            {"baseUrl": "http://127.0.0.1"},
        )

        resolved = resolve_definition(definition, scope)

        assert resolved is not definition
        assert resolved.host == "http://127.0.0.1"
        assert resolved.path == "/users/5"
        assert resolved.headers == {"X-User": "demo"}
        assert resolved.query == {"page": "2"}
        assert resolved.body == '{"name": "demo"}'
        assert resolved.body_parameters.formdata[0].src == "/tmp/a.png"
        # responses are documentation
        assert resolved.responses["200"].description == "user {id}"
        assert definition.path == "/users/{id}"

    def test_raw_mapping_accepted(self):
        parser = Parser(VariableScope({"id": 1}))
        resolved = parser.parse_definition(
            {"method": "GET", "path": "/users/{id}", "operationId": "getUser"}
        )

        assert resolved.path == "/users/1"
        assert resolved.operation_id == "getUser"

    def test_parser_with_case_vars(self):
        parser = Parser(VariableScope(None, {"k": "module"}))
        assert parser.with_case_vars({"k": "case"}).parse_string("{k}") == "case"
        assert parser.parse_string("{k}") == "module"
        assert parser.parse_data(["{k}"]) == ["module"]
