import re
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Text, Tuple, Union

from loguru import logger

from apirunner.models import ApiDefinition, VariablesMapping
from apirunner.utils import stringify

# dot separated key path, e.g. user.profile.name
key_path_pattern = r"[A-Za-z0-9_\-]+(?:\.[A-Za-z0-9_\-]+)*"
# variable notation, e.g. {user.name}, postman style {{user.name}} is accepted as well
variable_regex_compile = re.compile(
    r"\{\{\s*(" + key_path_pattern + r")\s*\}\}|\{(" + key_path_pattern + r")\}"
)

# schema and documentation fields, never resolved
UNRESOLVED_FIELDS = ("responses", "bodySchema")

_empty_mapping = MappingProxyType({})


def get_by_dot_path(mapping: Optional[Mapping], key_path: Text) -> Any:
    """descend nested mapping one segment at a time.

    Examples:
        >>> get_by_dot_path({"user": {"name": "demo"}}, "user.name")
            "demo"

        >>> get_by_dot_path({"user": "demo"}, "user.name")
            None

    """
    current = mapping
    for segment in key_path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
        if current is None:
            return None

    return current


class VariableScope(object):
    """layered variables lookup chain: case variables > module variables > env variables.

    layers are exposed read-only, a scope for another test case is derived with
    `with_case_vars` while module and env layers are shared.
    """

    def __init__(
        self,
        case_vars: VariablesMapping = None,
        module_vars: VariablesMapping = None,
        env_vars: VariablesMapping = None,
    ) -> None:
        self.__layers: Tuple[Mapping, ...] = tuple(
            MappingProxyType(layer) if layer else _empty_mapping
            for layer in (case_vars, module_vars, env_vars)
        )

    @property
    def case_vars(self) -> Mapping:
        return self.__layers[0]

    @property
    def module_vars(self) -> Mapping:
        return self.__layers[1]

    @property
    def env_vars(self) -> Mapping:
        return self.__layers[2]

    def with_case_vars(self, case_vars: VariablesMapping) -> "VariableScope":
        return VariableScope(case_vars, self.__layers[1], self.__layers[2])

    def lookup(self, key_path: Text) -> Any:
        """first non-null value at key path, None if no layer holds one"""
        for layer in self.__layers:
            value = get_by_dot_path(layer, key_path)
            if value is not None:
                return value
        return None


def regex_findall_variables(raw_string: Text) -> List[Text]:
    """extract all variable key paths from content

    Examples:
        >>> regex_findall_variables("/api/{user.id}/orders/{order_id}")
            ["user.id", "order_id"]

        >>> regex_findall_variables('{"name": "abc"}')
            []

    """
    if not isinstance(raw_string, str):
        return []
    return [
        match.group(1) or match.group(2)
        for match in variable_regex_compile.finditer(raw_string)
    ]


def resolve_string(raw_string: Text, scope: VariableScope) -> Text:
    """replace every placeholder in string with its value in scope.

    an unresolved placeholder is replaced with empty string.

    Examples:
        >>> scope = VariableScope({"id": 3}, {"user": {"name": "demo"}})
        >>> resolve_string("/users/{id}?name={user.name}&t={missing}", scope)
            "/users/3?name=demo&t="

    """
    if "{" not in raw_string:
        return raw_string

    def _replace(match) -> Text:
        key_path = match.group(1) or match.group(2)
        value = scope.lookup(key_path)
        if value is None:
            logger.debug(f"variable not found, replaced with empty string: {key_path}")
            return ""
        return stringify(value)

    return variable_regex_compile.sub(_replace, raw_string)


def resolve_data(raw_data: Any, scope: VariableScope) -> Any:
    """resolve placeholders in raw data recursively, mapping keys are kept."""
    if isinstance(raw_data, str):
        return resolve_string(raw_data, scope)

    elif isinstance(raw_data, (list, set, tuple)):
        return [resolve_data(item, scope) for item in raw_data]

    elif isinstance(raw_data, Mapping):
        return {key: resolve_data(value, scope) for key, value in raw_data.items()}

    else:
        # other types, e.g. None, int, float, bool
        return raw_data


def resolve_definition(
    definition: Union[ApiDefinition, Mapping], scope: VariableScope
) -> ApiDefinition:
    """resolve an api definition for one test case, a new definition is returned"""
    if not isinstance(definition, ApiDefinition):
        definition = ApiDefinition.model_validate(definition)

    raw_definition = definition.model_dump(by_alias=True)
    resolved = {
        key: value if key in UNRESOLVED_FIELDS else resolve_data(value, scope)
        for key, value in raw_definition.items()
    }
    return ApiDefinition.model_validate(resolved)


class Parser(object):
    def __init__(self, scope: VariableScope = None) -> None:
        self.scope = scope or VariableScope()

    def with_case_vars(self, case_vars: VariablesMapping) -> "Parser":
        return Parser(self.scope.with_case_vars(case_vars))

    def parse_string(self, raw_string: Text) -> Text:
        return resolve_string(raw_string, self.scope)

    def parse_data(self, raw_data: Any) -> Any:
        return resolve_data(raw_data, self.scope)

    def parse_definition(self, definition: Union[ApiDefinition, Mapping]) -> ApiDefinition:
        return resolve_definition(definition, self.scope)
