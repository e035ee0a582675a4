"""response assertions addressed by JSONPath.

every assertion logs its check at info level and raises
`exceptions.ValidationFailure` carrying path, expected and actual values.
"""
import json
from typing import Any, Text, Union

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from loguru import logger

from apirunner.exceptions import ValidationFailure
from apirunner.models import ApiHttpResponse
from apirunner.utils import stringify

Body = Union[ApiHttpResponse, Text, bytes, dict, list, None]


def to_json_path(path: Text) -> Text:
    """prefix path with `$.` unless it is already a JSONPath expression

    Examples:
        >>> to_json_path("data.items[0].id")
            "$.data.items[0].id"

    """
    path = (path or "").strip()
    if not path:
        return "$"
    if path.startswith("$"):
        return path
    return "$." + path


def _load_data(source: Body) -> Any:
    if isinstance(source, ApiHttpResponse):
        return source.body_as_json()

    if isinstance(source, (str, bytes)):
        if not source.strip():
            return None
        try:
            return json.loads(source)
        except ValueError:
            logger.debug(f"body is not JSON: {source[:100]!r}")
            return None

    return source


def read_path(source: Body, path: Text) -> Any:
    """read value at JSONPath from a response, JSON text or parsed data.

    Returns:
        None if nothing matches, the value if one node matches,
        list of values if several nodes match.

    """
    data = _load_data(source)
    if data is None:
        return None

    expression = to_json_path(path)
    try:
        jsonpath_expr = jsonpath_parse(expression)
    except (JsonPathParserError, JsonPathLexerError) as ex:
        logger.warning(f"invalid JSONPath {expression}: {ex}")
        return None

    matches = [match.value for match in jsonpath_expr.find(data)]
    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]
    return matches


def size_of(value: Any) -> int:
    """length of string, number of items of collection or mapping, -1 for null"""
    if value is None:
        return -1
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value)
    return len(stringify(value))


def same_value(actual: Any, expected: Any) -> bool:
    """equality where booleans never equal numbers, nested values included

    Examples:
        >>> same_value(False, 0)
            False

        >>> same_value({"ids": [1, 2]}, {"ids": [1, 2]})
            True

    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected

    if isinstance(actual, dict) and isinstance(expected, dict):
        return actual.keys() == expected.keys() and all(
            same_value(actual[key], expected[key]) for key in actual
        )

    if isinstance(actual, list) and isinstance(expected, list):
        return len(actual) == len(expected) and all(
            same_value(a, e) for a, e in zip(actual, expected)
        )

    return actual == expected


def _fail(path: Text, expected: Any, actual: Any, message: Text) -> None:
    raise ValidationFailure(path, expected, actual, message)


def assert_status_code(response: ApiHttpResponse, expected: int) -> None:
    actual = response.status_code
    logger.info(f"assert status_code: expected={expected}, actual={actual}")
    if actual != expected:
        _fail("status_code", expected, actual, "status code mismatch")


def assert_code_equals(body: Body, expected: int) -> None:
    path = "$.code"
    actual = read_path(body, path)
    logger.info(f"assert code: expected={expected}, actual={actual}")
    if actual is None:
        _fail(path, expected, actual, "code missed in response")
    try:
        matched = int(actual) == int(expected)
    except (TypeError, ValueError):
        matched = False
    if not matched:
        _fail(path, expected, actual, "code mismatch")


def assert_message_contains(body: Body, fragment: Text) -> None:
    path = "$.message"
    actual = read_path(body, path)
    logger.info(f"assert message contains: expected contains={fragment!r}, actual={actual!r}")
    if actual is None:
        _fail(path, fragment, actual, "message missed in response")
    if fragment not in stringify(actual):
        _fail(path, fragment, actual, "message does not contain expected fragment")


def assert_equals_at(body: Body, path: Text, expected: Any) -> None:
    actual = read_path(body, path)
    logger.info(f"assert equals at {path}: expected={expected!r}, actual={actual!r}")
    if not same_value(actual, expected):
        _fail(path, expected, actual, "value mismatch")


def assert_contains_at(body: Body, path: Text, expected: Any) -> None:
    """list value: membership or rendered substring, other values: rendered substring"""
    actual = read_path(body, path)
    logger.info(f"assert contains at {path}: expected contains={expected!r}, actual={actual!r}")
    if isinstance(actual, list) and any(same_value(item, expected) for item in actual):
        return
    if actual is None or stringify(expected) not in stringify(actual):
        _fail(path, expected, actual, "value does not contain expected fragment")


def assert_size_at(body: Body, path: Text, expected_size: int) -> None:
    actual = size_of(read_path(body, path))
    logger.info(f"assert size at {path}: expected={expected_size}, actual={actual}")
    if actual != expected_size:
        _fail(path, expected_size, actual, "size mismatch")


def assert_data_length_equals(body: Body, expected_length: int) -> None:
    """$.data length: characters of string, items of array, fields of object"""
    assert_size_at(body, "$.data", expected_length)


def assert_data_array_size(body: Body, expected_size: int) -> None:
    path = "$.data"
    data = read_path(body, path)
    actual = len(data) if isinstance(data, list) else -1
    logger.info(f"assert data array size: expected={expected_size}, actual={actual}")
    if not isinstance(data, list):
        _fail(path, expected_size, data, "data is not an array or missed")
    if actual != expected_size:
        _fail(path, expected_size, actual, "data array size mismatch")


def assert_array_element_equals(
    body: Body, index: int, inner_path: Text, expected: Any, array_path: Text = "$.data"
) -> None:
    """compare rendered value of array element, or of inner path inside it

    Examples:
        >>> body = '{"data": [{"name": "a"}, {"name": "b"}]}'
        >>> assert_array_element_equals(body, 1, "name", "b")

    """
    elements = read_path(body, array_path)
    if not isinstance(elements, list):
        _fail(array_path, expected, elements, "not an array or missed")
    if not 0 <= index < len(elements):
        _fail(f"{array_path}[{index}]", expected, None, f"index out of range: {index}")

    element = elements[index]
    if inner_path is None or not inner_path.strip():
        actual = element
        path = f"{array_path}[{index}]"
    else:
        actual = read_path(element, inner_path)
        path = f"{array_path}[{index}].{inner_path.strip().lstrip('$.')}"

    logger.info(f"assert {path}: expected={expected!r}, actual={actual!r}")
    if stringify(actual) != stringify(expected):
        _fail(path, expected, actual, "array element mismatch")


def assert_not_null_at(body: Body, path: Text) -> None:
    actual = read_path(body, path)
    logger.info(f"assert not null at {path}: actual={actual!r}")
    if actual is None:
        _fail(path, "not null", actual, "value should not be null")


def assert_null_at(body: Body, path: Text) -> None:
    actual = read_path(body, path)
    logger.info(f"assert null at {path}: actual={actual!r}")
    if actual is not None:
        _fail(path, None, actual, "value should be null")


def assert_field_length(body: Body, path: Text, expected_length: int) -> None:
    value = read_path(body, path)
    actual = -1 if value is None else len(stringify(value))
    logger.info(f"assert field length at {path}: expected={expected_length}, actual={actual}")
    if value is None:
        _fail(path, expected_length, value, "value is null")
    if actual != expected_length:
        _fail(path, expected_length, actual, "field length mismatch")


def assert_random_string_length(value: Text, expected_length: int) -> None:
    actual = -1 if value is None else len(value)
    logger.info(f"assert random string length: expected={expected_length}, actual={actual}")
    if value is None:
        _fail("<random>", expected_length, value, "random string is null")
    if actual != expected_length:
        _fail("<random>", expected_length, actual, "random string length mismatch")
