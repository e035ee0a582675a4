import json
import re
from typing import Any, Dict, Mapping, Optional, Text, Union
from urllib.parse import quote

from loguru import logger

from apirunner.auth import TokenProvider
from apirunner.exceptions import ParamsError
from apirunner.models import ApiDefinition, BodyParameters, Headers, MethodEnum, RequestParams
from apirunner.utils import drop_header, has_header, stringify

JSON_CONTENT_TYPE = "application/json;charset=UTF-8"
URLENCODED_CONTENT_TYPE = "application/x-www-form-urlencoded;charset=UTF-8"

# postman style path variable, e.g. /users/:id
path_variable_regex_compile = re.compile(r"(?<=/):([A-Za-z_][\w\-]*)")


def _encode(value: Any) -> Text:
    """percent-encode in UTF-8, space is encoded as %20"""
    text = "" if value is None else stringify(value)
    return quote(text, safe="", encoding="utf-8")


def _encode_pairs(pairs) -> Text:
    return "&".join(f"{_encode(key)}={_encode(value)}" for key, value in pairs)


def build_query_string(query: Union[Mapping, Text, None]) -> Text:
    """render query in mapping, JSON object string or raw `k=v&k=v` string.

    Examples:
        >>> build_query_string({"a": "1 2", "b": "x"})
            "a=1%202&b=x"

        >>> build_query_string('{"page": 1}')
            "page=1"

        >>> build_query_string("name=a b&flag")
            "name=a%20b&flag"

    """
    if isinstance(query, Mapping):
        return _encode_pairs(query.items())

    if not isinstance(query, str) or not query.strip():
        return ""

    query = query.strip()
    if query.startswith("{") and query.endswith("}"):
        try:
            query_obj = json.loads(query)
        except ValueError as ex:
            raise ParamsError(f"invalid query JSON: {query}, error: {ex}")
        if not isinstance(query_obj, dict):
            raise ParamsError(f"query JSON should be an object: {query}")
        return _encode_pairs(query_obj.items())

    parts = []
    for pair in query.split("&"):
        if not pair.strip():
            continue
        key, sep, value = pair.partition("=")
        if sep and key:
            parts.append(f"{_encode(key)}={_encode(value)}")
        else:
            parts.append(_encode(pair))

    return "&".join(parts)


def fill_path_variables(path: Optional[Text], path_parameters: Optional[Mapping]) -> Optional[Text]:
    """fill `:name` segments with path variable values

    Examples:
        >>> fill_path_variables("/users/:id", {"id": 7})
            "/users/7"

    """
    if not path or not path_parameters:
        return path

    def _replace(match) -> Text:
        value = path_parameters.get(match.group(1))
        if value is None or isinstance(value, Mapping):
            # swagger parameter detail, not a value
            return match.group(0)
        return quote(stringify(value), safe="")

    return path_variable_regex_compile.sub(_replace, path)


def build_url(definition: ApiDefinition) -> Text:
    """join host, basePath and path with single slashes and append the query string

    Raises:
        exceptions.ParamsError: host missed

    """
    host = definition.host
    if not host or not host.strip():
        raise ParamsError(
            f"host missed in api definition: {definition.name or definition.path}"
        )

    url = host.strip()
    path = fill_path_variables(definition.path, definition.path_parameters)
    for segment in (definition.base_path, path):
        if segment:
            url = url.rstrip("/") + "/" + segment.lstrip("/")

    query_string = build_query_string(definition.query)
    if query_string:
        url += ("&" if "?" in url else "?") + query_string

    return url


def build_headers(
    definition: ApiDefinition, token_provider: TokenProvider = None
) -> Headers:
    """headers in mapping or JSON object string, bearer token always overrides
    caller supplied Authorization header."""
    raw_headers = definition.headers
    if isinstance(raw_headers, str):
        try:
            raw_headers = json.loads(raw_headers) if raw_headers.strip() else {}
        except ValueError:
            logger.warning(f"ignore headers, invalid JSON: {raw_headers}")
            raw_headers = {}

    headers: Dict[Text, Text] = {}
    if isinstance(raw_headers, Mapping):
        for key, value in raw_headers.items():
            headers[str(key)] = "" if value is None else stringify(value)

    if token_provider is not None:
        token = token_provider.get_token()
        if token:
            headers = {
                key: value for key, value in headers.items()
                if key.lower() != "authorization"
            }
            headers["Authorization"] = f"Bearer {token}"

    return headers


def build_body(definition: ApiDefinition) -> Optional[Text]:
    body = definition.body
    if body is None:
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body, ensure_ascii=False)


def build_method(definition: ApiDefinition) -> Text:
    method = (definition.method or MethodEnum.GET.value).upper()
    if method not in MethodEnum.__members__:
        raise ParamsError(f"unsupported HTTP method: {method}")
    return method


def build_content_type(
    headers: Headers, body: Optional[Text], body_parameters: Optional[BodyParameters]
) -> Headers:
    """set Content-Type unless caller supplied one.

    multipart boundary is generated when encoding, so any Content-Type of a
    formdata request is dropped.
    """
    if body_parameters is not None and body_parameters.formdata is not None:
        return drop_header(headers, "Content-Type")

    if has_header(headers, "Content-Type"):
        return headers

    if body_parameters is not None and body_parameters.urlencoded is not None:
        headers["Content-Type"] = URLENCODED_CONTENT_TYPE
    elif body_parameters is not None and body_parameters.graphql is not None:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    elif body is not None:
        headers["Content-Type"] = JSON_CONTENT_TYPE

    return headers


def build_request(
    definition: ApiDefinition, token_provider: TokenProvider = None
) -> RequestParams:
    url = build_url(definition)
    method = build_method(definition)
    body = build_body(definition)
    headers = build_headers(definition, token_provider)
    headers = build_content_type(headers, body, definition.body_parameters)

    return RequestParams(
        method=method,
        url=url,
        headers=headers,
        body=body,
        body_parameters=definition.body_parameters,
    )
