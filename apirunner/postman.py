from typing import Any, Dict, Iterable, Iterator, List, Optional, Text, Tuple, Union
from urllib.parse import unquote

from loguru import logger
from pydantic import ValidationError

from apirunner import exceptions, loader
from apirunner.models import (
    ApiDefinition,
    BodyParameters,
    FormDataPart,
    GraphQLBody,
    PostmanBody,
    PostmanCollection,
    PostmanItem,
    PostmanKeyValue,
    PostmanRequest,
    PostmanResponse,
    PostmanUrl,
    ResponseSpec,
)


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _as_text(value: Any) -> Optional[Text]:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _active(entries: Iterable[PostmanKeyValue]) -> Iterator[PostmanKeyValue]:
    """entries neither disabled nor keyless"""
    for entry in entries:
        if entry.disabled or _is_blank(entry.key):
            continue
        yield entry


def join_host(host: Union[Text, List[Text], None]) -> Optional[Text]:
    if host is None:
        return None
    if isinstance(host, list):
        return ".".join(str(segment) for segment in host)
    return str(host)


def extract_path(url: Optional[PostmanUrl]) -> Optional[Text]:
    """url.path in list or string format, falls back to parsing url.raw

    Examples:
        >>> extract_path(PostmanUrl(path=["api", "users", ":id"]))
            "/api/users/:id"

    """
    if url is None:
        return None

    if isinstance(url.path, list):
        segments = []
        for segment in url.path:
            if isinstance(segment, dict):
                segment = segment.get("value", "")
            segments.append(str(segment))
        return "/" + "/".join(segments)

    if isinstance(url.path, str):
        return url.path if url.path.startswith("/") else "/" + url.path

    if not _is_blank(url.raw):
        return split_raw_url(url.raw)[1]

    return None


def split_raw_url(raw: Text) -> Tuple[Text, Optional[Text]]:
    """split raw url into host part (scheme kept) and path, query dropped

    Examples:
        >>> split_raw_url("https://api.demo.com/files?page=1")
            ("https://api.demo.com", "/files")

        >>> split_raw_url("{{baseUrl}}/files")
            ("{{baseUrl}}", "/files")

    """
    raw = raw.strip().split("?", 1)[0]
    scheme_index = raw.find("//")
    start = scheme_index + 2 if scheme_index > -1 else 0
    slash_index = raw.find("/", start)
    if slash_index == -1:
        return raw, None
    return raw[:slash_index], raw[slash_index:]


def parse_raw_query(raw: Optional[Text]) -> List[PostmanKeyValue]:
    """query entries of raw url, used when url carries no structured query

    Examples:
        >>> parse_raw_query("{{baseUrl}}/files?page=1&name={{name}}&flag")
            [PostmanKeyValue(key="page", value="1"),
             PostmanKeyValue(key="name", value="{{name}}"),
             PostmanKeyValue(key="flag", value=None)]

    """
    if _is_blank(raw) or "?" not in raw:
        return []

    query_string = raw.strip().split("?", 1)[1].split("#", 1)[0]
    entries = []
    for pair in query_string.split("&"):
        if not pair:
            continue
        key, sep, value = pair.partition("=")
        entries.append(
            PostmanKeyValue(key=unquote(key), value=unquote(value) if sep else None)
        )
    return entries


def _protocol(url: Optional[PostmanUrl]) -> Text:
    if url is not None and not _is_blank(url.protocol):
        return url.protocol
    return "https"


def _encode(value: Text) -> Text:
    # only spaces are escaped, {{variables}} in postman urls stay intact
    return value.replace(" ", "%20")


def build_query_string(query: Iterable[PostmanKeyValue]) -> Optional[Text]:
    parts = []
    for entry in _active(query):
        key = _encode(str(entry.key))
        if entry.value is None:
            parts.append(key)
        else:
            parts.append(f"{key}={_encode(str(entry.value))}")

    return "&".join(parts) if parts else None


def join_url(base: Optional[Text], path: Optional[Text]) -> Optional[Text]:
    if _is_blank(base):
        return path
    if _is_blank(path):
        return base
    if base.endswith("/") and path.startswith("/"):
        return base + path[1:]
    if not base.endswith("/") and not path.startswith("/"):
        return f"{base}/{path}"
    return base + path


def build_url(url: Optional[PostmanUrl], host: Text = None) -> Optional[Text]:
    """rebuild url from its structure when host is overridden, else prefer url.raw"""
    if url is None:
        return None

    if _is_blank(host) and not _is_blank(url.raw):
        return url.raw

    protocol = _protocol(url)
    if not _is_blank(host):
        host = host.strip()
        base = host if host.startswith(("http://", "https://")) else f"{protocol}://{host}"
    else:
        base = f"{protocol}://{join_host(url.host) or ''}"

    full_url = join_url(base, extract_path(url))
    query_string = build_query_string(url.query)
    if query_string:
        full_url = f"{full_url}?{query_string}"

    return full_url


def _resolve_host(url: Optional[PostmanUrl], host: Text = None) -> Text:
    protocol = _protocol(url)
    if not _is_blank(host):
        host_used = host.strip()
    elif url is None:
        host_used = ""
    elif url.host is not None:
        host_used = join_host(url.host)
        if url.port is not None and not _is_blank(url.port):
            host_used = f"{host_used}:{url.port}"
    elif not _is_blank(url.raw):
        host_used = split_raw_url(url.raw)[0]
    else:
        host_used = ""

    # {{baseUrl}} style host carries its own scheme once resolved
    if not host_used or host_used.startswith(("http://", "https://", "{")):
        return host_used
    return f"{protocol}://{host_used}"


def parse_body(body: Optional[PostmanBody]) -> Tuple[Optional[Text], Optional[BodyParameters]]:
    """parse request body by mode.

    Returns:
        (raw body, structured body parameters)

    """
    if body is None:
        return None, None

    mode = (body.mode or "").lower()

    if mode == "raw":
        return body.raw, None

    if mode == "urlencoded":
        urlencoded = {
            entry.key: _as_text(entry.value) for entry in _active(body.urlencoded)
        }
        return None, BodyParameters(urlencoded=urlencoded)

    if mode == "formdata":
        formdata = [
            FormDataPart(
                key=entry.key or "",
                type=entry.type or "text",
                value=_as_text(entry.value),
                src=entry.src,
            )
            for entry in body.formdata
            if not entry.disabled
        ]
        return None, BodyParameters(formdata=formdata)

    if mode == "graphql":
        graphql = body.graphql
        if isinstance(graphql, dict):
            gql = GraphQLBody(
                query=_as_text(graphql.get("query")), variables=graphql.get("variables")
            )
        else:
            gql = GraphQLBody(query=_as_text(graphql))
        return None, BodyParameters(graphql=gql)

    if mode == "file":
        if body.file is None:
            return None, None
        return None, BodyParameters(file=body.file)

    if mode:
        logger.debug(f"unsupported postman body mode: {mode}")
    return None, None


def parse_responses(responses: List[PostmanResponse]) -> Dict[Text, ResponseSpec]:
    """saved examples aggregated by status code, the latest one wins"""
    response_info = {}

    for response in responses:
        status_code = str(response.code) if response.code is not None else "default"

        headers = {}
        if isinstance(response.header, list):
            for entry in response.header:
                if _is_blank(entry.key) or entry.value is None:
                    continue
                headers[entry.key] = _as_text(entry.value)

        response_info[status_code] = ResponseSpec(
            name=response.name,
            status=response.status,
            code=response.code,
            headers=headers,
            body=response.body,
        )

    return response_info


def _description(request: PostmanRequest) -> Optional[Text]:
    description = request.description
    if isinstance(description, dict):
        description = description.get("content")
    return _as_text(description)


def parse_request_item(
    item: PostmanItem, host: Text = None, folders: Tuple[Text, ...] = ()
) -> ApiDefinition:
    request = item.request
    if isinstance(request, str):
        request = PostmanRequest(url=request)

    url = request.url
    if isinstance(url, str):
        url = PostmanUrl(raw=url)
    if url is not None and not url.query:
        url = url.model_copy(update={"query": parse_raw_query(url.raw)})

    headers = {}
    raw_headers = request.header if isinstance(request.header, list) else []
    for entry in _active(raw_headers):
        if entry.value is not None:
            headers[entry.key] = _as_text(entry.value)

    query = {}
    path_variables = {}
    if url is not None:
        query = {entry.key: _as_text(entry.value) for entry in _active(url.query)}
        path_variables = {
            entry.key: entry.value for entry in url.variable if not _is_blank(entry.key)
        }

    body, body_parameters = parse_body(request.body)
    responses = parse_responses(item.response)
    name = item.name or ""

    return ApiDefinition(
        method=(request.method or "GET").upper(),
        url=build_url(url, host),
        path=extract_path(url),
        host=_resolve_host(url, host),
        operation_id=name,
        name=name,
        description=_description(request),
        tags=list(folders),
        header_parameters=headers or None,
        query_parameters=query or None,
        path_parameters=path_variables or None,
        headers=headers or None,
        query=query or None,
        body=body,
        body_parameters=body_parameters,
        responses=responses or None,
    )


def iter_postman_requests(
    items: List[PostmanItem], host: Text = None, folders: Tuple[Text, ...] = ()
) -> Iterator[ApiDefinition]:
    """walk the item tree depth first, yield one api definition per request.

    every call starts a fresh traversal.
    """
    for item in items:
        if item.item is not None:
            # folder
            folder_stack = (folders + (item.name,)) if item.name else folders
            yield from iter_postman_requests(item.item, host, folder_stack)
            continue

        if item.request is None:
            continue

        yield parse_request_item(item, host, folders)


def parse_postman_collection(
    content: Dict, host: Text = None, source: Text = "<postman>"
) -> List[ApiDefinition]:
    """parse loaded postman collection v2 content into api definitions.

    Raises:
        exceptions.ApiDefinitionFormatError: `item` missing or invalid collection structure

    """
    if not isinstance(content, dict) or not isinstance(content.get("item"), list):
        raise exceptions.ApiDefinitionFormatError(
            f"invalid postman collection, 'item' is missing: {source}"
        )

    try:
        collection = PostmanCollection.model_validate(content)
    except ValidationError as ex:
        raise exceptions.ApiDefinitionFormatError(
            f"Postman ValidationError:\nfile: {source}\nerror: {ex}"
        )

    definitions = list(iter_postman_requests(collection.item, host))
    logger.info(f"parsed postman collection {source}: {len(definitions)} apis")
    return definitions


def parse_postman(file_path: Text, host: Text = None) -> List[ApiDefinition]:
    """parse a postman collection v2 JSON file"""
    content = loader.load_api_document(file_path)
    return parse_postman_collection(content, host, source=file_path)
