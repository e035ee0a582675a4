import re
from typing import Any, Dict, List, Optional, Text, Tuple
from urllib.parse import urlparse

from loguru import logger
from pydantic import ValidationError

from apirunner import exceptions, loader
from apirunner.models import (
    ApiDefinition,
    ResponseSpec,
    SwaggerDocument,
    SwaggerOperation,
    SwaggerParameter,
)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")
PARAMETER_LOCATIONS = ("query", "path", "header", "body")
LOCAL_REF_PREFIXES = {
    "#/definitions/": "definitions",
    "#/components/schemas/": "components",
}
DEFAULT_HOST = "https://localhost"

# repeated slashes, the ones following a scheme colon are kept
duplicate_slash_regex_compile = re.compile(r"(?<!:)/{2,}")


def with_scheme(host: Text, scheme: Text = "https") -> Text:
    if host.startswith(("http://", "https://")):
        return host
    return f"{scheme}://{host}"


def build_full_url(host: Text, base_path: Text, path: Text) -> Text:
    """join host, basePath and path, collapsing duplicate slashes.

    Examples:
        >>> build_full_url("https://api.demo.com/", "/v1/", "/files")
            "https://api.demo.com/v1/files"

    """
    url = host or DEFAULT_HOST
    for segment in (base_path, path):
        if segment:
            url = f"{url}/{segment}"
    return duplicate_slash_regex_compile.sub("/", url)


def _lookup_local_ref(ref: Text, document: SwaggerDocument) -> Optional[Dict]:
    for prefix, section in LOCAL_REF_PREFIXES.items():
        if not ref.startswith(prefix):
            continue
        name = ref[len(prefix):]
        if section == "definitions":
            definitions = document.definitions
        else:
            definitions = document.components.get("schemas") or {}
        return definitions.get(name)

    # remote or unsupported reference, left unresolved
    return None


def parse_schema(schema: Dict, document: SwaggerDocument) -> Dict:
    """parse schema to type/items/properties, local $ref resolved one level."""
    schema_info = {}

    ref = schema.get("$ref")
    schema_type = schema.get("type")

    if ref:
        schema_info["$ref"] = ref
        definition = _lookup_local_ref(ref, document)
        if definition is not None:
            schema_info["definition"] = definition

    elif schema_type:
        schema_info["type"] = schema_type

        items = schema.get("items")
        if schema_type == "array" and isinstance(items, dict):
            schema_info["items"] = parse_schema(items, document)

        properties = schema.get("properties")
        if schema_type == "object" and isinstance(properties, dict):
            schema_info["properties"] = {
                prop_name: parse_schema(prop, document)
                for prop_name, prop in properties.items()
                if isinstance(prop, dict)
            }

    return schema_info


def _merge_parameters(
    path_parameters: List[SwaggerParameter], operation_parameters: List[SwaggerParameter]
) -> List[SwaggerParameter]:
    # operation level parameters override path level ones with same name and location
    merged = {(p.in_, p.name): p for p in path_parameters}
    merged.update({(p.in_, p.name): p for p in operation_parameters})
    return list(merged.values())


def parse_parameters(
    parameters: List[SwaggerParameter], document: SwaggerDocument
) -> Dict[Text, Dict]:
    buckets = {location: {} for location in PARAMETER_LOCATIONS}

    for param in parameters:
        if param.ref:
            logger.debug(f"skip referenced parameter: {param.ref}")
            continue
        if param.in_ not in buckets:
            continue

        param_type = param.type
        if param_type is None and param.schema_:
            param_type = param.schema_.get("type")

        param_detail = {
            "name": param.name,
            "type": param_type,
            "description": param.description,
            "required": param.required,
        }
        if "default" in param.model_fields_set:
            param_detail["default"] = param.default

        if param.in_ == "body":
            if param.schema_ is None:
                continue
            param_detail["schema"] = parse_schema(param.schema_, document)

        buckets[param.in_][param.name] = param_detail

    return buckets


def _pick_content_schema(content: Dict) -> Optional[Dict]:
    if not isinstance(content, dict):
        return None
    for content_type in ("application/json", "multipart/form-data"):
        if content_type in content:
            return (content[content_type] or {}).get("schema")
    for media in content.values():
        return (media or {}).get("schema")
    return None


def parse_request_body(request_body: Dict, document: SwaggerDocument) -> Optional[Dict]:
    """openapi 3 requestBody, exposed as a body parameter named `body`"""
    schema = _pick_content_schema(request_body.get("content"))
    if not isinstance(schema, dict):
        return None

    return {
        "name": "body",
        "type": schema.get("type"),
        "description": request_body.get("description"),
        "required": bool(request_body.get("required", False)),
        "schema": parse_schema(schema, document),
    }


def parse_responses(responses: Dict, document: SwaggerDocument) -> Dict[Text, ResponseSpec]:
    response_info = {}

    for status_code, response in responses.items():
        if not isinstance(response, dict):
            continue

        schema = response.get("schema")
        if schema is None:
            schema = _pick_content_schema(response.get("content"))

        response_info[str(status_code)] = ResponseSpec(
            description=response.get("description"),
            schema=parse_schema(schema, document) if isinstance(schema, dict) else None,
        )

    return response_info


def resolve_base(document: SwaggerDocument, host: Text = None) -> Tuple[Text, Text]:
    """resolve request host and basePath of the document.

    host override replaces the document host only, basePath is kept.
    """
    base_path = document.base_path or ""
    document_host = None

    if document.host:
        scheme = document.schemes[0] if document.schemes else "https"
        document_host = with_scheme(document.host, scheme)
    elif document.servers:
        # openapi 3
        server_url = urlparse(document.servers[0].get("url") or "")
        if server_url.netloc:
            document_host = f"{server_url.scheme or 'https'}://{server_url.netloc}"
        base_path = base_path or server_url.path

    if host and host.strip():
        return with_scheme(host.strip()), base_path

    return document_host or DEFAULT_HOST, base_path


def _parse_operation(
    path: Text,
    method: Text,
    operation: SwaggerOperation,
    path_parameters: List[SwaggerParameter],
    host: Text,
    base_path: Text,
    document: SwaggerDocument,
) -> ApiDefinition:
    parameters = _merge_parameters(path_parameters, operation.parameters)
    buckets = parse_parameters(parameters, document)

    if operation.request_body:
        body_param = parse_request_body(operation.request_body, document)
        if body_param:
            buckets["body"]["body"] = body_param

    responses = parse_responses(operation.responses, document)

    return ApiDefinition(
        method=method.upper(),
        url=build_full_url(host, base_path, path),
        path=path,
        host=host,
        base_path=base_path or None,
        operation_id=operation.operation_id,
        name=operation.operation_id,
        summary=operation.summary,
        description=operation.description,
        tags=operation.tags,
        query_parameters=buckets["query"] or None,
        path_parameters=buckets["path"] or None,
        header_parameters=buckets["header"] or None,
        body_schema=buckets["body"] or None,
        responses=responses or None,
    )


def _validate_parameters(raw_parameters: Any, source: Text, path: Text) -> List[SwaggerParameter]:
    if not raw_parameters:
        return []
    try:
        return [SwaggerParameter.model_validate(p) for p in raw_parameters]
    except (ValidationError, TypeError) as ex:
        raise exceptions.ApiDefinitionFormatError(
            f"invalid parameters of path {path} in {source}: {ex}"
        )


def parse_swagger_document(
    content: Dict, host: Text = None, source: Text = "<swagger>"
) -> List[ApiDefinition]:
    """parse loaded swagger/openapi content into api definitions.

    Args:
        content: swagger document content
        host: optional host override, e.g. "https://api.demo.com" or "api.demo.com"
        source: document path, used in error messages

    Raises:
        exceptions.ApiDefinitionFormatError: `paths` missing or invalid document structure

    """
    if not isinstance(content, dict) or not isinstance(content.get("paths"), dict):
        raise exceptions.ApiDefinitionFormatError(
            f"invalid swagger document, 'paths' is missing: {source}"
        )

    try:
        document = SwaggerDocument.model_validate(content)
    except ValidationError as ex:
        raise exceptions.ApiDefinitionFormatError(
            f"Swagger ValidationError:\nfile: {source}\nerror: {ex}"
        )

    request_host, base_path = resolve_base(document, host)

    definitions = []
    for path, path_item in document.paths.items():
        path_parameters = _validate_parameters(path_item.get("parameters"), source, path)

        for method, raw_operation in path_item.items():
            if method.lower() not in HTTP_METHODS:
                continue

            try:
                operation = SwaggerOperation.model_validate(raw_operation or {})
            except ValidationError as ex:
                raise exceptions.ApiDefinitionFormatError(
                    f"invalid operation {method.upper()} {path} in {source}: {ex}"
                )

            definitions.append(
                _parse_operation(
                    path,
                    method,
                    operation,
                    path_parameters,
                    request_host,
                    base_path,
                    document,
                )
            )

    logger.info(f"parsed swagger document {source}: {len(definitions)} apis")
    return definitions


def parse_swagger(file_path: Text, host: Text = None) -> List[ApiDefinition]:
    """parse a swagger/openapi JSON (or YAML) document file"""
    content = loader.load_api_document(file_path)
    return parse_swagger_document(content, host, source=file_path)
