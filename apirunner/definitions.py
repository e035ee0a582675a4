import os
import threading
from typing import Any, Dict, List, Text, Tuple

from loguru import logger

from apirunner import exceptions, loader
from apirunner.models import ApiDefinition
from apirunner.postman import parse_postman_collection
from apirunner.swagger import parse_swagger_document

# parsed definitions, keyed by (absolute document path, host override)
_definitions_cache: Dict[Tuple[Text, Text], Tuple[ApiDefinition, ...]] = {}
_cache_lock = threading.Lock()


def detect_format(content: Any) -> Text:
    """detect api document format, returns 'swagger' or 'postman'

    Raises:
        exceptions.ApiDefinitionFormatError: neither swagger nor postman

    """
    if isinstance(content, dict):
        if "swagger" in content or "openapi" in content or "paths" in content:
            return "swagger"
        info = content.get("info")
        if "item" in content or (isinstance(info, dict) and "_postman_id" in info):
            return "postman"

    raise exceptions.ApiDefinitionFormatError(
        "unknown api document format, expect swagger/openapi or postman collection"
    )


def parse_api_document(
    content: Dict, host: Text = None, source: Text = "<document>"
) -> List[ApiDefinition]:
    try:
        doc_format = detect_format(content)
    except exceptions.ApiDefinitionFormatError as ex:
        raise exceptions.ApiDefinitionFormatError(f"{ex}: {source}")

    if doc_format == "swagger":
        return parse_swagger_document(content, host, source)
    return parse_postman_collection(content, host, source)


def load_api_definitions(
    file_path: Text, host: Text = None, reload: bool = False
) -> List[ApiDefinition]:
    """load api definitions from swagger or postman document.
        by default, each document is parsed only once, unless set reload to true.

    Args:
        file_path: document path, relative path is based on current working directory
        host: optional host override
        reload: parse document again even if cached

    Returns:
        list of api definitions, in document order

    """
    abs_path = os.path.abspath(file_path)
    cache_key = (abs_path, (host or "").strip())

    with _cache_lock:
        if not reload and cache_key in _definitions_cache:
            return list(_definitions_cache[cache_key])

    content = loader.load_api_document(abs_path)
    definitions = parse_api_document(content, host, source=abs_path)

    with _cache_lock:
        _definitions_cache[cache_key] = tuple(definitions)

    logger.debug(f"cached {len(definitions)} api definitions of {abs_path}")
    return list(definitions)


def clear_cache() -> None:
    with _cache_lock:
        _definitions_cache.clear()


def find_definition(
    definitions: List[ApiDefinition], name: Text = None, method: Text = None, path: Text = None
) -> ApiDefinition:
    """find the first definition matching name (or operationId), method and path

    Raises:
        exceptions.NotFoundError: no definition matches

    """
    for definition in definitions:
        if name is not None and name not in (definition.name, definition.operation_id):
            continue
        if method is not None and (definition.method or "").upper() != method.upper():
            continue
        if path is not None and definition.path != path:
            continue
        return definition

    raise exceptions.NotFoundError(
        f"api definition not found, name: {name}, method: {method}, path: {path}"
    )
