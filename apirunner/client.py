import json
import os
import time
from contextlib import ExitStack
from typing import Any, Dict, List, Optional, Text, Tuple

import requests
import urllib3
from loguru import logger
from requests import Response
from requests.exceptions import RequestException
from urllib3._collections import HTTPHeaderDict

from apirunner.models import (
    ApiHttpResponse,
    BodyParameters,
    FormDataPart,
    Headers,
    MethodEnum,
    MultiHeaders,
    Timeout,
)
from apirunner.utils import (
    drop_header,
    get_header_value,
    lower_dict_keys,
    omit_long_data,
    stringify,
)

urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

# methods carrying a request body
BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")
DEFAULT_TIMEOUT: Timeout = (10, 120)
TEXT_PART_TYPE = "text/plain; charset=UTF-8"
FILE_PART_TYPE = "application/octet-stream"


def log_req_resp_details(resp_obj: Response) -> None:
    """log request and response details of one exchange in debug mode"""

    def log_print(details: Dict, r_type: Text):
        msg = f"\n================== {r_type} details ==================\n"
        for key, value in details.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, indent=4, ensure_ascii=False)

            msg += "{:<8} : {}\n".format(key, value)
        logger.debug(msg)

    request_headers = dict(resp_obj.request.headers)
    request_body = resp_obj.request.body
    if isinstance(request_body, bytes):
        request_body = request_body.decode("utf-8", errors="replace")

    request_content_type = lower_dict_keys(request_headers).get("content-type")
    if request_content_type and "multipart/form-data" in request_content_type:
        # upload file type
        request_body = "upload file stream (OMITTED)"

    log_print(
        {
            "method": resp_obj.request.method,
            "url": resp_obj.request.url,
            "headers": request_headers,
            "body": omit_long_data(request_body),
        },
        "request",
    )

    content_type = lower_dict_keys(dict(resp_obj.headers)).get("content-type", "")
    if "image" in content_type:
        response_body = f"image content ({len(resp_obj.content)} bytes, OMITTED)"
    else:
        response_body = omit_long_data(resp_obj.text)

    log_print(
        {
            "status_code": resp_obj.status_code,
            "headers": dict(resp_obj.headers),
            "body": response_body,
        },
        "response",
    )


def _open_file(stack: ExitStack, file_path: Text):
    if not file_path or not os.path.isfile(file_path):
        logger.warning(f"file not found, part skipped: {file_path}")
        return None
    return stack.enter_context(open(file_path, "rb"))


def build_multipart(
    stack: ExitStack, parts: List[FormDataPart]
) -> List[Tuple[Text, Tuple[Optional[Text], Any]]]:
    """multipart entries in requests `files` format.

    text parts carry no filename, a file part whose file is missing is skipped.
    """
    multipart = []
    for part in parts:
        if not part.key:
            continue

        if (part.type or "text").lower() != "file":
            value = "" if part.value is None else stringify(part.value)
            multipart.append((part.key, (None, value.encode("utf-8"), TEXT_PART_TYPE)))
            continue

        sources = part.src if isinstance(part.src, list) else [part.src]
        for src in sources:
            file_obj = _open_file(stack, src)
            if file_obj is None:
                continue
            multipart.append(
                (part.key, (os.path.basename(src), file_obj, FILE_PART_TYPE))
            )

    return multipart


def build_body_kwargs(
    stack: ExitStack, body: Optional[Text], body_parameters: Optional[BodyParameters]
) -> Dict[Text, Any]:
    """requests keyword arguments carrying the request body"""
    if body_parameters is not None:
        if body_parameters.urlencoded is not None:
            return {
                "data": {
                    key: "" if value is None else stringify(value)
                    for key, value in body_parameters.urlencoded.items()
                }
            }

        if body_parameters.formdata is not None:
            multipart = build_multipart(stack, body_parameters.formdata)
            return {"files": multipart} if multipart else {}

        if body_parameters.graphql is not None:
            variables = body_parameters.graphql.variables
            if isinstance(variables, str):
                try:
                    variables = json.loads(variables) if variables.strip() else None
                except ValueError:
                    logger.debug(f"graphql variables kept as text: {variables}")
            graphql = {"query": body_parameters.graphql.query, "variables": variables}
            return {"data": json.dumps(graphql, ensure_ascii=False).encode("utf-8")}

        if body_parameters.file is not None:
            file_obj = _open_file(stack, body_parameters.file.get("src"))
            if file_obj is not None:
                return {"data": file_obj}
            content = body_parameters.file.get("content")
            if content is not None:
                return {"data": stringify(content).encode("utf-8")}
            return {}

    if body is not None:
        return {"data": body.encode("utf-8")}

    return {}


def collect_headers(resp_obj: Response) -> MultiHeaders:
    """response headers with every value of repeated headers kept"""
    raw_headers = getattr(resp_obj.raw, "headers", None)
    headers: MultiHeaders = {}

    if isinstance(raw_headers, HTTPHeaderDict):
        for key in raw_headers.keys():
            headers[key] = list(raw_headers.getlist(key))
        return headers

    for key, value in resp_obj.headers.items():
        headers.setdefault(key, []).append(value)
    return headers


def decode_body(resp_obj: Response) -> Optional[Text]:
    if not resp_obj.content:
        return None

    content_type = get_header_value(dict(resp_obj.headers), "Content-Type") or ""
    encoding = resp_obj.encoding if "charset" in content_type.lower() else None
    try:
        return resp_obj.content.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        # unknown charset
        return resp_obj.content.decode("utf-8", errors="replace")


def send_request(
    method: Text,
    url: Text,
    headers: Headers = None,
    body: Text = None,
    body_parameters: BodyParameters = None,
    timeout: Timeout = DEFAULT_TIMEOUT,
    verify: bool = False,
) -> ApiHttpResponse:
    """send one HTTP request on a fresh session and capture the response.

    Args:
        method: HTTP method
        url: full request url, query string included
        headers: request headers
        body: raw request body, sent as UTF-8
        body_parameters: structured body, takes precedence over raw body
        timeout: (connect timeout, read timeout) in seconds
        verify: verify TLS certificates

    Returns:
        captured response, body is None if response has no content

    Raises:
        requests.RequestException: connection failure or timeout, never retried

    """
    if isinstance(method, MethodEnum):
        method = method.value
    method = (method or "GET").upper()
    headers = dict(headers or {})

    with ExitStack() as stack:
        session = stack.enter_context(requests.Session())

        kwargs: Dict[Text, Any] = {"headers": headers, "timeout": timeout, "verify": verify}
        if method in BODY_METHODS:
            kwargs.update(build_body_kwargs(stack, body, body_parameters))
            if "files" in kwargs:
                # requests generates the multipart boundary only without a Content-Type
                kwargs["headers"] = drop_header(headers, "Content-Type")

        logger.info(f"{method} {url}")
        start_timestamp = time.time()
        try:
            resp_obj = session.request(method, url, **kwargs)
        except RequestException as ex:
            logger.error(f"request failed: {method} {url}, error: {ex}")
            raise

        response_time_ms = round((time.time() - start_timestamp) * 1000, 2)
        log_req_resp_details(resp_obj)

        response = ApiHttpResponse(
            status_code=resp_obj.status_code,
            body=decode_body(resp_obj),
            headers=collect_headers(resp_obj),
            cookies=requests.utils.dict_from_cookiejar(session.cookies),
        )

    logger.info(
        f"status_code: {response.status_code}, "
        f"response_time(ms): {response_time_ms} ms, "
        f"response_length: {len(resp_obj.content)} bytes"
    )
    return response
