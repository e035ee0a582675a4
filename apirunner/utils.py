import json
from typing import Any, Dict, List, Mapping, Text, Union

LOGGER_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<level>{message}</level>"
)


def lower_dict_keys(origin_dict: Dict) -> Dict:
    """convert keys in dict to lower case

    Examples:
        >>> origin_dict = {"Name": "", "Request": "", "URL": ""}
        >>> lower_dict_keys(origin_dict)
            {"name": "", "request": "", "url": ""}

    """
    if not origin_dict or not isinstance(origin_dict, dict):
        return origin_dict

    return {key.lower(): value for key, value in origin_dict.items()}


def omit_long_data(body: Any, omit_len: int = 512) -> Any:
    """omit too long str/bytes"""
    if not isinstance(body, (str, bytes)):
        return body

    body_len = len(body)
    if body_len <= omit_len:
        return body

    omitted_body = body[0:omit_len]

    appendix_str = f" ... OMITTED {body_len - omit_len} CHARACTORS ..."
    if isinstance(body, bytes):
        appendix_str = appendix_str.encode("utf-8")

    return omitted_body + appendix_str


def get_header_value(
    headers: Mapping[Text, Union[Text, List[Text]]], name: Text
) -> Union[Text, None]:
    """get first header value by name, case insensitive."""
    if not headers:
        return None

    lower_name = name.lower()
    for key, value in headers.items():
        if key.lower() != lower_name:
            continue
        if isinstance(value, (list, tuple)):
            return value[0] if value else None
        return value

    return None


def has_header(headers: Mapping[Text, Any], name: Text) -> bool:
    lower_name = name.lower()
    return any(key.lower() == lower_name for key in (headers or {}))


def drop_header(headers: Mapping[Text, Any], name: Text) -> Dict[Text, Any]:
    lower_name = name.lower()
    return {key: value for key, value in (headers or {}).items() if key.lower() != lower_name}


def stringify(value: Any) -> Text:
    """render a value the way it appears inside a JSON document.

    Examples:
        >>> stringify(True)
            "true"
        >>> stringify({"a": 1})
            '{"a":1}'

    """
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)
