import json
import os
from typing import Any, Dict, Text

import yaml
from loguru import logger

from apirunner import exceptions


def _load_yaml_file(yaml_file: Text) -> Any:
    """load yaml file and check file content format"""
    with open(yaml_file, mode="rb") as stream:
        try:
            yaml_content = yaml.safe_load(stream)
        except yaml.YAMLError as ex:
            err_msg = f"YAMLError:\nfile: {yaml_file}\nerror: {ex}"
            logger.error(err_msg)
            raise exceptions.FileFormatError(err_msg)

        return yaml_content


def _load_json_file(json_file: Text) -> Any:
    """load json file and check file content format"""
    with open(json_file, mode="rb") as data_file:
        try:
            json_content = json.load(data_file)
        except (json.JSONDecodeError, UnicodeDecodeError) as ex:
            err_msg = f"JSONDecodeError:\nfile: {json_file}\nerror: {ex}"
            logger.error(err_msg)
            raise exceptions.FileFormatError(err_msg)

        return json_content


def _check_file(file_path: Text) -> None:
    if not os.path.isfile(file_path):
        raise exceptions.FileNotFound(f"file not exists: {file_path}")
    if not os.access(file_path, os.R_OK):
        raise exceptions.FileNotFound(f"file not readable: {file_path}")


def load_json_file(json_file: Text) -> Any:
    _check_file(json_file)
    return _load_json_file(json_file)


def load_yaml_file(yaml_file: Text) -> Any:
    _check_file(yaml_file)
    return _load_yaml_file(yaml_file)


def load_api_document(file_path: Text) -> Any:
    """load swagger/postman document, JSON by default, YAML for .yaml/.yml files"""
    file_suffix = os.path.splitext(file_path)[1].lower()
    if file_suffix in [".yaml", ".yml"]:
        return load_yaml_file(file_path)

    return load_json_file(file_path)


def load_variables_file(file_path: Text) -> Dict:
    """load a variables scope from YAML/JSON file, top level must be a mapping.

    Examples:
        >>> cat apiconfig/variables/user.yaml
        user:
          name: demo
          id: 1001

        >>> load_variables_file("apiconfig/variables/user.yaml")
            {"user": {"name": "demo", "id": 1001}}

    """
    file_suffix = os.path.splitext(file_path)[1].lower()
    if file_suffix == ".json":
        content = load_json_file(file_path)
    elif file_suffix in [".yaml", ".yml"]:
        content = load_yaml_file(file_path)
    else:
        _check_file(file_path)
        # '' or other suffix
        raise exceptions.FileFormatError(
            f"variables file should be YAML/JSON format, invalid format file: {file_path}"
        )

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise exceptions.FileFormatError(
            f"variables file should contain a mapping, got {type(content).__name__}: {file_path}"
        )

    logger.info(f"Loaded variables from {file_path}: {len(content)} keys")
    return content


def load_dot_env_file(dot_env_path: Text) -> Dict:
    """load .env file.

    Args:
        dot_env_path (str): .env file path

    Returns:
        dict: environment variables mapping

            {
                "UserName": "demo",
                "Password": "123456",
                "PROJECT_KEY": "ABCDEFGH"
            }

    Raises:
        exceptions.FileFormatError: If .env file format is invalid.

    """
    if not os.path.isfile(dot_env_path):
        return {}

    logger.info(f"Loading environment variables from {dot_env_path}")
    env_variables_mapping = {}

    with open(dot_env_path, mode="rb") as fp:
        for line in fp:
            line = line.strip()
            if not len(line) or line.startswith(b"#"):
                continue
            if b"=" in line:
                variable, value = line.split(b"=", 1)
            elif b":" in line:
                variable, value = line.split(b":", 1)
            else:
                raise exceptions.FileFormatError(f".env format error: {dot_env_path}")

            env_variables_mapping[
                variable.strip().decode("utf-8")
            ] = value.strip().decode("utf-8")

    return env_variables_mapping
