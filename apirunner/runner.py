from typing import Any, Dict, List, Mapping, Optional, Text, Tuple, Union

from loguru import logger

from apirunner import loader
from apirunner.assertion import read_path
from apirunner.auth import TokenProvider
from apirunner.builder import build_request
from apirunner.client import send_request
from apirunner.config import Config
from apirunner.exceptions import ParamsError
from apirunner.models import (
    ApiDefinition,
    ApiHttpResponse,
    Cookies,
    MultiHeaders,
    TConfig,
    VariablesMapping,
)
from apirunner.parser import Parser, VariableScope
from apirunner.utils import LOGGER_FORMAT


class ApiRunner(object):
    """execution state of one test: variable layers, context variables and last response.

    a runner is not shared between concurrently running tests, only its token
    provider may be.
    """

    def __init__(
        self, config: Union[TConfig, Config], token_provider: TokenProvider = None
    ) -> None:
        if isinstance(config, Config):
            config = config.struct()
        self.__config: TConfig = config

        self.__env_vars: VariablesMapping = dict(config.env)
        self.__module_vars: VariablesMapping = dict(config.variables)
        # values extracted from previous responses
        self.__context_vars: VariablesMapping = {}
        self.last_response: Optional[ApiHttpResponse] = None

        if token_provider is None and config.token is not None:
            token_provider = TokenProvider.from_config(config.token)
        self.token_provider = token_provider

        self.__log_sink_id = None
        if config.log_path:
            self.__log_sink_id = logger.add(
                config.log_path, format=LOGGER_FORMAT, level="DEBUG"
            )

    @property
    def config(self) -> TConfig:
        return self.__config

    @property
    def context_vars(self) -> VariablesMapping:
        return dict(self.__context_vars)

    def load_env(self, file_path: Text) -> "ApiRunner":
        """load environment variables from YAML/JSON file, or .env file"""
        if file_path.endswith(".env"):
            env_vars = loader.load_dot_env_file(file_path)
        else:
            env_vars = loader.load_variables_file(file_path)
        self.__env_vars.update(env_vars)
        logger.info(f"loaded env variables: {file_path} -> {len(env_vars)} keys")
        return self

    def load_module_vars(self, file_path: Text) -> "ApiRunner":
        module_vars = loader.load_variables_file(file_path)
        self.__module_vars.update(module_vars)
        logger.info(f"loaded module variables: {file_path} -> {len(module_vars)} keys")
        return self

    def with_variables(self, **variables) -> "ApiRunner":
        self.__context_vars.update(variables)
        return self

    def get_parser(self, case_vars: VariablesMapping = None) -> Parser:
        case_layer = dict(self.__context_vars)
        case_layer.update(case_vars or {})
        return Parser(VariableScope(case_layer, self.__module_vars, self.__env_vars))

    def resolve(
        self, api: Union[ApiDefinition, Mapping], case_vars: VariablesMapping = None
    ) -> ApiDefinition:
        parser = self.get_parser(case_vars)
        definition = parser.parse_definition(api)
        if self.__config.base_url:
            # base url replaces the documented host, basePath is kept
            base_url = parser.parse_string(self.__config.base_url)
            definition = definition.model_copy(update={"host": base_url})
        return definition

    def execute(
        self, api: Union[ApiDefinition, Mapping], case_vars: VariablesMapping = None
    ) -> ApiHttpResponse:
        """resolve, build and send one api request, the response is kept as last response

        Args:
            api: api definition, or its raw mapping
            case_vars: test case variables, overlaid on extracted context variables

        """
        definition = self.resolve(api, case_vars)
        request = build_request(definition, self.token_provider)

        self.last_response = send_request(
            request.method.value,
            request.url,
            headers=request.headers,
            body=request.body,
            body_parameters=request.body_parameters,
            timeout=self.__config.timeout,
            verify=self.__config.verify,
        )
        body_len = len(self.last_response.body or "")
        logger.info(f"response: status={self.last_response.status_code}, len={body_len}")
        return self.last_response

    def execute_as_tuple(
        self, api: Union[ApiDefinition, Mapping], case_vars: VariablesMapping = None
    ) -> Tuple[int, MultiHeaders, Cookies, Optional[Text], Any]:
        resp = self.execute(api, case_vars)
        return resp.status_code, resp.headers, resp.cookies, resp.body, resp.body_as_json()

    def extract(self, name: Text, path: Text) -> Any:
        """extract value at JSONPath from last response into context variables"""
        if self.last_response is None:
            raise ParamsError(f"failed to extract {name}: no response yet")

        value = read_path(self.last_response, path)
        self.__context_vars[name] = value
        logger.info(f"extract: {name} = {value!r} from {path}")
        return value

    def get_res_text(self) -> Optional[Text]:
        return None if self.last_response is None else self.last_response.body

    def get_res_json(self) -> Any:
        return None if self.last_response is None else self.last_response.body_as_json()

    def get_res_headers(self) -> Optional[Dict[Text, List[Text]]]:
        return None if self.last_response is None else self.last_response.headers

    def get_res_cookies(self) -> Optional[Cookies]:
        return None if self.last_response is None else self.last_response.cookies

    def close(self) -> None:
        if self.__log_sink_id is not None:
            logger.remove(self.__log_sink_id)
            self.__log_sink_id = None
