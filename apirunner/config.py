import copy
from typing import Text

from apirunner.models import TConfig, TConfigToken, VariablesMapping


class ConfigToken(object):
    def __init__(self, config: TConfig, url: Text, app_key: Text, app_secret: Text) -> None:
        self.__config = config
        self.__config.token = TConfigToken(url=url, app_key=app_key, app_secret=app_secret)

    def timeout(self, connect: float, read: float) -> "ConfigToken":
        self.__config.token.timeout = (connect, read)
        return self

    def struct(self) -> TConfig:
        return self.__config


class Config(object):
    """fluent builder of run configuration

    Examples:
        >>> config = (
        ...     Config("user api")
        ...     .base_url("https://api.example.com")
        ...     .variables(user={"name": "demo"})
        ...     .env(tenant="qa")
        ...     .struct()
        ... )

    """

    def __init__(self, name: Text) -> None:
        self.__name: Text = name
        self.__base_url: Text = ""
        self.__variables: VariablesMapping = {}
        self.__env: VariablesMapping = {}
        self.__config = TConfig(name=name)

    @property
    def name(self) -> Text:
        return self.__config.name

    def variables(self, **variables) -> "Config":
        self.__variables.update(variables)
        return self

    def env(self, **env_vars) -> "Config":
        self.__env.update(env_vars)
        return self

    def base_url(self, base_url: Text) -> "Config":
        self.__base_url = base_url
        return self

    def verify(self, verify: bool) -> "Config":
        self.__config.verify = verify
        return self

    def timeout(self, connect: float, read: float) -> "Config":
        self.__config.timeout = (connect, read)
        return self

    def log_path(self, log_path: Text) -> "Config":
        self.__config.log_path = log_path
        return self

    def struct(self) -> TConfig:
        self.__init()
        return self.__config

    def token(self, url: Text, app_key: Text, app_secret: Text) -> ConfigToken:
        self.__init()
        return ConfigToken(self.__config, url, app_key, app_secret)

    def __init(self) -> None:
        self.__config.name = self.__name
        self.__config.base_url = self.__base_url
        self.__config.variables = copy.deepcopy(self.__variables)
        self.__config.env = copy.deepcopy(self.__env)
