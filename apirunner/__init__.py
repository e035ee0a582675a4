__version__ = "v0.1.0"
__description__ = "HTTP API test execution core: definitions, variables, requests and assertions."


from apirunner.auth import TokenProvider
from apirunner.config import Config
from apirunner.definitions import find_definition, load_api_definitions
from apirunner.models import ApiDefinition, ApiHttpResponse
from apirunner.parser import Parser, VariableScope
from apirunner.runner import ApiRunner

__all__ = [
    "__version__",
    "__description__",
    "ApiRunner",
    "Config",
    "TokenProvider",
    "ApiDefinition",
    "ApiHttpResponse",
    "Parser",
    "VariableScope",
    "load_api_definitions",
    "find_definition",
]
