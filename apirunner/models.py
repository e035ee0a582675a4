import json
from enum import Enum
from typing import Any, Dict, List, Optional, Text, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from apirunner.utils import get_header_value

Name = Text
Url = Text
VariablesMapping = Dict[Text, Any]
Headers = Dict[Text, Text]
MultiHeaders = Dict[Text, List[Text]]
Cookies = Dict[Text, Text]
Verify = bool
# (connect timeout, read timeout) in seconds
Timeout = Tuple[float, float]


class MethodEnum(Text, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    PATCH = "PATCH"


# normalized api definition


class FormDataPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: Text
    type: Text = "text"  # text / file
    value: Any = None
    src: Union[Text, List[Text], None] = None


class GraphQLBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: Optional[Text] = None
    variables: Any = None


class BodyParameters(BaseModel):
    """structured request body, at most one mode is expected to be set"""

    model_config = ConfigDict(frozen=True)

    urlencoded: Optional[Dict[Text, Any]] = None
    formdata: Optional[List[FormDataPart]] = None
    graphql: Optional[GraphQLBody] = None
    file: Optional[Dict[Text, Any]] = None


class ResponseSpec(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: Optional[Text] = None
    schema_: Optional[Dict[Text, Any]] = Field(None, alias="schema")
    # postman saved examples
    name: Optional[Text] = None
    status: Optional[Text] = None
    code: Optional[int] = None
    headers: Optional[Headers] = None
    body: Optional[Text] = None


class ApiDefinition(BaseModel):
    """one HTTP endpoint, normalized from a swagger document or a postman collection"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    method: Optional[Text] = None
    url: Optional[Url] = None
    path: Optional[Text] = None
    host: Optional[Text] = None
    base_path: Optional[Text] = Field(None, alias="basePath")
    operation_id: Optional[Text] = Field(None, alias="operationId")
    name: Optional[Name] = None
    summary: Optional[Text] = None
    description: Optional[Text] = None
    tags: List[Text] = []
    # parameters bucketed by location
    query_parameters: Optional[Dict[Text, Any]] = Field(None, alias="queryParameters")
    path_parameters: Optional[Dict[Text, Any]] = Field(None, alias="pathParameters")
    header_parameters: Optional[Dict[Text, Any]] = Field(
        None, alias="headerParameters"
    )
    body_schema: Optional[Dict[Text, Any]] = Field(None, alias="bodySchema")
    # request level values, consumed by the request builder
    headers: Union[Dict[Text, Any], Text, None] = None
    query: Union[Dict[Text, Any], Text, None] = None
    body: Union[Text, Dict, List, None] = None
    body_parameters: Optional[BodyParameters] = Field(None, alias="bodyParameters")
    responses: Optional[Dict[Text, ResponseSpec]] = None

    def to_mapping(self) -> Dict[Text, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# source documents


class SwaggerParameter(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Text = ""
    in_: Text = Field("query", alias="in")
    type: Optional[Text] = None
    description: Optional[Text] = None
    required: bool = False
    default: Any = None
    schema_: Optional[Dict[Text, Any]] = Field(None, alias="schema")
    ref: Optional[Text] = Field(None, alias="$ref")


class SwaggerOperation(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    operation_id: Optional[Text] = Field(None, alias="operationId")
    summary: Optional[Text] = None
    description: Optional[Text] = None
    tags: List[Text] = []
    parameters: List[SwaggerParameter] = []
    request_body: Optional[Dict[Text, Any]] = Field(None, alias="requestBody")
    responses: Dict[Text, Dict[Text, Any]] = {}


class SwaggerDocument(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    swagger: Optional[Text] = None
    openapi: Optional[Text] = None
    host: Optional[Text] = None
    base_path: Optional[Text] = Field(None, alias="basePath")
    schemes: List[Text] = []
    servers: List[Dict[Text, Any]] = []
    paths: Dict[Text, Dict[Text, Any]]
    definitions: Dict[Text, Any] = {}
    components: Dict[Text, Any] = {}


class PostmanKeyValue(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: Optional[Text] = None
    value: Any = None
    disabled: bool = False
    type: Optional[Text] = None
    src: Union[Text, List[Text], None] = None


class PostmanUrl(BaseModel):
    model_config = ConfigDict(extra="allow")

    raw: Optional[Text] = None
    protocol: Optional[Text] = None
    host: Union[Text, List[Text], None] = None
    port: Union[Text, int, None] = None
    path: Union[Text, List[Any], None] = None
    query: List[PostmanKeyValue] = []
    variable: List[PostmanKeyValue] = []


class PostmanBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    mode: Optional[Text] = None
    raw: Optional[Text] = None
    urlencoded: List[PostmanKeyValue] = []
    formdata: List[PostmanKeyValue] = []
    graphql: Union[Dict[Text, Any], Text, None] = None
    file: Optional[Dict[Text, Any]] = None


class PostmanRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    method: Text = "GET"
    url: Union[PostmanUrl, Text, None] = None
    header: Union[List[PostmanKeyValue], Text, None] = []
    body: Optional[PostmanBody] = None
    description: Any = None


class PostmanResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[Text] = None
    status: Optional[Text] = None
    code: Optional[int] = None
    header: Union[List[PostmanKeyValue], Text, None] = []
    body: Optional[Text] = None


class PostmanItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[Text] = None
    item: Optional[List["PostmanItem"]] = None
    # a request may be given as a bare url string
    request: Union[PostmanRequest, Text, None] = None
    response: List[PostmanResponse] = []


class PostmanCollection(BaseModel):
    model_config = ConfigDict(extra="allow")

    info: Dict[Text, Any] = {}
    item: List[PostmanItem]


PostmanItem.model_rebuild()


# request & response


class RequestParams(BaseModel):
    """request primitives assembled from a resolved api definition"""

    method: MethodEnum = MethodEnum.GET
    url: Url
    headers: Headers = {}
    body: Optional[Text] = None
    body_parameters: Optional[BodyParameters] = None


class ApiHttpResponse(BaseModel):
    """capture of one HTTP exchange"""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: Optional[Text] = None
    headers: MultiHeaders = {}
    cookies: Cookies = {}

    def body_as_json(self) -> Any:
        if self.body is None or not self.body.strip():
            return None
        try:
            return json.loads(self.body)
        except ValueError:
            return None

    def header(self, name: Text) -> Optional[Text]:
        return get_header_value(self.headers, name)


class AuthToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: Text
    expires_at: float  # epoch seconds


# config


class TConfigToken(BaseModel):
    url: Url
    app_key: Text
    app_secret: Text
    timeout: Timeout = (10, 30)


class TConfig(BaseModel):
    name: Name
    verify: Verify = False
    base_url: Text = ""
    # module / test-data variables
    variables: VariablesMapping = {}
    # environment variables
    env: VariablesMapping = {}
    timeout: Timeout = (10, 120)
    token: Optional[TConfigToken] = None
    log_path: Optional[Text] = None
