import threading
import time
from typing import Callable, Optional, Text

import requests
from loguru import logger

from apirunner.exceptions import TokenError
from apirunner.models import AuthToken, TConfigToken, Timeout

# refresh one minute ahead of expiry, tolerate clock skew
EXPIRY_MARGIN_SECONDS = 60


class TokenProvider(object):
    """bearer token acquisition with expiry aware caching.

    the cached token is shared by every caller of one provider, concurrent
    callers past expiry wait for a single refresh and reuse its result.
    """

    def __init__(
        self,
        token_url: Text,
        app_key: Text,
        app_secret: Text,
        timeout: Timeout = (10, 30),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.token_url = token_url
        self.app_key = app_key
        self.app_secret = app_secret
        self.timeout = timeout
        self.__clock = clock
        self.__token: Optional[AuthToken] = None
        self.__lock = threading.Lock()

    @classmethod
    def from_config(cls, config: TConfigToken) -> "TokenProvider":
        return cls(config.url, config.app_key, config.app_secret, timeout=config.timeout)

    @property
    def cached_token(self) -> Optional[AuthToken]:
        return self.__token

    def __is_valid(self, token: Optional[AuthToken]) -> bool:
        return (
            token is not None
            and self.__clock() < token.expires_at - EXPIRY_MARGIN_SECONDS
        )

    def get_token(self) -> Text:
        token = self.__token
        if self.__is_valid(token):
            return token.value

        with self.__lock:
            # another caller may have refreshed while we were waiting
            token = self.__token
            if self.__is_valid(token):
                return token.value

            self.__token = self.__request_token()
            return self.__token.value

    def invalidate(self) -> None:
        with self.__lock:
            self.__token = None

    def __request_token(self) -> AuthToken:
        if not (self.token_url and self.app_key and self.app_secret):
            logger.error("token config missed: token_url/app_key/app_secret")
            raise TokenError(
                f"token config missed, token_url: {self.token_url}, "
                f"app_key set: {bool(self.app_key)}, app_secret set: {bool(self.app_secret)}"
            )

        requested_at = self.__clock()
        logger.info(f"request token from {self.token_url}")
        try:
            resp = requests.post(
                self.token_url,
                json={"appKey": self.app_key, "appSecret": self.app_secret},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            resp_json = resp.json()
        except requests.RequestException as ex:
            logger.error(f"failed to request token: {ex}")
            raise TokenError(f"failed to request token from {self.token_url}: {ex}") from ex
        except ValueError as ex:
            logger.error(f"token response is not JSON: {ex}")
            raise TokenError(f"token response is not JSON: {self.token_url}") from ex

        if not isinstance(resp_json, dict):
            raise TokenError(f"token response should be JSON object, got: {resp_json}")

        access_token = resp_json.get("access_token")
        expires_in = resp_json.get("expires_in")
        if not isinstance(access_token, str) or not access_token:
            raise TokenError(f"access_token missed in token response: {resp_json}")
        try:
            expires_in = float(expires_in)
        except (TypeError, ValueError) as ex:
            raise TokenError(f"invalid expires_in in token response: {expires_in}") from ex

        logger.info(f"token refreshed, expires in {expires_in} seconds")
        return AuthToken(value=access_token, expires_at=requested_at + expires_in)
