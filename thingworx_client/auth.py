"""Authentication strategies for the thingworx client.

A strategy is a pure callable that takes the options of an outgoing request
and returns them decorated with credentials. Strategies are cached by a key
derived from their parameters, so equal parameters give the same instance.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Union

from .errors import ConfigurationError
from .registry import Registry
from .transport import RequestOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthParams:
    """
    Authentication parameters.

    Exactly one shape is allowed:
    - nothing set: rely on credentials the transport already carries
    - app_key
    - username and password
    """
    app_key: str | None = None
    username: str | None = None
    password: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.app_key is None and self.username is None and self.password is None


AuthParamsLike = Union[AuthParams, Mapping[str, Any], None]


def parse_auth_params(params: AuthParamsLike) -> AuthParams:
    """
    Coerce user-supplied auth parameters into AuthParams.

    Mappings may use either appKey or app_key. Keys set to None are ignored.
    """
    if params is None:
        return AuthParams()
    if isinstance(params, AuthParams):
        return params
    if not isinstance(params, Mapping):
        raise ConfigurationError(
            f"Authentication parameters must be a mapping or AuthParams, got {type(params).__name__}"
        )

    unknown = set(params) - {"appKey", "app_key", "username", "password"}
    if unknown:
        raise ConfigurationError(
            f"Unknown authentication parameters: {', '.join(sorted(unknown))}"
        )

    app_key = params.get("appKey")
    if app_key is None:
        app_key = params.get("app_key")
    return AuthParams(
        app_key=app_key,
        username=params.get("username"),
        password=params.get("password"),
    )


class AmbientCredentials:
    """Leaves requests untouched; the transport's own session and cookies apply."""

    key = ("ambient",)

    def __call__(self, options: RequestOptions) -> RequestOptions:
        return options

    def __repr__(self) -> str:
        return "AmbientCredentials()"


class AppKeyAuth:
    """Adds the appKey header."""

    def __init__(self, app_key: str):
        self._app_key = app_key
        self.key = ("appKey", app_key)

    def __call__(self, options: RequestOptions) -> RequestOptions:
        return options.with_headers(appKey=self._app_key)

    def __repr__(self) -> str:
        return "AppKeyAuth(appKey=***)"


class BasicAuth:
    """Adds an HTTP Basic Authorization header."""

    def __init__(self, username: str, password: str):
        self._token = basic_token(username, password)
        self.username = username
        self.key = ("basic", self._token)

    def __call__(self, options: RequestOptions) -> RequestOptions:
        return options.with_headers(Authorization=f"Basic {self._token}")

    def __repr__(self) -> str:
        return f"BasicAuth(username={self.username!r})"


AuthStrategy = Union[AmbientCredentials, AppKeyAuth, BasicAuth]


def basic_token(username: str, password: str) -> str:
    return base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")


_AMBIENT = AmbientCredentials()
_app_key_strategies: Registry[AppKeyAuth] = Registry("app-key strategies")
_basic_auth_strategies: Registry[BasicAuth] = Registry("basic auth strategies")


def get_auth_strategy(params: AuthParamsLike = None) -> AuthStrategy:
    """
    Get the cached strategy for the given auth parameters.

    Raises:
        ConfigurationError: if the parameters mix app key and
            username/password, or only one of username/password is set
    """
    auth = parse_auth_params(params)

    # Fast path - no auth configured
    if auth.is_empty:
        return _AMBIENT

    if auth.app_key is not None and auth.username is None and auth.password is None:
        app_key = auth.app_key
        return _app_key_strategies.get_or_create(app_key, lambda: AppKeyAuth(app_key))

    if auth.username is not None and auth.password is not None and auth.app_key is None:
        username, password = auth.username, auth.password
        return _basic_auth_strategies.get_or_create(
            basic_token(username, password),
            lambda: BasicAuth(username, password),
        )

    logger.debug("Rejected authentication parameters combination")
    raise ConfigurationError(
        "Authentication parameters combination is wrong: use either appKey, "
        "or both username and password, or nothing."
    )
