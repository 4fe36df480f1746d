from abc import ABC, abstractmethod
import time

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles
from typing import Any
from shared.models.config import EnvConfig

from shared.helper.HelperConfig import HelperConfig


class ClientRequestError(Exception):
    """A backend answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class ClientInterface(ABC):
    """
    Base class of all HTTP backends (embedding APIs, vector stores).

    Configuration is read from "{CLIENT_TYPE}_{ENGINE}_{KEY}" environment
    variables, e.g. RAG_QDRANT_BASE_URL or EMBED_OPENAI_API_KEY. The shared
    timeout is "{CLIENT_TYPE}_TIMEOUT".
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Reads every required configuration value once so that a missing
        setting fails at construction instead of at the first request.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    def is_booted(self) -> bool:
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed" or "rag"
        """
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client. E.g. "Qdrant"
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns the configuration keys of the client, without prefix.
        Keys with default None are mandatory.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name. E.g. "RAG_QDRANT_API_KEY"
        """
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves a configuration value of the client.

        Args:
            raw_key (str): The key without client prefix. E.g. "BASE_URL"
            default (Any): Value used if the variable is unset. None makes it mandatory.
            val_type (str): "string", "number", "bool" or "list"

        Raises:
            ValueError: If the value is missing, malformed or val_type is unknown.
        """
        getters = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        getter = getters.get(val_type)
        if getter is None:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in {self.get_client_type().upper()} client '{self.get_engine_name()}'.")
        return getter(self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header, or an empty dict if no API key is configured.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend. E.g. "http://localhost:6333"
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests. E.g. "/healthz"
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check that the backend is reachable.

        Raises:
            ClientRequestError: If the backend answers with a non-2xx status.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport (httpx.AsyncBaseTransport | None): Optional transport override,
                e.g. an httpx.MockTransport in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the backend.

        Exactly one of content, data, files or json is sent as body.

        Returns:
            httpx.Response: The raw response.

        Raises:
            Exception: If boot() was not called.
            ClientRequestError: On a non-2xx status while raise_on_error is True.
            httpx.HTTPError: On transport failures and timeouts.
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""
        url = f"{self._get_base_url().rstrip('/')}{endpoint}"

        headers: dict = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict = {}
        if content is not None:
            body["content"] = content
        elif data is not None:
            body["data"] = data
        elif files is not None:
            body["files"] = files
        elif json is not None:
            body["json"] = json

        started = time.perf_counter()
        response = await self._client.request(method, url, headers=headers, params=params, timeout=self.timeout, **body)
        self.logging.debug(
            "%s %s -> %d (%.0f ms)", method, url, response.status_code, (time.perf_counter() - started) * 1000
        )

        if raise_on_error and not response.is_success:
            self.logging.error("Request to %s failed with status %d: %s", url, response.status_code, response.text[:200])
            raise ClientRequestError(
                f"Request to {url} failed with status {response.status_code}",
                status_code=response.status_code,
                url=url,
            )
        return response

    async def do_request_json(self, method: str, endpoint: str, body: dict | None = None) -> dict:
        """Send a JSON request and return the decoded JSON object.

        Raises:
            ClientRequestError: On a non-2xx status.
            ValueError: If the response is not a JSON object.
        """
        response = await self.do_request(method=method, endpoint=endpoint, json=body, raise_on_error=True)
        try:
            decoded = response.json()
        except ValueError as exc:
            raise ValueError(f"Response from {self.get_engine_name()} is not valid JSON: {exc}")
        if not isinstance(decoded, dict):
            raise ValueError(f"Response from {self.get_engine_name()} is not a JSON object.")
        return decoded
