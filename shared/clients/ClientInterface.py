from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData

from shared.errors import BridgeError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base for every HTTP backend client (embedding service, vector store).

    Engine settings are read from `<TYPE>_<ENGINE>_<KEY>` environment
    variables, e.g. RAG_QDRANT_BASE_URL. The request timeout comes from
    `<TYPE>_TIMEOUT`. Requests need boot() first.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Raises:
            ValueError: If a required key is unset and has no default, or holds an unparsable value.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read an engine setting, e.g. get_config_val("BASE_URL") on the Qdrant client reads RAG_QDRANT_BASE_URL.

        Args:
            raw_key (str): Key without the type and engine prefix.
            default (Any): Value used when the variable is unset.
            val_type (str): "string", "number", "bool" or "list".
        """
        return self._helper_config.get_typed_val(self._get_config_key_name(raw_key), val_type, default=default)

    @abstractmethod
    def _get_client_type(self) -> str:
        """Client family, e.g. "rag" or "embed"."""

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Backend engine, e.g. "qdrant" or "ollama"."""

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings checked by validate_full_configuration() at construction time."""

    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers that authenticate against the backend. Empty when no API key is configured."""

    @abstractmethod
    def _get_base_url(self) -> str:
        """Backend root URL, e.g. "http://localhost:6333"."""

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """Path answered by do_healthcheck()."""

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """
        Raises:
            BridgeError: If the backend answers with a non-2xx status.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP client. Tests pass an httpx.MockTransport."""
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
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to `<base url>/<endpoint>` with the auth headers applied.

        At most one body is sent; content wins over data, data over json.
        Non-2xx responses are returned as-is unless raise_on_error is set.

        Raises:
            RuntimeError: If boot() was not called.
            httpx.HTTPError: On transport failures such as refused connections or timeouts.
            BridgeError: On a non-2xx status when raise_on_error is True.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        path = endpoint.strip().lstrip("/")
        url = f"{self._get_base_url().rstrip('/')}/{path}" if path else self._get_base_url().rstrip("/")
        headers = {**self._get_auth_header(), **(additional_headers or {})}

        body: dict = {}
        if content is not None:
            body["content"] = content
        elif data is not None:
            body["data"] = data
        elif json is not None:
            body["json"] = json

        response = await self._client.request(
            method, url, headers=headers, params=params, timeout=self.timeout, **body
        )

        if raise_on_error and response.status_code >= 300:
            self.logging.error("Request to %s failed with status %d: %s", url, response.status_code, response.text[:200])
            raise BridgeError(f"Request to {url} failed with status {response.status_code}", status_code=response.status_code)
        return response
