from abc import abstractmethod

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.errors import EmbeddingServiceError

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default="nomic-embed-text")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    def get_model_name(self) -> str:
        """
        Returns the configured embedding model identifier. E.g. "nomic-embed-text"
        """
        return self.embed_model

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embeddings")
        """
        pass

    @abstractmethod
    def get_endpoint_model_details(self) -> str:
        """
        Returns the endpoint path for model details requests.

        Returns:
            str: The endpoint path for model details requests (e.g. "/api/show")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, text: str) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            text (str): The text to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "prompt": "..."}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        """
        Extracts the embedding vector size from the model information response.

        Args:
            model_info (dict): The raw response from the model details endpoint.

        Returns:
            int: The dimension of the embedding vectors produced by the model.

        Raises:
            ValueError: If the vector size cannot be determined.
        """
        pass

    @abstractmethod
    def extract_embedding_from_response(self, response_data: dict) -> list[float]:
        """Extract the embedding vector from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[float]: The embedding vector.

        Raises:
            ValueError: If the response does not contain a valid embedding.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> int:
        """
        Fetch the output vector dimension of the configured embedding model.

        Returns:
            int: The number of dimensions produced by the embedding model.

        Raises:
            EmbeddingServiceError: If the backend cannot be reached or the dimension cannot be
                determined from the response.
        """
        try:
            response = await self.do_request(
                method="POST",
                json={"name": self.embed_model},
                endpoint=self.get_endpoint_model_details(),
            )
        except httpx.HTTPError as exc:
            raise EmbeddingServiceError(f"Embedding backend unreachable: {exc}") from exc
        if response.status_code != 200:
            raise EmbeddingServiceError(
                f"Model details request failed with status {response.status_code}.",
                status_code=response.status_code,
            )
        try:
            return self.extract_vector_size_from_model_info(model_info=response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise EmbeddingServiceError(f"Malformed response from {self.get_engine_name()}: {exc}") from exc

    async def do_embed(self, text: str) -> list[float]:
        """Send a single embedding request and return the extracted vector.

        One outbound request per call, no retries. Empty text is sent as-is.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding vector.

        Raises:
            EmbeddingServiceError: If the backend is unreachable, answers with a non-200
                status or returns no valid embedding.
        """
        body = self.get_embed_payload(text)
        try:
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        except httpx.HTTPError as exc:
            self.logging.error("Embedding request to %s failed: %s", self.get_engine_name(), exc)
            raise EmbeddingServiceError(f"Embedding backend unreachable: {exc}") from exc

        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise EmbeddingServiceError(
                "Embedding request failed with status %d." % response.status_code,
                status_code=response.status_code,
            )
        try:
            return self.extract_embedding_from_response(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise EmbeddingServiceError(f"Malformed response from {self.get_engine_name()}: {exc}") from exc
