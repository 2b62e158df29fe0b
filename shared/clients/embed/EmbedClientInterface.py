from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors import EmbeddingFailure
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_model_max_chars = helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_CHARS", default=0)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the embedding model used when EMBED_MODEL is not set.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}
        - Gemini :batchEmbedContents: {"embeddings": [{"values": [...]}, ...]}

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    def _truncate(self, text: str) -> str:
        """Cut a text to the model's character limit, if one is configured."""
        if self.embed_model_max_chars and len(text) > self.embed_model_max_chars:
            return text[: int(self.embed_model_max_chars)]
        return text

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            EmbeddingFailure: If the request fails, returns a non-200 status, or carries no valid vectors.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload([self._truncate(text) for text in texts])
        try:
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        except httpx.HTTPError as exc:
            raise EmbeddingFailure(f"Embedding backend '{self.get_engine_name()}' is not reachable: {exc}") from exc

        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise EmbeddingFailure(f"Embedding request failed with status {response.status_code}.")

        try:
            vectors = self.extract_embeddings_from_response(response.json())
        except ValueError as exc:
            raise EmbeddingFailure(str(exc)) from exc
        if len(vectors) != len(texts):
            raise EmbeddingFailure(f"Embedding backend returned {len(vectors)} vectors for {len(texts)} texts.")
        return vectors

    async def do_embed_text(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            EmbeddingFailure: See do_embed().
        """
        vectors = await self.do_embed([text])
        return vectors[0]
