from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientGemini(EmbedClientInterface):
    """Embedding client for the Google Generative Language API (text-embedding-004 by default)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com/v1beta", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gemini"

    def _get_default_model(self) -> str:
        return "text-embedding-004"

    def _get_model_path(self) -> str:
        return self.embed_model if self.embed_model.startswith("models/") else f"models/{self.embed_model}"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self._get_model_path()}"

    def get_endpoint_embedding(self) -> str:
        return f"/{self._get_model_path()}:batchEmbedContents"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        model = self._get_model_path()
        return {
            "requests": [
                {"model": model, "content": {"parts": [{"text": text}]}}
                for text in texts
            ]
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings")
        if not embeddings:
            raise ValueError(
                "Gemini response does not contain embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        vectors = [entry.get("values") or [] for entry in embeddings]
        if not all(vectors):
            raise ValueError("Gemini response contains an empty embedding vector.")
        return vectors
