from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors import GenerationFailure
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default=self._get_default_chat_model())
        self.temperature = helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=0.7)
        self.max_output_tokens = helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_OUTPUT_TOKENS", default=2048)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        """Returns the chat model used when LLM_CHAT_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the assistant reply text from a raw chat API response.

        Raises:
            ValueError: If the response does not contain a reply.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict]) -> str:
        """Send a chat/completion request and return the assistant reply text.

        Args:
            messages (list[dict]): OpenAI-format messages.

        Returns:
            str: The assistant reply text.

        Raises:
            GenerationFailure: If the request fails or the response carries no reply.
        """
        body = self.get_chat_payload(messages)
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_chat(),
                json=body,
                raise_on_error=True,
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise GenerationFailure("Invalid API key for the answer model.") from exc
            if status == 429:
                raise GenerationFailure("API quota exceeded. Please try again later.") from exc
            if status == 404:
                raise GenerationFailure(f"Model '{self.chat_model}' was not found on the answer backend.") from exc
            raise GenerationFailure(f"Answer generation failed with status {status}.") from exc
        except httpx.HTTPError as exc:
            raise GenerationFailure(f"Answer backend '{self.get_engine_name()}' is not reachable: {exc}") from exc

        try:
            return self.extract_chat_response(response.json())
        except ValueError as exc:
            raise GenerationFailure(str(exc)) from exc
