from shared.helper.HelperConfig import HelperConfig
from shared.clients.llm.LLMClientInterface import LLMClientInterface

# engine name -> subpackage under shared/clients/llm/
SUPPORTED_LLM_ENGINES = ("ollama", "gemini")


class LLMClientManager:
    """Picks the answer-generation backend.

    LLM_ENGINE selects it; when unset, the embedding engine (EMBED_ENGINE) is
    reused, since one Ollama or Gemini deployment usually serves both.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.engine = self._resolve_engine()
        self.client = self._initialize_client()

    def _resolve_engine(self) -> str:
        """
        Raises:
            ValueError: If neither LLM_ENGINE nor EMBED_ENGINE is set, or the engine is not supported.
        """
        engine = self.helper_config.get_string_val("LLM_ENGINE", default="") or self.helper_config.get_string_val("EMBED_ENGINE", default="")
        engine = engine.strip().lower()
        if not engine:
            raise ValueError("No answer engine configured: set LLM_ENGINE (or EMBED_ENGINE).")
        if engine not in SUPPORTED_LLM_ENGINES:
            raise ValueError(
                "Unsupported LLM engine '%s'. Supported engines: %s" % (engine, ", ".join(SUPPORTED_LLM_ENGINES))
            )
        return engine

    def _initialize_client(self) -> LLMClientInterface:
        class_name = f"LLMClient{self.engine.capitalize()}"
        module = __import__(f"shared.clients.llm.{self.engine}.{class_name}", fromlist=[class_name])
        client: LLMClientInterface = getattr(module, class_name)(helper_config=self.helper_config)
        self.logging.info("Answer generation via %s (model %s)", self.engine, client.chat_model)
        return client

    def get_client(self) -> LLMClientInterface:
        return self.client
