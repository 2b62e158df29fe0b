from shared.helper.HelperConfig import HelperConfig
from shared.clients.kv.KVStoreInterface import KVStoreInterface


class KVStoreManager:
    """Manager class to instantiate the configured key-value store (KV_ENGINE, default "memory")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.store = self._initialize_store()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val("KV_ENGINE", default="memory")
        return engine.strip().lower().capitalize()

    def _initialize_store(self) -> KVStoreInterface:
        """Instantiate the KV store for the configured engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"KVStore{engine}"
        try:
            module = __import__(
                f"shared.clients.kv.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            store_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported KV engine '%s'. Error: %s" % (engine, e))

        store = store_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated KV store for engine: %s", engine)
        return store

    def get_store(self) -> KVStoreInterface:
        return self.store
