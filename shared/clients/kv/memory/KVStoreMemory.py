from shared.clients.kv.KVStoreInterface import KVStoreInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.storage import StorageResult


class KVStoreMemory(KVStoreInterface):
    """Process-local store. Contents are lost on restart."""

    def __init__(self, helper_config: HelperConfig, max_bytes: int | None = None):
        self._data: dict[str, str] = {}
        super().__init__(helper_config=helper_config)
        if max_bytes is not None:
            self.max_bytes = max_bytes

    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="MAX_BYTES", val_type="number", default=0)]

    def _read_all(self) -> dict[str, str]:
        return self._data

    def _write(self, key: str, value: str) -> StorageResult:
        self._data[key] = value
        return StorageResult.ok()

    def _delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
