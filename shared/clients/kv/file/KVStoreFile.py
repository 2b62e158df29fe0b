import errno
import json
import os
import tempfile

from shared.clients.kv.KVStoreInterface import KVStoreInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.storage import StorageResult


class KVStoreFile(KVStoreInterface):
    """Store persisted as a single JSON object on disk (KV_FILE_PATH).

    Every write rewrites the file through a temporary file and an atomic
    rename, so a crash never leaves a half-written store behind. The cost of
    a write grows with the whole store (cached chunk sets included), so async
    callers persist through asyncio.to_thread or a plain-def route.
    """

    def __init__(self, helper_config: HelperConfig, path: str | None = None):
        super().__init__(helper_config=helper_config)
        self._path = path or self.get_config_val("PATH", default=os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "data", "kv_store.json"))
        self._data = self._load()

    def _get_engine_name(self) -> str:
        return "File"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="PATH", val_type="string", default="data/kv_store.json"),
            EnvConfig(env_key="MAX_BYTES", val_type="number", default=0),
        ]

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            self.logging.error("KV store file %s is unreadable, starting empty: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            self.logging.error("KV store file %s does not contain an object, starting empty.", self._path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self, data: dict[str, str]) -> StorageResult:
        directory = os.path.dirname(os.path.abspath(self._path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".kv_", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as exc:
            if exc.errno in (errno.ENOSPC, errno.EDQUOT):
                return StorageResult.quota_exceeded(str(exc))
            return StorageResult.error(str(exc))
        return StorageResult.ok()

    def _read_all(self) -> dict[str, str]:
        return self._data

    def _write(self, key: str, value: str) -> StorageResult:
        updated = {**self._data, key: value}
        result = self._flush(updated)
        if result.is_ok:
            self._data = updated
        return result

    def _delete(self, key: str) -> None:
        if key not in self._data:
            return
        updated = {k: v for k, v in self._data.items() if k != key}
        result = self._flush(updated)
        if not result.is_ok:
            self.logging.error("Failed to remove key '%s' from %s: %s", key, self._path, result.reason)
            return
        self._data = updated
