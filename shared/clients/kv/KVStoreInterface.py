import threading
from abc import ABC, abstractmethod
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.storage import StorageResult


class KVStoreInterface(ABC):
    """Persistent string key-value store, modelled after browser localStorage.

    Writes never raise: they return a StorageResult so callers can react to a
    full store (quota_exceeded) without exception-driven branching. Sizes are
    measured in characters of key + value, and KV_{ENGINE}_MAX_BYTES (0 = no
    limit) caps the total.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._lock = threading.RLock()
        self.validate_full_configuration()
        self.max_bytes = int(self.get_config_val("MAX_BYTES", default=0, val_type="number"))

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read KV_{ENGINE}_{KEY} from the environment."""
        key = f"KV_{self.get_engine_name().upper()}_{raw_key.upper()}"
        if val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        if val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        return self._helper_config.get_string_val(key, default=default)

    ##########################################
    ############ BACKEND ACCESS ##############
    ##########################################

    @abstractmethod
    def _read_all(self) -> dict[str, str]:
        """Return the live key → value mapping of the backend."""
        pass

    @abstractmethod
    def _write(self, key: str, value: str) -> StorageResult:
        pass

    @abstractmethod
    def _delete(self, key: str) -> None:
        pass

    ##########################################
    ############### PUBLIC API ###############
    ##########################################

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> StorageResult:
        """Store a value.

        Returns:
            StorageResult: ok, quota_exceeded if the write would exceed max_bytes, or error.
        """
        with self._lock:
            if self.max_bytes:
                current = self._read_all()
                used = self.used_bytes() - (len(key) + len(current[key]) if key in current else 0)
                if used + len(key) + len(value) > self.max_bytes:
                    return StorageResult.quota_exceeded(
                        f"Writing '{key}' needs {len(key) + len(value)} bytes, {self.max_bytes - used} left."
                    )
            return self._write(key, value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._delete(key)

    def keys(self, prefix: str = "") -> list[str]:
        """Return all keys starting with prefix, in insertion order."""
        with self._lock:
            return [key for key in self._read_all() if key.startswith(prefix)]

    def used_bytes(self) -> int:
        with self._lock:
            return sum(len(k) + len(v) for k, v in self._read_all().items())
