"""Central configuration helper for the answerai core."""

import logging
import os

from shared.logging.logging_setup import ColorLogger
from shared.models.config import RagSettings


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables.

    A RagSettings instance may be injected to bypass the environment, e.g. in
    tests or when the core is embedded into another application.
    """

    def __init__(self, logger: ColorLogger | logging.Logger, rag_settings: RagSettings | None = None) -> None:
        # services log with color=, which only ColorLogger accepts
        self._logger = logger if isinstance(logger, ColorLogger) else ColorLogger(logger)
        self._rag_settings = rag_settings

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        val = os.getenv(key) or None  # empty string → None
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value cannot be parsed as a number.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (bool | None): Fallback value if the variable is not set.

        Returns:
            bool: The resolved boolean value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list environment variable in the form "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list[str] | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Returns:
            list: The resolved list of elements.

        Raises:
            ValueError: If the variable is not set and no default is provided, or if it is malformed.
        """
        raw_val = os.getenv(key.upper()) or None
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        raw_val = raw_val.strip()
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_rag_settings(self) -> RagSettings:
        """Return the retrieval/cache/search tunables, reading them from the environment on first use.

        Returns:
            RagSettings: The validated settings.

        Raises:
            pydantic.ValidationError: If the configured values are inconsistent (e.g. overlap >= chunk size).
        """
        if self._rag_settings is None:
            defaults = RagSettings()
            self._rag_settings = RagSettings(
                chunk_size=self.get_number_val("RAG_CHUNK_SIZE", default=defaults.chunk_size),
                chunk_overlap=self.get_number_val("RAG_CHUNK_OVERLAP", default=defaults.chunk_overlap),
                min_similarity=self.get_number_val("RAG_MIN_SIMILARITY", default=defaults.min_similarity),
                max_context_chunks=self.get_number_val("RAG_MAX_CONTEXT_CHUNKS", default=defaults.max_context_chunks),
                chunk_cache_ttl_days=self.get_number_val("CHUNK_CACHE_TTL_DAYS", default=defaults.chunk_cache_ttl_days),
                chunk_cache_version=self.get_number_val("CHUNK_CACHE_VERSION", default=defaults.chunk_cache_version),
                search_cache_capacity=self.get_number_val("SEARCH_CACHE_CAPACITY", default=defaults.search_cache_capacity),
                embed_concurrency=self.get_number_val("EMBED_CONCURRENCY", default=defaults.embed_concurrency),
                embed_throttle_seconds=self.get_number_val("EMBED_THROTTLE_SECONDS", default=defaults.embed_throttle_seconds),
                timezone=self.get_string_val("TIMEZONE", default=defaults.timezone),
            )
            self._logger.debug("Loaded RAG settings: %s", self._rag_settings.model_dump())
        return self._rag_settings

    def get_logger(self) -> ColorLogger:
        """Return the application logger.

        Returns:
            ColorLogger: The configured logger, accepting an optional color= argument.
        """
        return self._logger
