from pydantic import BaseModel, Field, model_validator


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The key/name of the environment variable to read, without the client prefix.
        val_type (str): The expected type of the environment variable's value. Supported types are "string", "number", "bool", and "list".
        default (str | int | float | bool | list | None): An optional default value if the environment variable is not set. If None, the variable is required and an error will be raised if it is not set.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class RagSettings(BaseModel):
    """Tunables of the retrieval, caching and search core.

    Attributes:
        chunk_size:              Characters per chunk window.
        chunk_overlap:           Characters shared by consecutive windows. Must be smaller than chunk_size.
        min_similarity:          Cosine threshold for selecting a chunk into the context.
        max_context_chunks:      Upper bound of chunks handed to the answer model.
        chunk_cache_ttl_days:    Age after which a cached chunk set is discarded.
        chunk_cache_version:     Cache format version. Bumping it invalidates every existing entry.
        search_cache_capacity:   Number of search result lists kept before FIFO eviction.
        embed_concurrency:       Size of the embedding worker pool. 1 embeds sequentially.
        embed_throttle_seconds:  Pause after each embedding call, per worker.
        timezone:                Timezone used for day boundaries of custom search date ranges.
    """

    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    min_similarity: float = Field(default=0.4, ge=-1.0, le=1.0)
    max_context_chunks: int = Field(default=5, gt=0)
    chunk_cache_ttl_days: float = Field(default=7, gt=0)
    chunk_cache_version: int = Field(default=1, ge=1)
    search_cache_capacity: int = Field(default=50, gt=0)
    embed_concurrency: int = Field(default=1, ge=1)
    embed_throttle_seconds: float = Field(default=0.1, ge=0)
    timezone: str = "Europe/Berlin"

    @model_validator(mode="after")
    def _check_overlap(self) -> "RagSettings":
        # an overlap >= chunk_size would never advance the window
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})."
            )
        return self

    @property
    def chunk_cache_ttl_ms(self) -> int:
        return int(self.chunk_cache_ttl_days * 24 * 60 * 60 * 1000)
