"""In-memory vector store.

Holds embedded chunks indexed by chunk id and grouped per document. The
contents live in an immutable snapshot that is swapped as a whole on every
mutation, so readers never observe a half-replaced document. Mutations are
serialized with a lock.
"""

import threading
from types import MappingProxyType
from typing import Iterable, NamedTuple

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentChunk


class _Snapshot(NamedTuple):
    by_file: MappingProxyType   # file_id -> tuple[DocumentChunk, ...]
    by_id: MappingProxyType     # chunk id -> DocumentChunk


_EMPTY = _Snapshot(MappingProxyType({}), MappingProxyType({}))


class VectorStore:
    """Process-wide collection of embedded chunks with replace-per-document semantics."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self._lock = threading.Lock()
        self._snapshot: _Snapshot = _EMPTY

    ##########################################
    ############### MUTATIONS ################
    ##########################################

    def replace_chunks(self, file_id: str, chunks: Iterable[DocumentChunk]) -> None:
        """Swap the complete chunk set of a document.

        The document's old chunks are removed and the new ones appended,
        ordered by chunk_index. Passing an empty iterable removes the document.

        Raises:
            ValueError: If a chunk belongs to another file, or a chunk id is duplicated or owned by another file.
        """
        new_chunks = tuple(sorted(chunks, key=lambda chunk: chunk.chunk_index))
        ids: set[str] = set()
        for chunk in new_chunks:
            if chunk.file_id != file_id:
                raise ValueError(f"Chunk '{chunk.id}' belongs to file '{chunk.file_id}', not '{file_id}'.")
            if chunk.id in ids:
                raise ValueError(f"Duplicate chunk id '{chunk.id}' for file '{file_id}'.")
            ids.add(chunk.id)

        with self._lock:
            current = self._snapshot
            for chunk_id in ids:
                owner = current.by_id.get(chunk_id)
                if owner is not None and owner.file_id != file_id:
                    raise ValueError(f"Chunk id '{chunk_id}' is already owned by file '{owner.file_id}'.")

            by_file = {fid: c for fid, c in current.by_file.items() if fid != file_id}
            if new_chunks:
                by_file[file_id] = new_chunks
            by_id = {chunk.id: chunk for file_chunks in by_file.values() for chunk in file_chunks}
            self._snapshot = _Snapshot(MappingProxyType(by_file), MappingProxyType(by_id))

        self.logging.debug("Vector store: %d chunks for %s (total %d)", len(new_chunks), file_id, len(self))

    def clear(self) -> None:
        """Drop every chunk."""
        with self._lock:
            self._snapshot = _EMPTY
        self.logging.info("Vector store cleared")

    ##########################################
    ################ READS ###################
    ##########################################

    def chunks_for_files(self, file_ids: Iterable[str]) -> list[DocumentChunk]:
        """Return the chunks of the given documents, in store order and per-document chunk order."""
        wanted = set(file_ids)
        snapshot = self._snapshot
        return [
            chunk
            for file_id, file_chunks in snapshot.by_file.items()
            if file_id in wanted
            for chunk in file_chunks
        ]

    def get_chunk(self, chunk_id: str) -> DocumentChunk | None:
        return self._snapshot.by_id.get(chunk_id)

    def has_embeddings(self, file_id: str) -> bool:
        """True if the document has chunks and all of them carry an embedding."""
        file_chunks = self._snapshot.by_file.get(file_id, ())
        return bool(file_chunks) and all(chunk.embedding for chunk in file_chunks)

    def file_ids(self) -> list[str]:
        return list(self._snapshot.by_file.keys())

    def __len__(self) -> int:
        return len(self._snapshot.by_id)
