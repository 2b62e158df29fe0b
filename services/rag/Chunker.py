"""Sliding-window text chunker.

Splits document text into fixed-size windows that overlap by a fixed number
of characters. The window start advances by chunk_size - overlap until it
passes the end of the text; blank windows are dropped and emitted windows are
numbered consecutively.
"""

from shared.errors import ValidationError
from shared.models.document import TextWindow

CHUNK_SIZE = 1000       # characters per text chunk
CHUNK_OVERLAP = 200     # character overlap between consecutive chunks


def validate_chunking(chunk_size: int, overlap: int) -> None:
    """Reject parameters that would make the window stall or run backwards.

    Raises:
        ValidationError: If chunk_size <= 0, overlap < 0 or overlap >= chunk_size.
    """
    if chunk_size <= 0:
        raise ValidationError(f"Chunk size must be positive, got {chunk_size}.")
    if overlap < 0:
        raise ValidationError(f"Chunk overlap must not be negative, got {overlap}.")
    if overlap >= chunk_size:
        raise ValidationError(
            f"Chunk overlap ({overlap}) must be smaller than the chunk size ({chunk_size})."
        )


def split_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[TextWindow]:
    """Split a document's text into overlapping windows.

    Args:
        text (str): The full document text.
        chunk_size (int): Window length in characters.
        overlap (int): Characters shared by consecutive windows.

    Returns:
        list[TextWindow]: Ordered windows with trimmed, non-empty text.

    Raises:
        ValidationError: If the chunking parameters are invalid.
    """
    validate_chunking(chunk_size, overlap)

    windows: list[TextWindow] = []
    step = chunk_size - overlap
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunk = text[start:end].strip()
        if chunk:
            windows.append(TextWindow(index=len(windows), start=start, end=end, text=chunk))
        start += step
    return windows
