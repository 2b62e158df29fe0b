"""Best-effort attribution of chunk text to source page numbers.

Two heuristics, tried in order:

1. A page is attributed to a chunk when the document text contains the page
   text verbatim and the chunk contains the first 50 characters of the page.
2. Otherwise the chunk's first occurrence in the document text is located and
   the pages are walked by length, assuming pages were joined with a two
   character separator ("\\n\\n").

Known limitation: a chunk spanning a page boundary whose page prefix falls
outside the chunk is attributed to the page it starts on only, and a chunk
text that also occurs earlier in the document is attributed to the earlier
position. Callers must treat page numbers as approximate.
"""

from shared.models.document import DocumentPage

PAGE_PREFIX_CHARS = 50
PAGE_SEPARATOR_CHARS = 2


def find_chunk_pages(chunk_text: str, full_text: str, pages: list[DocumentPage]) -> list[int]:
    """Return the page numbers a chunk most likely comes from.

    Args:
        chunk_text (str): The (trimmed) chunk text.
        full_text (str): The complete document text the chunk was cut from.
        pages (list[DocumentPage]): Ordered source pages; may be empty.

    Returns:
        list[int]: Page numbers in page order, empty if unknown.
    """
    if not pages:
        return []

    page_numbers = [
        page.page_number
        for page in pages
        if page.text.strip()
        and page.text in full_text
        and page.text[:PAGE_PREFIX_CHARS] in chunk_text
    ]
    if page_numbers:
        return page_numbers

    position = full_text.find(chunk_text)
    if position == -1:
        return []

    offset = 0
    for page in pages:
        if offset <= position < offset + len(page.text):
            return [page.page_number]
        offset += len(page.text) + PAGE_SEPARATOR_CHARS
    return []
