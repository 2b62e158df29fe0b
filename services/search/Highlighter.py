"""Query highlighting as text spans.

Rather than injecting markup, the text is cut into runs flagged as match or
non-match, so the rendering layer decides how a match looks. Every term is
applied independently and overlapping occurrences are all marked, so
overlapping terms merge into one marked run.
"""

import re

from shared.models.search import HighlightSpan


def highlight_spans(text: str, query: str) -> list[HighlightSpan]:
    """Split text into spans, marking every case-insensitive occurrence of each query term.

    Args:
        text (str): The text to highlight, e.g. a search result preview.
        query (str): The raw search query; terms are separated by whitespace.

    Returns:
        list[HighlightSpan]: Consecutive spans whose texts concatenate to the input text.
    """
    if not text:
        return []

    terms = query.lower().split()
    mask = [False] * len(text)
    for term in terms:
        # zero-width lookahead so overlapping occurrences are found too
        for match in re.finditer(f"(?={re.escape(term)})", text, re.IGNORECASE):
            start = match.start()
            mask[start:start + len(term)] = [True] * min(len(term), len(text) - start)

    spans: list[HighlightSpan] = []
    run_start = 0
    for i in range(1, len(text) + 1):
        if i == len(text) or mask[i] != mask[run_start]:
            spans.append(HighlightSpan(text=text[run_start:i], is_match=mask[run_start]))
            run_start = i
    return spans
