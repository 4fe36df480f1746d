"""Text normalisation for retrieval.

Turns raw text (markdown, chat messages, source snippets) into a canonical
lowercase search string, and extracts the meaningful query terms used by
the reranker.
"""

import re

from shared.helper.HelperConfig import HelperConfig

# Common English words that carry no retrieval signal
STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "does", "for",
    "from", "had", "has", "have", "he", "her", "his", "how", "hey", "i",
    "in", "is", "it", "its", "of", "on", "or", "that", "the", "this",
    "to", "was", "what", "when", "where", "which", "who", "will", "with", "would",
    "there", "their", "they", "your", "you",
})

MIN_TERM_LENGTH = 3

# Applied in order; each entry is (pattern, replacement).
_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"```[\s\S]*?```"), ""),                              # fenced code
    (re.compile(r"`.*?`"), ""),                                       # inline code
    (re.compile(r"#{1,6}\s*(.*)"), r"\1"),                            # headers, keep label
    (re.compile(r"!\[(.*?)\]\(.*?\)"), r"\1"),                        # images, keep alt text
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),                         # links, keep label
    (re.compile(r"(https?://)?(www\.)?([^\s]+\.[^\s]+)"), r"\3"),     # urls → host + path
    (re.compile(r"<@[!&]?\d+>"), ""),                                 # user/role mentions
    (re.compile(r"<[^>]*>"), ""),                                     # html-like tags
    (re.compile(r"^\s*[-*_]{3,}\s*$", re.MULTILINE), ""),             # horizontal rules
    (re.compile(r"/\*[\s\S]*?\*/"), ""),                              # block comments
    (re.compile(r"//.*"), ""),                                        # line comments
    (re.compile(r"\s+"), " "),                                        # whitespace and blank lines
]


class TextPreprocessor:
    """Normalises text for embedding-cache keys, queries and reranking."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    def preprocess(self, content: str) -> str:
        """Strip markup and code from ``content``, collapse whitespace and lowercase it.

        Non-Latin scripts are left untouched. Rules are re-applied until
        the output stops changing, so ``preprocess(preprocess(t)) ==
        preprocess(t)`` holds even when one removal exposes another
        pattern (e.g. a tag sitting inside link markup).

        Args:
            content (str): Raw text.

        Returns:
            str: The canonical search string, or "" for empty or non-string input.
        """
        if not content or not isinstance(content, str):
            self.logging.warning("[Preprocess] Invalid input for preprocessing: %r", type(content).__name__)
            return ""

        # rules only remove or shorten matches and lowercasing is stable, so this reaches a fixed point
        current = content
        while True:
            processed = self._apply_rules(current)
            if processed == current:
                return processed
            current = processed

    def get_query_terms(self, query: str) -> set[str]:
        """Extract the meaningful terms of a query.

        Lowercases, splits on whitespace, drops tokens shorter than
        three characters and stop words. Only used for reranking signals,
        never as embedding input.

        Args:
            query (str): The (usually preprocessed) query string.

        Returns:
            set[str]: Distinct query terms.
        """
        if not query:
            return set()
        return {
            term
            for term in query.lower().split()
            if len(term) >= MIN_TERM_LENGTH and term not in STOP_WORDS
        }

    @staticmethod
    def _apply_rules(text: str) -> str:
        for pattern, replacement in _RULES:
            text = pattern.sub(replacement, text)
        return text.strip().lower()
