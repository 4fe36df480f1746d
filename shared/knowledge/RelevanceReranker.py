"""Relevance reranking on top of vector similarity.

Raw cosine similarity under-weights exact lexical matches and short
metadata signals. The reranker adds fixed boosts for those and re-sorts:

    score = similarity
          + 0.1 per distinct query term found in the text
          + 0.2 once if two term occurrences are within 5 tokens
          + 0.3 if the metadata title appears in the query
          + 0.1 per distinct metadata tag appearing in the query
"""

from typing import Sequence

from shared.helper.HelperConfig import HelperConfig
from shared.models.knowledge import KnowledgeItem

TERM_MATCH_BOOST = 0.1
PROXIMITY_BOOST = 0.2
TITLE_MATCH_BOOST = 0.3
TAG_MATCH_BOOST = 0.1
PROXIMITY_WINDOW = 5


class RelevanceReranker:
    """Recomputes a composite relevance score for similarity-ranked candidates."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    def rerank(
        self,
        candidates: Sequence[KnowledgeItem],
        query_terms: set[str],
        limit: int,
        query: str = "",
    ) -> list[KnowledgeItem]:
        """Score, sort and truncate candidates.

        Args:
            candidates (Sequence[KnowledgeItem]): Search hits carrying ``similarity``.
            query_terms (set[str]): Meaningful terms of the query.
            limit (int): Maximum number of items to return.
            query (str): The preprocessed query, used for title and tag matching.

        Returns:
            list[KnowledgeItem]: Copies of the candidates with ``score`` set,
                sorted by descending score (ties keep input order), at most
                ``limit`` long.
        """
        if not candidates or limit <= 0:
            return []

        scored = [
            candidate.model_copy(update={"score": self.score(candidate, query_terms, query)})
            for candidate in candidates
        ]
        # sorted() is stable with reverse=True, equal scores keep similarity order
        scored = sorted(scored, key=lambda item: item.score, reverse=True)
        return scored[:limit]

    def score(self, candidate: KnowledgeItem, query_terms: set[str], query: str = "") -> float:
        """Composite relevance score of a single candidate."""
        score = candidate.similarity or 0.0
        text = candidate.content.text or ""
        lowered_text = text.lower()

        if query_terms:
            matching_terms = [term for term in query_terms if term in lowered_text]
            score += TERM_MATCH_BOOST * len(matching_terms)

            if self.has_proximity_match(text, query_terms):
                score += PROXIMITY_BOOST

        lowered_query = query.lower()
        if lowered_query:
            title = candidate.content.get_title()
            if title and title.lower() in lowered_query:
                score += TITLE_MATCH_BOOST

            matching_tags = {tag.lower() for tag in candidate.content.get_tags() if tag.lower() in lowered_query}
            score += TAG_MATCH_BOOST * len(matching_tags)

        return score

    def has_proximity_match(self, text: str, terms: set[str]) -> bool:
        """True if any two term occurrences lie within ``PROXIMITY_WINDOW`` tokens.

        Every occurrence of every term counts, not just the first one.
        """
        if not text or not terms:
            return False

        words = text.lower().split()
        positions = sorted(
            idx
            for term in terms
            for idx, word in enumerate(words)
            if term in word
        )
        if len(positions) < 2:
            return False

        for current, following in zip(positions, positions[1:]):
            if following - current <= PROXIMITY_WINDOW:
                self.logging.debug("[Proximity Match] terms=%s positions=%d-%d", sorted(terms), current, following)
                return True
        return False
