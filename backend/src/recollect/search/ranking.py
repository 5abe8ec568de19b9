"""Search result ranking with weighted Reciprocal Rank Fusion."""

from recollect.constants.search import (
    DEFAULT_VECTOR_WEIGHT,
    MIN_STEP_RATIO,
    RRF_K,
    SIMILARITY_FLOOR_RATIO,
)
from recollect.search.schemas import MatchType, SearchResult


def filter_by_similarity(
    results: list[SearchResult],
    floor_ratio: float = SIMILARITY_FLOOR_RATIO,
    step_ratio: float = MIN_STEP_RATIO,
) -> list[SearchResult]:
    """Cut a score-ordered vector result list where relevance falls off.

    Walks the list in order and stops at the first result scoring below
    floor_ratio of the top score or below step_ratio of the previous score.
    Lists of zero or one result are returned as is.

    Args:
        results: Vector results, best first.
        floor_ratio: Fraction of the top score a result must reach.
        step_ratio: Fraction of the previous score a result must reach.

    Returns:
        The surviving prefix of results.
    """
    if len(results) <= 1:
        return list(results)

    top_score = results[0].score
    kept = [results[0]]
    for result in results[1:]:
        previous = kept[-1].score
        if result.score < top_score * floor_ratio or result.score < previous * step_ratio:
            break
        kept.append(result)
    return kept


class RRFRanker:
    """Combines vector and keyword results using weighted RRF.

    Reciprocal Rank Fusion scores documents by their ranks in each list,
    ignoring the raw scores, which live on incompatible scales:

        score(doc) = w_v / (k + rank_v) + (1 - w_v) / (k + rank_k)

    Ranks are 1-based and a list the document is absent from contributes
    nothing. Documents found by both branches are reported as hybrid matches
    with the highlights of both.
    """

    def __init__(self, k: int = RRF_K) -> None:
        """Initialize RRF ranker.

        Args:
            k: Ranking constant (default 60, standard for RRF).
        """
        self._k = k

    def merge(
        self,
        vector_results: list[SearchResult],
        keyword_results: list[SearchResult],
        vector_weight: float = DEFAULT_VECTOR_WEIGHT,
        limit: int | None = None,
    ) -> list[SearchResult]:
        """Fuse two ranked lists.

        Args:
            vector_results: Results from vector search, best first.
            keyword_results: Results from keyword search, best first.
            vector_weight: Weight of the vector list; keyword gets the rest.
            limit: Optional cap on returned results.

        Returns:
            Fused results, highest score first. Ties are broken by
            (content_type, content_id) so the order is deterministic.
        """
        keyword_weight = 1.0 - vector_weight
        fused: dict[str, SearchResult] = {}

        for rank, result in enumerate(vector_results, start=1):
            key = result.document.key
            if key in fused:
                continue
            fused[key] = SearchResult(
                document=result.document,
                score=vector_weight / (self._k + rank),
                match_type=MatchType.VECTOR,
                highlights=list(result.highlights),
            )

        seen_keyword: set[str] = set()
        for rank, result in enumerate(keyword_results, start=1):
            key = result.document.key
            if key in seen_keyword:
                continue
            seen_keyword.add(key)
            contribution = keyword_weight / (self._k + rank)

            existing = fused.get(key)
            if existing is None:
                fused[key] = SearchResult(
                    document=result.document,
                    score=contribution,
                    match_type=MatchType.KEYWORD,
                    highlights=list(result.highlights),
                )
                continue

            existing.score += contribution
            existing.match_type = MatchType.HYBRID
            existing.highlights.extend(
                h for h in result.highlights if h not in existing.highlights
            )

        ranked = sorted(
            fused.values(),
            key=lambda r: (-r.score, r.document.content_type.value, r.document.content_id),
        )
        if limit is not None:
            ranked = ranked[:limit]
        return ranked
