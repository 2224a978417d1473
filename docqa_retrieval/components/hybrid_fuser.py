"""Weighted fusion of vector and keyword results."""

from collections import defaultdict
from typing import Dict, List, Optional

from docqa_retrieval.core.logging import get_logger
from docqa_retrieval.models.search import SearchResult

logger = get_logger(__name__)


class HybridFuser:
    """Combines two ranked lists by weighted, additive score per chunk.

    A chunk found by both searches gets ``vector_weight * vector_score +
    keyword_weight * keyword_score``; a chunk found by one gets only that
    term. Scores are not normalized before fusion.
    """

    def __init__(self, vector_weight: float = 0.7, keyword_weight: float = 0.3):
        if vector_weight < 0 or keyword_weight < 0:
            raise ValueError("fusion weights must be non-negative")
        self.vector_weight = vector_weight
        self.keyword_weight = keyword_weight

    def fuse(
        self,
        vector_results: List[SearchResult],
        keyword_results: List[SearchResult],
        limit: Optional[int] = None
    ) -> List[SearchResult]:
        """Fuse both lists, sort by fused score then chunk id, and truncate."""
        weighted_scores: Dict[str, float] = defaultdict(float)
        result_map: Dict[str, SearchResult] = {}

        for result in vector_results:
            result_map.setdefault(result.chunk_id, result)
            weighted_scores[result.chunk_id] += self.vector_weight * result.score

        for result in keyword_results:
            result_map.setdefault(result.chunk_id, result)
            weighted_scores[result.chunk_id] += self.keyword_weight * result.score

        sorted_ids = sorted(
            weighted_scores,
            key=lambda chunk_id: (-weighted_scores[chunk_id], chunk_id)
        )
        if limit is not None:
            sorted_ids = sorted_ids[:limit]

        logger.debug(
            f"Fused {len(vector_results)} vector and {len(keyword_results)} keyword "
            f"results into {len(weighted_scores)} unique chunks"
        )
        return [
            result_map[chunk_id].with_score(weighted_scores[chunk_id])
            for chunk_id in sorted_ids
        ]
