"""
Candidate filtering and ranking for deck suggestions.

Candidate pool: free, color-identity-legal collection cards.
Relevance: scores the pool against a NeedSpecification and keeps the top.
"""

from deckmender.filtering.candidate_pool import (
    CandidatePool,
    CandidatePoolMetrics,
    build_candidate_pool,
    get_pool_metrics,
    is_color_identity_legal,
    reset_pool_metrics,
)
from deckmender.filtering.relevance import (
    ROLE_RULES,
    RoleRule,
    ScoredCandidate,
    score_and_filter,
    score_card,
    summarize_candidates,
)

__all__ = [
    # Candidate pool
    "CandidatePool",
    "CandidatePoolMetrics",
    "build_candidate_pool",
    "get_pool_metrics",
    "is_color_identity_legal",
    "reset_pool_metrics",
    # Relevance scoring
    "ROLE_RULES",
    "RoleRule",
    "ScoredCandidate",
    "score_and_filter",
    "score_card",
    "summarize_candidates",
]
