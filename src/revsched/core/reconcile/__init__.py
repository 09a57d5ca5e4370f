"""Two-run reconciliation and agreement scoring."""

from .similarity import (
    clamp01,
    tokenize,
    jaccard_tokens,
    numeric_similarity,
    date_similarity,
    enum_similarity,
    tiers_similarity,
    schedule_similarity,
)
from .agreement import (
    AgreementReport,
    AgreementSummary,
    ItemAgreement,
    apply_agreement,
    compute_agreement,
    key_completeness_penalty,
)

__all__ = [
    # Similarity
    "clamp01",
    "tokenize",
    "jaccard_tokens",
    "numeric_similarity",
    "date_similarity",
    "enum_similarity",
    "tiers_similarity",
    "schedule_similarity",
    # Agreement
    "AgreementReport",
    "AgreementSummary",
    "ItemAgreement",
    "apply_agreement",
    "compute_agreement",
    "key_completeness_penalty",
]
