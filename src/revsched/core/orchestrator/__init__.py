"""End-to-end extraction pipeline."""

from .runner import (
    ExtractionPayload,
    PayloadError,
    PipelineResult,
    PipelineRunner,
    RerunDecision,
    decide_rerun,
    parse_extraction_payload,
    process_extraction,
)

__all__ = [
    "ExtractionPayload",
    "PayloadError",
    "PipelineResult",
    "PipelineRunner",
    "RerunDecision",
    "decide_rerun",
    "parse_extraction_payload",
    "process_extraction",
]
