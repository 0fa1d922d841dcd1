"""
Diagnostics over candidate pools.

Key responsibilities:
- Report which nodes are covered by at least one candidate.
- Count how many candidates compete for each node.
- Break candidate counts down by rule provenance and spec.
"""

from .report import CandidateReport, CoverageSummary, analyze_candidates, summarize_coverage

__all__ = [
    "CandidateReport",
    "CoverageSummary",
    "analyze_candidates",
    "summarize_coverage",
]
