"""Service layer helpers."""

from .leaderboard import get_leaderboard, get_user_records, record_performance
from .matcher import TraversalCandidate, match_track
from .performance import PerformanceStats, extract_performance
from .processing import match_and_record, run_matching_job
from .segments import find_candidate_segments, get_segment

__all__ = [
    "PerformanceStats",
    "TraversalCandidate",
    "extract_performance",
    "find_candidate_segments",
    "get_leaderboard",
    "get_segment",
    "get_user_records",
    "match_and_record",
    "match_track",
    "record_performance",
    "run_matching_job",
]
