"""Pipeline execution modules for the matching service."""

from .runner import run_matching_pipeline, MatchingPipelineResult, load_records

__all__ = ['run_matching_pipeline', 'MatchingPipelineResult', 'load_records']
