"""
Security Checklist Engine - Core modules
"""

__version__ = "2.0"
__author__ = "Security Team"

__all__ = [
    'load_taxonomy',
    'load_pipeline_taxonomy',
    'load_standard',
    'query_controls',
    'search_requirements',
    'ScoringEngine',
    'InMemoryRecordStore',
]

from .standards.loader import load_taxonomy, load_pipeline_taxonomy, load_standard
from .query.engine import query_controls, search_requirements
from .scoring.engine import ScoringEngine
from .state.store import InMemoryRecordStore
