"""
Email analysis package: shared models, analyzers and the processing pipeline.
"""

from .models import (
    AggregatedAnalysis,
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisResult,
    AnalysisSuccess,
    BatchOptions,
    BatchResult,
    Email,
    UserContext,
)

__all__ = [
    'AggregatedAnalysis',
    'AnalysisFailure',
    'AnalysisOutcome',
    'AnalysisResult',
    'AnalysisSuccess',
    'BatchOptions',
    'BatchResult',
    'Email',
    'UserContext',
]
