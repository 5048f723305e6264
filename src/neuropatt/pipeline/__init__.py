"""Pipeline modules.

- orchestrator: Main pipeline controller and ``analyze_recording``
- pattern_loop: Per-trial pattern extraction with vocabulary checks
- transitions: Transition rates, fractional change and significance tests
- results: Final result record
- progress: Progress reporting sinks
- interfaces: Collaborator protocols
"""

from neuropatt.pipeline.orchestrator import PatternAnalysisPipeline, analyze_recording, setup_logging
from neuropatt.pipeline.pattern_loop import PatternCollection, extract_patterns
from neuropatt.pipeline.transitions import TransitionStatistics, analyze_transitions
from neuropatt.pipeline.results import PatternAnalysisResult
from neuropatt.pipeline.progress import LoggingProgressSink, CallbackProgressSink, CompositeProgressSink

__all__ = [
    "PatternAnalysisPipeline",
    "analyze_recording",
    "setup_logging",
    "PatternCollection",
    "extract_patterns",
    "TransitionStatistics",
    "analyze_transitions",
    "PatternAnalysisResult",
    "LoggingProgressSink",
    "CallbackProgressSink",
    "CompositeProgressSink",
]
