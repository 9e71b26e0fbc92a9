"""
Orchestrator component for render_crawler.

Sequences readiness waits and script injection on client-rendered pages before
handing them to the extractors.
"""
from .dynamic_content import DynamicContentOrchestrator, OrchestratorState

__all__ = [
    "DynamicContentOrchestrator",
    "OrchestratorState",
]
