"""Session state and orchestration of test/install runs."""

from .orchestrator import RunReport, SessionOrchestrator, SessionState
from .store import JsonFileSessionStore, MemorySessionStore, ProjectSession, SessionStore

__all__ = [
    "RunReport",
    "SessionOrchestrator",
    "SessionState",
    "JsonFileSessionStore",
    "MemorySessionStore",
    "ProjectSession",
    "SessionStore",
]
