from pagestore.session.autosave import ContentAutosaver
from pagestore.session.coordinator import SessionCoordinator
from pagestore.session.state import ActiveFileStatus, SessionSnapshot, SessionState, ViewStatus

__all__ = [
    "ActiveFileStatus",
    "ContentAutosaver",
    "SessionCoordinator",
    "SessionSnapshot",
    "SessionState",
    "ViewStatus",
]
