import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

OBSERVER_ROLE = 'observer'
OBSERVER_ROOM = 'observer'


def team_room(team_id: str) -> str:
    return f"team:{team_id}"


@dataclass(frozen=True)
class Session:
    sid: str
    role: str  # 'team' or 'observer'
    team_id: Optional[str] = None

    @property
    def is_observer(self) -> bool:
        return self.role == OBSERVER_ROLE

    @property
    def room(self) -> str:
        return OBSERVER_ROOM if self.is_observer else team_room(self.team_id)


class SessionRegistry:
    """Maps live connection ids to their authenticated identity."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}

    def register(self, session: Session) -> Optional[Session]:
        """Store a session, returning the one it replaces on re-login (if any)."""
        with self._lock:
            previous = self._sessions.get(session.sid)
            self._sessions[session.sid] = session
            return previous

    def get(self, sid: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(sid)

    def remove(self, sid: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.pop(sid, None)

    def sids_in(self, room: str) -> List[str]:
        with self._lock:
            return [s.sid for s in self._sessions.values() if s.room == room]

    def __len__(self):
        with self._lock:
            return len(self._sessions)
