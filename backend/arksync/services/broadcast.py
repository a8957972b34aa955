NAMESPACE = '/ws'


class Broadcaster:
    """Pushes authoritative snapshots, re-read from the store, to connected clients.

    Nothing here caches state: each call reads the store, so a broadcast that
    races a later write still carries the newest committed view.
    """

    def __init__(self, socketio, store, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.store = store
        self.namespace = namespace

    def teams_payload(self):
        return [t.to_dict() for t in self.store.list_all()]

    def global_payload(self):
        return self.store.get_global().to_dict()

    def broadcast_state(self) -> None:
        self.socketio.emit('stateUpdate', self.teams_payload(), namespace=self.namespace)

    def broadcast_global(self) -> None:
        self.socketio.emit('globalStateUpdate', self.global_payload(), namespace=self.namespace)

    def send_snapshot(self, sid: str) -> None:
        """Full snapshot to a single connection (used right after login)."""
        teams = self.teams_payload()
        global_state = self.global_payload()
        self.socketio.emit('stateUpdate', teams, to=sid, namespace=self.namespace)
        self.socketio.emit('globalStateUpdate', global_state, to=sid, namespace=self.namespace)
