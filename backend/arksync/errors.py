class SyncError(Exception):
    """Base class for request failures reported back to a single connection."""

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class AuthenticationFailed(SyncError):
    pass


class NotAuthorized(SyncError):
    pass


class NotFound(SyncError):
    pass


class TeamNotFound(NotFound):
    def __init__(self, team_id: str):
        self.team_id = team_id
        super().__init__(f"Team {team_id!r} does not exist")


class StoreUnavailable(SyncError):
    pass


class InvalidRequest(SyncError):
    pass
