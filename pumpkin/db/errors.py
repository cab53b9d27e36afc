class StoreError(Exception):
    """Base storage-layer error. Adapters raise only this family."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DocumentNotFound(StoreError):
    pass


class DocumentConflict(StoreError):
    pass


class InvalidDocument(StoreError):
    pass


class StoreUnavailable(StoreError):
    """The backing database failed or could not be reached."""
