class StoreError(Exception):
    """Raised by repositories when the backing store cannot serve a request."""


class OpenSessionConflict(StoreError):
    """The store rejected a write that would create a second open session."""
