"""Storage layer exceptions."""


class PersistenceError(Exception):
    """A read or write against the relational store failed."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation
