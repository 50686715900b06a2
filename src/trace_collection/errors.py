"""
Exceptions raised by the span query engine.
"""


class SpanQueryError(Exception):
    """A backend query failed; carries the name of the failed operation."""

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause


class OperationCancelled(Exception):
    """The caller cancelled a collection or aggregation in progress."""
