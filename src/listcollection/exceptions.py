from __future__ import annotations


class UnsupportedOperationError(TypeError):
    """Raised when an operation cannot keep a collection's keys sequential.

    The operation is rejected before it does any work, so the receiver is
    left exactly as it was.

    Attributes:
        operation: Name of the rejected method (e.g. ``"flip"``)
        collection_name: Name of the collection type that rejected it
    """

    def __init__(self, operation: str, collection_name: str, detail: str | None = None) -> None:
        self.operation = operation
        self.collection_name = collection_name
        subject = f"{operation}() {detail}" if detail else f"{operation}()"
        super().__init__(f"{subject} is not supported on {collection_name} because it produces associative keys.")
