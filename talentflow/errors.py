from __future__ import annotations


class TalentFlowError(RuntimeError):
    pass


class TransientFailure(TalentFlowError):
    """Simulated network fault. Retriable; the wrapped write never ran."""

    def __init__(self, operation: str = "request") -> None:
        super().__init__(f"Network error during {operation}")
        self.operation = operation


class NotFound(TalentFlowError):
    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"{collection} record not found: {key}")
        self.collection = collection
        self.key = key


class DuplicateKey(TalentFlowError):
    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"{collection} record already exists: {key}")
        self.collection = collection
        self.key = key


class ValidationError(TalentFlowError, ValueError):
    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class MutationInFlight(TalentFlowError):
    def __init__(self, targets: frozenset[str] | set[str]) -> None:
        names = ", ".join(sorted(targets))
        super().__init__(f"A speculative mutation is already in flight for: {names}")
        self.targets = frozenset(targets)


class StorageUnavailable(TalentFlowError):
    pass


class SchemaVersionError(TalentFlowError):
    pass
