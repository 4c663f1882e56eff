"""
Ledger error taxonomy.

Every engine failure is one of these. `code` is stable (used by the HTTP layer
and by API clients), `message` is meant for the operator, `context` carries the
references needed to render or act on it.
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    code = "ledger_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}


class ValidationError(LedgerError):
    """Malformed input: non-positive quantity, empty lines, same-location move, bad label."""

    code = "validation_error"


class NotFound(LedgerError):
    code = "not_found"

    def __init__(self, entity: str, key: Any, message: Optional[str] = None, **context: Any):
        super().__init__(message or f"{entity} {key} not found", entity=entity, key=str(key), **context)
        self.entity = entity
        self.key = key


class InsufficientStock(LedgerError):
    code = "insufficient_stock"

    def __init__(self, item: Any, location: Any, available: int, requested: int):
        super().__init__(
            f"insufficient quantity for {item} at {location}: available {available}, requested {requested}",
            item=str(item),
            location=str(location),
            available=int(available),
            requested=int(requested),
        )
        self.item = item
        self.location = location
        self.available = int(available)
        self.requested = int(requested)


class InvalidState(LedgerError):
    """A compensating change would drive a cell negative, or the target is in the wrong status."""

    code = "invalid_state"


class AlreadyUndone(LedgerError):
    code = "already_undone"


class PersistenceFailure(LedgerError):
    """The unit of work could not reach the store or could not commit."""

    code = "persistence_failure"


class QuantityOverflow(InvalidState):
    """An increment would push a cell past the largest quantity the store can hold."""

    def __init__(self, item: Any, location: Any, available: int, requested: int, limit: int):
        super().__init__(
            f"adding {requested} to {item} at {location} would exceed the maximum quantity {limit}: "
            f"available {available}",
            item=str(item),
            location=str(location),
            available=int(available),
            requested=int(requested),
            limit=int(limit),
        )
        self.item = item
        self.location = location
        self.available = int(available)
        self.requested = int(requested)
        self.limit = int(limit)
