"""
Engine error types.

Kept in a separate module so the API layer and tests can import the same
exception classes without pulling in the engine modules.
"""


class MapaDecisoesError(Exception):
    """Base exception for engine errors"""
    pass


class InvalidFilterError(MapaDecisoesError):
    """Malformed filter or scope input on a read path"""
    pass


class ScopeNotFoundError(MapaDecisoesError):
    """Requested node does not exist inside the tenant+instance scope"""
    pass


class BatchTooLargeError(MapaDecisoesError):
    """Import batch exceeds the configured row cap"""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Import batch has {size} rows, limit is {limit}")
        self.size = size
        self.limit = limit


class RowError(MapaDecisoesError):
    """Row-level ingest failure. Collected per row, never raised out of a batch."""
    pass


class RowValidationError(RowError):
    """Required ingest field is missing"""
    pass


class CourtResolutionError(RowError):
    """No court in scope matches the row"""
    pass
