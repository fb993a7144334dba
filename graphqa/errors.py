"""Error types raised by the graphqa package."""


class GraphQAError(Exception):
    """Base class for all graphqa errors."""


class DimensionMismatch(GraphQAError, ValueError):
    """Two embeddings of different length were compared."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected dimension {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class NotFound(GraphQAError, LookupError):
    """A label required by a direct lookup is not in the store."""

    def __init__(self, label: str):
        super().__init__(f"Label '{label}' not found in store")
        self.label = label


class FormatError(GraphQAError, ValueError):
    """A persisted store failed structural validation on load."""


class OracleProtocolError(GraphQAError):
    """The oracle kept answering with unparseable responses."""

    def __init__(self, operation: str, attempts: int, last_error: Exception = None):
        message = f"Failed to parse {operation} response after {attempts} attempts"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class ExtractionError(GraphQAError):
    """Text could not be extracted from a document."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Failed to process document '{path}': {cause}")
        self.path = path
        self.cause = cause
