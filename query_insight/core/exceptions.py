class ConfigError(Exception):
    """Raised when config loading or validation fails."""


class ValidationError(Exception):
    """Raised when required call parameters (api url, token) are missing."""


class QueryExecutionError(Exception):
    """Raised when the data source cannot execute the read query."""

    def __init__(self, message: str, query: str | None = None):
        super().__init__(message)
        self.query = query
