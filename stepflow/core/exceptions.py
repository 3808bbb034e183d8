class ConfigError(Exception):
    """Raised when config loading or validation fails."""


class ExecutableMismatchError(TypeError):
    """Raised when a step executor is handed an executable of the other kind."""


class ProviderUnavailableError(RuntimeError):
    """Raised when no invocation backend is currently eligible."""


class AllProvidersFailedError(RuntimeError):
    """Raised when every eligible invocation backend failed. The last error is chained as __cause__."""

    def __init__(self, message: str, attempted: list[str] | None = None):
        super().__init__(message)
        self.attempted = list(attempted or [])


class StructuredOutputError(ValueError):
    """Raised when a model response cannot be parsed into the requested structure."""
