"""Exceptions raised by harwise."""


class HarwiseError(Exception):
    """Base exception for all harwise errors."""

    pass


class CaptureLoadError(HarwiseError):
    """Raised when a HAR capture file cannot be read or parsed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class ConfigError(HarwiseError):
    """Raised when a test generation config is invalid."""

    pass


class ManifestError(HarwiseError):
    """Raised when a test manifest or one of its descriptors cannot be loaded."""

    pass


class AssertionFailure(HarwiseError):
    """Raised by the executor when a generated assertion does not hold."""

    pass


class GenerationError(HarwiseError):
    """Raised when exported test sources fail validation."""

    pass
