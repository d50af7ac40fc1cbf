"""Error types raised by the enrichment pipeline."""


class EnrichmentError(Exception):
    """Base class for enrichment failures."""


class InputValidationError(EnrichmentError):
    """Raised when a request cannot be resolved because its input is invalid."""


class ProviderError(EnrichmentError):
    """Raised inside a provider resolver; never escapes the resolver."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderTimeout(ProviderError):
    """Provider call did not finish before its deadline."""


class ProviderHTTPError(ProviderError):
    """Provider responded with an HTTP error or the transport failed."""

    def __init__(
        self, provider: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(provider, message)
        self.status_code = status_code


class ProviderParseError(ProviderError):
    """Provider payload could not be mapped to the canonical shape."""


class ResolutionExhausted(EnrichmentError):
    """No provider, including the estimator, produced a result."""
