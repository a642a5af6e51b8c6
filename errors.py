class ComposerError(Exception):
    """Base class for fatal document composition failures."""


class ConfigurationError(ComposerError):
    pass


class TemplateNotFoundError(ConfigurationError):
    """The template PDF is absent. A deployment problem, never retried."""


class TailFetchError(ComposerError):
    """Every attempt to download the tail document failed."""

    def __init__(self, url: str, attempts: int, last_error: BaseException | None) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) if last_error else "unknown error"
        super().__init__(f"Failed to fetch tail PDF after {attempts} attempt(s) from {url}: {reason}")


class MalformedTailError(ComposerError):
    """The tail payload downloaded fine but is not a readable PDF."""
