from pathlib import Path
from typing import Optional


class TwigmodError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(TwigmodError):
    # errors related to configuration.
    pass

class DiscoveryError(TwigmodError):
    # errors during template file discovery.
    pass

class TemplateCompileError(TwigmodError):
    # the entry template itself could not be parsed.
    pass

class TemplateRegistrationError(TwigmodError):
    # two different files claimed the same template id in one registry.
    pass

class OutputError(TwigmodError):
    # errors while writing generated modules.
    pass


class DependencyLoadError(TwigmodError):
    """A referenced template could not be read.

    Fatal for the compilation pass that hit it. Carries the specifier as
    written in the source, the path it resolved to and the underlying cause,
    plus the referring template and line once the graph builder knows them.
    """

    def __init__(
        self,
        specifier: str,
        path: Path,
        cause: Exception,
        referrer: Optional[Path] = None,
        lineno: Optional[int] = None,
    ):
        self.specifier = specifier
        self.path = path
        self.cause = cause
        self.referrer = referrer
        self.lineno = lineno
        super().__init__(self._format())

    def with_context(self, referrer: Optional[Path], lineno: Optional[int]) -> "DependencyLoadError":
        self.referrer = referrer
        self.lineno = lineno
        self.args = (self._format(),)
        return self

    def _format(self) -> str:
        message = f"failed to load template '{self.specifier}' (resolved to {self.path}): {self.cause}"
        if self.referrer is not None:
            location = f"{self.referrer}:{self.lineno}" if self.lineno else str(self.referrer)
            message += f" [referenced from {location}]"
        return message
