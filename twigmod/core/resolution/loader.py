# twigmod/core/resolution/loader.py
from pathlib import Path
from typing import Optional
import structlog

from twigmod.exceptions import DependencyLoadError
from twigmod.util import strip_utf8_bom

log = structlog.get_logger(__name__)


def read_template_source(path: Path, encoding: str = "utf-8") -> str:
    # reads raw bytes so a BOM never leaks into the rendered output.
    return strip_utf8_bom(path.read_bytes()).decode(encoding)


class DependencyLoader:
    """Reads dependency templates, turning I/O failures into DependencyLoadError."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def load(self, path: Path, specifier: Optional[str] = None) -> str:
        try:
            content = read_template_source(path, self.encoding)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            # ValueError: a name the OS cannot represent, e.g. one with a NUL byte.
            log.error("dependency_load_failed", path=str(path), specifier=specifier, error=str(e))
            raise DependencyLoadError(specifier or str(path), path, e) from e
        log.debug("dependency_loaded", path=str(path), size=len(content))
        return content

    @staticmethod
    def is_empty(content: str) -> bool:
        return not content.strip()
