import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import structlog

log = structlog.get_logger(__name__)

DEFAULT_EXTENSIONS = [".twig"]

# keys that survive into generated modules; everything else only matters at build time.
RENDER_OPTION_KEYS = (
    "root", "namespaces", "extensions",
    "autoescape", "strict_variables", "trim_blocks", "lstrip_blocks",
)

def normalize_namespace_prefix(name: str) -> str:
    # "project" and "@project" both mean the "@project/..." prefix.
    name = name.strip().rstrip("/")
    return name if name.startswith("@") else f"@{name}"

def _absolute(path: Any, base: Path) -> Path:
    # no symlink resolution: generated modules must keep the paths they were built with.
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return Path(os.path.normpath(candidate))

@dataclass
class TwigmodConfig:
    # holds all configuration parameters for a single run.
    root: Path = field(default_factory=Path.cwd)
    namespaces: Dict[str, Path] = field(default_factory=dict)
    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    autoescape: bool = False
    strict_variables: bool = False
    trim_blocks: bool = False
    lstrip_blocks: bool = False
    input_paths: List[Path] = field(default_factory=list)
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    no_ignore: bool = False
    hidden: bool = False
    follow_symlinks: bool = False
    output_dir: Optional[Path] = None

    def __post_init__(self):
        self.root = _absolute(self.root, Path.cwd())
        self.namespaces = {
            normalize_namespace_prefix(name): _absolute(directory, self.root)
            for name, directory in (self.namespaces or {}).items()
        }
        self.extensions = [ext if ext.startswith(".") else f".{ext}" for ext in self.extensions if ext]
        if not self.extensions:
            log.warning("no_template_extensions_configured_using_default", default=DEFAULT_EXTENSIONS)
            self.extensions = list(DEFAULT_EXTENSIONS)
        self.input_paths = [Path(p) for p in self.input_paths]
        if self.output_dir is not None:
            self.output_dir = _absolute(self.output_dir, self.root)

    @property
    def base_dir(self) -> Path:
        # discovery walks relative to the project root.
        return self.root

    def is_template(self, path: Path) -> bool:
        return any(path.name.endswith(ext) for ext in self.extensions)

    def to_options(self) -> Dict[str, Any]:
        """Serializable subset embedded into generated modules."""
        return {
            "root": self.root.as_posix(),
            "namespaces": {name: directory.as_posix() for name, directory in self.namespaces.items()},
            "extensions": list(self.extensions),
            "autoescape": self.autoescape,
            "strict_variables": self.strict_variables,
            "trim_blocks": self.trim_blocks,
            "lstrip_blocks": self.lstrip_blocks,
        }

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "TwigmodConfig":
        known = {key: value for key, value in options.items() if key in RENDER_OPTION_KEYS}
        unknown = sorted(set(options) - set(RENDER_OPTION_KEYS))
        if unknown:
            log.debug("ignoring_unknown_render_options", keys=unknown)
        return cls(**known)
