# twigmod/core/discovery/pattern_matching.py
from pathlib import Path
from typing import Dict, List, Optional
import pathspec
import structlog

from twigmod.config.settings import TwigmodConfig
from twigmod.exceptions import DiscoveryError

log = structlog.get_logger(__name__)

def compile_glob_patterns_to_spec(glob_patterns: List[str]) -> Optional[pathspec.PathSpec]:
    if not glob_patterns:
        return None
    try:
        return pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, glob_patterns)
    except (TypeError, ValueError) as e:
        raise DiscoveryError(f"invalid glob patterns {glob_patterns}: {e}") from e


class TemplatePathFilter:
    """Decides which files under the project root count as build inputs.

    Holds the compiled include/exclude globs and a per-directory cache of
    `.gitignore` specs, so one instance should serve one discovery run.
    """

    def __init__(self, config: TwigmodConfig):
        self.config = config
        self.include_spec = compile_glob_patterns_to_spec(self._include_patterns())
        self.exclude_spec = compile_glob_patterns_to_spec(config.exclude_patterns)
        self._gitignore_specs: Dict[Path, Optional[pathspec.PathSpec]] = {}

    def _include_patterns(self) -> List[str]:
        # a bare directory name means everything below it.
        patterns = [
            f"{p.rstrip('/')}/**/*" if (self.config.root / p).is_dir() else p
            for p in self.config.include_patterns
        ]
        return patterns or ["**/*"]

    def relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self.config.root)
        except ValueError:
            return Path(path.name)

    def is_hidden(self, path: Path) -> bool:
        if self.config.hidden:
            return False
        return any(part.startswith(".") and part not in (".", "..") for part in self.relative(path).parts)

    def _gitignore_spec(self, directory: Path) -> Optional[pathspec.PathSpec]:
        if directory not in self._gitignore_specs:
            gitignore_file = directory / ".gitignore"
            spec = None
            if gitignore_file.is_file():
                try:
                    with gitignore_file.open("r", encoding="utf-8", errors="ignore") as f_obj:
                        spec = pathspec.PathSpec.from_lines(pathspec.patterns.GitWildMatchPattern, f_obj)
                except (OSError, ValueError) as e:
                    log.warning("failed_to_parse_gitignore_file", path=str(gitignore_file), error=str(e))
            self._gitignore_specs[directory] = spec
        return self._gitignore_specs[directory]

    def is_gitignored(self, path: Path) -> bool:
        # every .gitignore from the file's directory up to the project root applies.
        if self.config.no_ignore:
            return False
        directory = path.parent
        while True:
            spec = self._gitignore_spec(directory)
            if spec and spec.match_file(path.relative_to(directory).as_posix()):
                return True
            if directory == self.config.root or directory.parent == directory:
                return False
            directory = directory.parent

    def matches_globs(self, path: Path) -> bool:
        path_str = self.relative(path).as_posix()
        if not self.include_spec.match_file(path_str):
            return False
        return not (self.exclude_spec and self.exclude_spec.match_file(path_str))

    def accepts(self, path: Path) -> bool:
        if not self.config.is_template(path) or self.is_hidden(path):
            return False
        if self.is_gitignored(path):
            log.debug("template_gitignored", path=str(path))
            return False
        return self.matches_globs(path)
