# twigmod/core/resolution/graph.py
"""
Dependency graph builder.

Starting from the entry template's tokens, every statically named template
is resolved, loaded, parsed and walked in turn, depth first: a dependency's
own dependencies are recorded before the walk returns to its siblings. The
visited set is keyed by resolved absolute path and lives for one `build()`
call only, so repeated or cyclic references produce one record each and
separate compilations never share state.

Failure policy:
  * computed template names are skipped silently (walker);
  * an empty dependency is skipped with a warning;
  * a dependency that fails to parse is logged and its subtree abandoned;
  * a dependency that cannot be read aborts the pass (DependencyLoadError),
    except for `include ... ignore missing` targets that do not exist.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Set

from jinja2 import TemplateError
import structlog

from twigmod.core.templating.tokens import Token
from twigmod.exceptions import DependencyLoadError

from .loader import DependencyLoader
from .path_resolution import PathResolver
from .walker import TemplateReference, walk_tokens

log = structlog.get_logger(__name__)

# (source, template id, path) -> tokens
TokenParser = Callable[[str, str, Path], List[Token]]


@dataclass
class DependencyRecord:
    specifier: str  # as written in the referring template
    path: Path
    template_id: str
    source: str
    tokens: List[Token] = field(repr=False)
    referrer: Optional[Path] = None
    lineno: int = 0


@dataclass
class SkippedDependency:
    specifier: str
    path: Path
    reason: str  # "empty", "missing" or "error"
    detail: str = ""
    referrer: Optional[Path] = None


@dataclass
class DependencyGraph:
    entry_path: Optional[Path]
    records: List[DependencyRecord] = field(default_factory=list)
    skipped: List[SkippedDependency] = field(default_factory=list)
    visited: Set[Path] = field(default_factory=set)

    @property
    def paths(self) -> List[Path]:
        return [record.path for record in self.records]

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


class DependencyGraphBuilder:
    """Resolves, loads and walks template references into a DependencyGraph."""

    def __init__(self, resolver: PathResolver, parse: TokenParser, loader: Optional[DependencyLoader] = None):
        self.resolver = resolver
        self.parse = parse
        self.loader = loader or DependencyLoader()

    def build(self, entry_tokens: List[Token], base_dir: Path, entry_path: Optional[Path] = None) -> DependencyGraph:
        graph = DependencyGraph(entry_path=entry_path)
        if entry_path is not None:
            # the entry registers itself; a cycle back to it is not a dependency.
            graph.visited.add(entry_path)
        log.info("dependency_resolution_started", entry=str(entry_path) if entry_path else None)
        self._collect(entry_tokens, base_dir, entry_path, graph)
        log.info(
            "dependency_resolution_complete",
            entry=str(entry_path) if entry_path else None,
            dependencies=len(graph.records),
            skipped=len(graph.skipped),
        )
        return graph

    def _collect(self, tokens: List[Token], base_dir: Path, referrer: Optional[Path], graph: DependencyGraph) -> None:
        for reference in walk_tokens(tokens):
            path = self.resolver.resolve(reference.specifier, base_dir)
            if path in graph.visited:
                log.debug("dependency_already_visited", specifier=reference.specifier, path=str(path))
                continue
            graph.visited.add(path)

            record = self._load_record(reference, path, referrer, graph)
            if record is None:
                continue
            graph.records.append(record)
            log.debug(
                "dependency_recorded",
                specifier=reference.specifier,
                template=record.template_id,
                position=len(graph.records) - 1,
            )
            self._collect(record.tokens, path.parent, path, graph)

    def _load_record(
        self,
        reference: TemplateReference,
        path: Path,
        referrer: Optional[Path],
        graph: DependencyGraph,
    ) -> Optional[DependencyRecord]:
        try:
            source = self.loader.load(path, reference.specifier)
        except DependencyLoadError as e:
            if reference.optional and isinstance(e.cause, FileNotFoundError):
                log.warning("optional_dependency_missing", specifier=reference.specifier, path=str(path))
                graph.skipped.append(SkippedDependency(reference.specifier, path, "missing", str(e.cause), referrer))
                return None
            raise e.with_context(referrer, reference.lineno)

        if self.loader.is_empty(source):
            log.warning("empty_dependency_skipped", specifier=reference.specifier, path=str(path))
            graph.skipped.append(SkippedDependency(reference.specifier, path, "empty", "", referrer))
            return None

        template_id = self.resolver.template_id(path)
        try:
            tokens = self.parse(source, template_id, path)
        except TemplateError as e:
            # isolated: only this dependency's subtree is abandoned.
            log.error(
                "dependency_processing_failed",
                specifier=reference.specifier,
                path=str(path),
                referrer=str(referrer) if referrer else None,
                error=str(e),
            )
            graph.skipped.append(SkippedDependency(reference.specifier, path, "error", str(e), referrer))
            return None

        return DependencyRecord(
            specifier=reference.specifier,
            path=path,
            template_id=template_id,
            source=source,
            tokens=tokens,
            referrer=referrer,
            lineno=reference.lineno,
        )
