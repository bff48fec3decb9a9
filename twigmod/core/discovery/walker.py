# twigmod/core/discovery/walker.py
import os
from pathlib import Path
from typing import Iterator, List, Set
import structlog

from twigmod.config.settings import TwigmodConfig
from twigmod.core.discovery.pattern_matching import TemplatePathFilter

log = structlog.get_logger(__name__)

def resolve_seed_paths(config: TwigmodConfig) -> List[Path]:
    # absolute, existing starting points; defaults to the project root.
    seeds: List[Path] = []
    for raw_path in config.input_paths or [config.root]:
        candidate = Path(os.path.normpath(config.root / raw_path))
        if candidate.exists():
            seeds.append(candidate)
        else:
            log.warning("seed_path_not_found_skipped", path_str=str(raw_path))
    log.info("initial_seed_paths_resolved", count=len(seeds))
    return seeds

def discover_templates(config: TwigmodConfig) -> Iterator[Path]:
    """Yields template files under the configured input paths, in sorted walk order."""
    log.info("template_discovery_started", root=str(config.root))
    path_filter = TemplatePathFilter(config)
    yielded_files: Set[Path] = set()

    def candidates(seed_path: Path) -> Iterator[Path]:
        if seed_path.is_file():
            yield seed_path
            return
        for root, dirs, files in os.walk(str(seed_path), topdown=True, followlinks=config.follow_symlinks):
            dirs[:] = sorted(d for d in dirs if not path_filter.is_hidden(Path(root, d)))
            for file_name in sorted(files):
                yield Path(root, file_name)

    for seed_path in resolve_seed_paths(config):
        for file_path in candidates(seed_path):
            if file_path not in yielded_files and path_filter.accepts(file_path):
                yielded_files.add(file_path)
                yield file_path
