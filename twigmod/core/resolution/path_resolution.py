# twigmod/core/resolution/path_resolution.py
"""
Pure path algebra for template references.

A specifier is a template name as written in source: namespaced
("@ns/partials/card.twig"), relative ("./card.twig", "../layouts/base.twig")
or root-relative ("src/partials/card.twig"). Nothing in here touches the
filesystem, so every function is deterministic and side-effect free.
"""
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

PathLike = Union[str, Path]

RELATIVE_PREFIXES = ("./", "../")


def _normalize(path: str) -> Path:
    return Path(os.path.normpath(path))


def substitute_namespace(specifier: str, namespaces: Mapping[str, PathLike]) -> str:
    """Replaces a leading namespace prefix with its directory.

    Prefixes are tried in table order and the first one that matches on a
    "/" boundary wins; overlapping prefixes are not disambiguated.
    """
    for prefix, directory in namespaces.items():
        if specifier == prefix:
            return str(directory)
        if specifier.startswith(prefix + "/"):
            return str(directory).rstrip("/") + specifier[len(prefix):]
    return specifier


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith(RELATIVE_PREFIXES)


def resolve_specifier(
    specifier: str,
    base_dir: PathLike,
    namespaces: Mapping[str, PathLike],
    root: Optional[PathLike] = None,
) -> Path:
    """Turns a specifier into an absolute, normalized path.

    1. a known namespace prefix is replaced by its directory;
    2. "./" and "../" paths are joined onto base_dir;
    3. anything else is taken as already resolved, except that a bare
       relative path is anchored at root when one is given.
    """
    candidate = substitute_namespace(specifier, namespaces)
    if is_relative_specifier(candidate):
        return _normalize(os.path.join(str(base_dir), candidate))
    if root is not None and not os.path.isabs(candidate):
        return _normalize(os.path.join(str(root), candidate))
    return _normalize(candidate)


def _relative_posix(path: Path, directory: PathLike) -> Optional[str]:
    try:
        return path.relative_to(Path(directory)).as_posix()
    except ValueError:
        return None


def template_id_for(
    path: PathLike,
    namespaces: Mapping[str, PathLike],
    root: Optional[PathLike] = None,
) -> str:
    """Maps a resolved path back to the id the renderer will ask for.

    The templating library matches nested includes on this id, so it must
    be the same string whichever specifier was used to reach the file:
    the namespaced form when a namespace directory contains the path (first
    match in table order), else the root-relative path, else the absolute one.
    """
    path = _normalize(str(path))
    for prefix, directory in namespaces.items():
        relative = _relative_posix(path, directory)
        if relative is not None and relative != ".":
            return f"{prefix}/{relative}"
    if root is not None:
        relative = _relative_posix(path, root)
        if relative is not None and relative != ".":
            return relative
    return path.as_posix()


class PathResolver:
    """Binds a namespace table and a project root for repeated resolution."""

    def __init__(self, namespaces: Optional[Mapping[str, PathLike]] = None, root: Optional[PathLike] = None):
        self.namespaces: Dict[str, Path] = {name: Path(directory) for name, directory in (namespaces or {}).items()}
        self.root: Optional[Path] = Path(root) if root is not None else None

    @classmethod
    def from_config(cls, config) -> "PathResolver":
        return cls(config.namespaces, config.root)

    def resolve(self, specifier: str, base_dir: PathLike) -> Path:
        return resolve_specifier(specifier, base_dir, self.namespaces, self.root)

    def template_id(self, path: PathLike) -> str:
        return template_id_for(path, self.namespaces, self.root)

    def path_for_id(self, template_id: str) -> Path:
        # ids are never "./"-relative, so the base directory is irrelevant here.
        return self.resolve(template_id, self.root or Path(os.sep))

    def join(self, specifier: str, parent_id: Optional[str]) -> str:
        """Canonical id for `specifier` referenced from the template `parent_id`."""
        if parent_id is not None and is_relative_specifier(specifier):
            base_dir = self.path_for_id(parent_id).parent
        else:
            base_dir = self.root or Path(os.sep)
        return self.template_id(self.resolve(specifier, base_dir))
