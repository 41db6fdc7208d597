"""Merge generated file sets and external scaffolding into one archive."""
import logging
import zipfile
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from apiforge.core.generator import GenerationError
from apiforge.models.files import ArchiveManifest, FileSet

logger = logging.getLogger(__name__)

LAYOUTS = ('auto', 'flat', 'prefixed')

# Fixed entry timestamp so identical manifests produce identical archives
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
SCAFFOLDING = 'scaffolding'


class PathConflictError(GenerationError):
    """Raised when two sources claim the same archive path."""

    def __init__(self, path: str, first: str, second: str):
        super().__init__(f"Path conflict at '{path}' between {first} and {second}")
        self.path = path
        self.sources = (first, second)


def target_directory(target: str) -> str:
    """``java:spring-boot`` -> ``java-spring-boot``."""
    return target.strip().lower().replace(':', '-')


def _normalize(path: str) -> str:
    normalized = path.replace('\\', '/').strip().lstrip('/')
    if not normalized or any(part == '..' for part in normalized.split('/')):
        raise GenerationError(f"Invalid archive path: '{path}'")
    return normalized


def _add(contents: Dict[str, bytes], sources: Dict[str, str],
         path: str, data: bytes, origin: str) -> None:
    path = _normalize(path)
    if path in contents:
        raise PathConflictError(path, sources[path], origin)
    contents[path] = data
    sources[path] = origin


def assemble(
    file_sets: Mapping[str, FileSet],
    scaffolding: Optional[Mapping[str, Union[str, bytes]]] = None,
    layout: str = 'auto',
    target_count: Optional[int] = None,
) -> ArchiveManifest:
    """Build the archive manifest for one request.

    With ``layout='auto'`` a single target sits at the archive root and
    several targets are each placed under their own directory. Pass the
    number of requested targets as ``target_count`` so a failed target does
    not move the survivors to the root. Scaffolding paths are taken verbatim.

    Args:
        file_sets: Target identifier -> FileSet
        scaffolding: Externally supplied files, path -> content
        layout: 'auto', 'flat' or 'prefixed'
        target_count: Requested targets; defaults to the number of file sets

    Returns:
        ArchiveManifest with sorted paths

    Raises:
        PathConflictError: If generated and external content share a path
        ValueError: If the layout is unknown
    """
    if layout not in LAYOUTS:
        raise ValueError(f"Unknown layout '{layout}'. Expected one of: {', '.join(LAYOUTS)}")

    if target_count is None:
        target_count = len(file_sets)
    prefixed = layout == 'prefixed' or (layout == 'auto' and target_count > 1)

    contents: Dict[str, bytes] = {}
    sources: Dict[str, str] = {}
    for target, file_set in file_sets.items():
        prefix = target_directory(target) + '/' if prefixed else ''
        for path in file_set.paths:
            _add(contents, sources, prefix + path, file_set.files[path], target)

    for path, data in sorted((scaffolding or {}).items()):
        if isinstance(data, str):
            data = data.encode('utf-8')
        _add(contents, sources, path, data, SCAFFOLDING)

    paths = sorted(contents)
    logger.info("Assembled %d files from %d targets", len(paths), len(file_sets))
    return ArchiveManifest(paths=paths, contents=contents, sources=sources)


def load_scaffolding(directory: Union[str, Path]) -> Dict[str, bytes]:
    """Read every file under ``directory`` keyed by its relative POSIX path."""
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Scaffolding directory not found: {directory}")
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob('*'))
        if path.is_file()
    }


def write_zip(
    manifest: ArchiveManifest,
    destination: Union[str, Path],
    root: Optional[str] = None,
) -> Path:
    """Write the manifest as a deterministic ZIP archive.

    Entries follow manifest order and carry a fixed timestamp, so the same
    manifest always yields the same bytes.

    Args:
        manifest: Assembled manifest
        destination: Output file path
        root: Optional directory name every entry is nested under

    Returns:
        Path of the written archive
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    prefix = _normalize(root).rstrip('/') + '/' if root else ''

    with zipfile.ZipFile(destination, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for path in manifest.paths:
            info = zipfile.ZipInfo(prefix + path, date_time=ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            archive.writestr(info, manifest.contents[path])

    logger.info("Wrote %d entries to %s", len(manifest), destination)
    return destination
