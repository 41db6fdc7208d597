"""In-memory file sets and archive manifests."""
from typing import Dict, List

from pydantic import BaseModel, ConfigDict


class FileSet(BaseModel):
    """Generated files for one target, keyed by relative path."""

    model_config = ConfigDict(frozen=True)

    target: str
    files: Dict[str, bytes] = {}

    @property
    def paths(self) -> List[str]:
        return sorted(self.files)

    def text(self, path: str) -> str:
        """Decode one file as UTF-8."""
        return self.files[path].decode("utf-8")


class ArchiveManifest(BaseModel):
    """Ordered path list plus the content each path maps to."""

    model_config = ConfigDict(frozen=True)

    paths: List[str]
    contents: Dict[str, bytes]
    sources: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self.paths)
