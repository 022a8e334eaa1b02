# Ordered list of root directories used to resolve relative library paths

import os
from pathlib import Path
from typing import Iterable, Iterator, List, Union

PathLike = Union[str, Path]


class FileSearchPath:
    """
    Resolves relative paths against an ordered list of roots.

    The first root holding an existing candidate wins. Paths that cannot be
    found anywhere are returned unchanged.
    """

    def __init__(self, paths: Iterable[PathLike] = ()):
        self._paths: List[Path] = []
        for path in paths:
            self.append(path)

    @classmethod
    def from_string(cls, text: str, sep: str = os.pathsep) -> 'FileSearchPath':
        return cls(p for p in text.split(sep) if p.strip())

    def append(self, path: PathLike):
        path = Path(path)
        if path not in self._paths:
            self._paths.append(path)

    def prepend(self, path: PathLike):
        path = Path(path)
        if path in self._paths:
            self._paths.remove(path)
        self._paths.insert(0, path)

    def find(self, path: PathLike) -> Path:
        """Returns the first existing root/path, or path itself."""
        path = Path(path)
        if path.is_absolute():
            return path
        for root in self._paths:
            candidate = root / path
            if candidate.exists():
                return candidate
        return path

    def find_all(self, path: PathLike) -> List[Path]:
        """Returns every existing root/path, in search order."""
        path = Path(path)
        if path.is_absolute():
            return [path] if path.exists() else []
        return [root / path for root in self._paths if (root / path).exists()]

    def as_string(self, sep: str = os.pathsep) -> str:
        return sep.join(str(p) for p in self._paths)

    def __iter__(self) -> Iterator[Path]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __bool__(self) -> bool:
        return bool(self._paths)

    def __repr__(self):
        return f"FileSearchPath({self.as_string()!r})"
