"""Root directory providers."""

from pathlib import Path
from typing import Iterable, List

from .config import get_config, MonitorConfig
from .interfaces import PathProvider
from .models import normalize_path


class ConfigPathProvider(PathProvider):
    """Roots taken from MonitorConfig.roots, de-duplicated, order kept."""

    def __init__(self, config: MonitorConfig | None = None):
        self.config = config or get_config()

    def get_paths(self) -> List[str]:
        return _unique(normalize_path(p) for p in self.config.roots)


class StaticPathProvider(PathProvider):
    """Fixed list of roots."""

    def __init__(self, roots: Iterable[str | Path]):
        self._roots = _unique(normalize_path(p) for p in roots)

    def get_paths(self) -> List[str]:
        return list(self._roots)


def _unique(paths: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for path in paths:
        if path and path not in seen:
            seen.add(path)
            result.append(path)
    return result
