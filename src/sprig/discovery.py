"""Sources of candidate types for the container.

A discovery source only has to yield every candidate class under a root, in
the same order each time it is asked. Whether a candidate is a component is
decided later by the registry.
"""

import importlib
import inspect
import pkgutil
from types import ModuleType
from typing import Iterable, Iterator, Optional, Protocol

from sprig.errors import DiscoveryError
from sprig.log_config import get_logger

__all__ = ["DiscoverySource", "PackageScanner", "StaticCandidates"]

logger = get_logger(__name__)


class DiscoverySource(Protocol):
    def list_candidates(self, root: Optional[str]) -> Iterable[type]:
        """Yield every candidate type found under ``root``."""
        ...


class PackageScanner:
    """Import every module under a package and yield the classes defined there.

    Modules are visited in name order and classes within a module in name order,
    so the same package always produces the same candidate sequence. Classes a
    module merely imports are skipped; they are yielded by the module defining them.
    """

    def list_candidates(self, root: Optional[str]) -> Iterator[type]:
        if not root:
            raise DiscoveryError("No root package given to scan")

        for module in self._import_modules(root):
            for _, member in sorted(vars(module).items()):
                if inspect.isclass(member) and member.__module__ == module.__name__:
                    yield member

    def _import_modules(self, root: str) -> list[ModuleType]:
        package = _import(root)
        modules = [package]

        search_path = getattr(package, "__path__", None)
        if search_path is None:
            return modules

        def on_error(name: str) -> None:
            raise DiscoveryError(f"Failed to import package {name} while scanning {root}")

        names = sorted(
            name
            for _, name, _ in pkgutil.walk_packages(
                search_path, prefix=f"{root}.", onerror=on_error
            )
        )
        modules.extend(_import(name) for name in names)
        logger.debug("package_scanned", root=root, modules=len(modules))
        return modules


def _import(name: str) -> ModuleType:
    try:
        return importlib.import_module(name)
    except Exception as e:
        raise DiscoveryError(f"Failed to import module {name}: {e!r}") from e


class StaticCandidates:
    """A fixed list of candidate types, e.g. a manifest assembled at build time.

    The root argument is ignored; the list is returned as given.
    """

    def __init__(self, candidates: Iterable[type]):
        self._candidates = tuple(candidates)

    def list_candidates(self, root: Optional[str] = None) -> Iterator[type]:
        return iter(self._candidates)
