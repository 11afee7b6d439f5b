"""High level entry points for building containers."""

from typing import Iterable, Optional

from sprig.container import Container, ContainerState
from sprig.discovery import DiscoverySource, PackageScanner, StaticCandidates
from sprig.errors import ContainerError, DiscoveryError
from sprig.failures import build_failure_table
from sprig.injector import Injector
from sprig.log_config import get_logger
from sprig.registry import ComponentRegistry
from sprig.settings import ContainerSettings, get_settings

__all__ = ["ContainerBuilder", "make_container", "make_container_from"]

logger = get_logger(__name__)


class ContainerBuilder:
    """Run the startup sequence: discover, register, inject, build the failure table.

    Each phase completes before the next begins. Any error moves the container
    to FAILED and is re-raised, so a partially wired container is never returned.
    """

    def __init__(self, source: DiscoverySource, settings: ContainerSettings):
        self._source = source
        self._settings = settings

    def build(self, root: Optional[str] = None) -> Container:
        container = Container()
        try:
            self._build(container, root)
        except ContainerError as e:
            self._fail(container, e)
            raise
        except Exception as e:
            self._fail(container, e)
            raise ContainerError(f"Container startup failed: {e!r}") from e
        return container

    def _build(self, container: Container, root: Optional[str]):
        container.advance(ContainerState.DISCOVERING)
        try:
            candidates = list(self._source.list_candidates(root))
        except DiscoveryError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Failed to list candidates under {root}: {e!r}") from e
        logger.debug("candidates_discovered", root=root, count=len(candidates))

        container.advance(ContainerState.REGISTERING)
        registry = ComponentRegistry(self._settings.allow_name_override)
        for candidate in candidates:
            registry.register(candidate)
        components = registry.freeze()

        container.advance(ContainerState.INJECTING)
        injected = Injector(components).inject_all()

        container.advance(ContainerState.BUILDING_FAILURE_TABLE)
        failures = build_failure_table(components.failure_advice)
        container.populate(components, failures)

        container.advance(ContainerState.READY)
        logger.info(
            "container_ready",
            components=len(components.by_name),
            injected=injected,
            failure_advice=len(components.failure_advice),
            failure_handlers=len(failures),
        )

    @staticmethod
    def _fail(container: Container, error: Exception):
        phase = container.state
        container.advance(ContainerState.FAILED)
        logger.error("container_startup_failed", phase=phase.name, error=str(error))


def make_container(
    root: Optional[str] = None,
    *,
    source: Optional[DiscoverySource] = None,
    settings: Optional[ContainerSettings] = None,
) -> Container:
    """Build a ready container from the components found under a package.

    Args:
        root: Dotted name of the package to scan. Defaults to the
            ``base_package`` setting.
        source: Discovery source to use instead of scanning packages.
        settings: Settings to use instead of those read from the environment.

    Returns:
        A container in the READY state.

    Raises:
        ContainerError: If any startup phase fails. The specific subclass
            names the phase: DiscoveryError, InstantiationError,
            MissingRequiredDependencyError, and so on.
    """
    settings = settings or get_settings()
    builder = ContainerBuilder(source or PackageScanner(), settings)
    return builder.build(root or settings.base_package)


def make_container_from(
    candidates: Iterable[type], settings: Optional[ContainerSettings] = None
) -> Container:
    """Build a ready container from an explicit list of candidate types."""
    return make_container(source=StaticCandidates(candidates), settings=settings)
