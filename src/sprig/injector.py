"""Injection of dependencies into constructed components.

Injection runs after every component has been constructed, so components may
depend on each other in both directions: by the time an injection point is
filled, its target already exists. Constructors never receive dependencies.
"""

import types
from typing import Annotated, Any, Optional, Union, get_args, get_origin, get_type_hints

from sprig.domain import InjectionPoint, ManagedInstance
from sprig.errors import ContainerError, MissingRequiredDependencyError
from sprig.log_config import get_logger
from sprig.markers import Autowired, is_capability
from sprig.registry import RegistrySnapshot

__all__ = ["Injector", "injection_points", "find_dependency"]

logger = get_logger(__name__)


def injection_points(owner: ManagedInstance) -> list[InjectionPoint]:
    """Find the ``Autowired`` attributes declared on a component's class and its bases.

    Example:
        >>> class OrderController:
        ...     orders: Annotated[OrderService, Autowired()]
        ...     audit: Annotated[Optional[AuditLog], Autowired(required=False)]
        >>> # Yields points for "orders" (OrderService, required) and
        >>> # "audit" (AuditLog, optional)
    """
    try:
        hints = get_type_hints(owner.component_type, include_extras=True)
    except Exception as e:
        raise ContainerError(
            f"Could not resolve annotations of {owner.component_type.__qualname__}: {e!r}"
        ) from e

    points = (
        _make_injection_point(owner, attribute, annotation)
        for attribute, annotation in hints.items()
    )
    return [point for point in points if point is not None]


def _make_injection_point(
    owner: ManagedInstance, attribute: str, annotation: Any
) -> Optional[InjectionPoint]:
    if get_origin(annotation) is not Annotated:
        return None

    base_type, *metadata = get_args(annotation)
    autowired = next((m for m in metadata if isinstance(m, Autowired)), None)
    if autowired is None:
        return None

    return InjectionPoint(owner, attribute, _strip_optional(base_type), autowired.required)


def _strip_optional(annotation: Any) -> Any:
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def find_dependency(components: RegistrySnapshot, dependency_type: Any) -> Optional[ManagedInstance]:
    """Look up the component satisfying a type.

    The exact type index is consulted first, then the capability index, and
    finally, for types that are not capabilities, the first registered
    component whose class is a subclass of the type. The last step is a fallback only: when several classes qualify, depend
    on an exact type or a capability with a single implementer instead.
    """
    found = components.by_type.get(dependency_type)
    if found is not None:
        return found

    # Every implementer of a capability is already indexed under it.
    if is_capability(dependency_type):
        return components.by_capability.get(dependency_type)

    if not isinstance(dependency_type, type):
        return None

    return next(
        (
            managed
            for component_type, managed in components.by_type.items()
            if issubclass(component_type, dependency_type)
        ),
        None,
    )


class Injector:
    """Fill the injection points of every managed instance."""

    def __init__(self, components: RegistrySnapshot):
        self._components = components

    def inject_all(self) -> int:
        """Inject dependencies into every registered component.

        Returns:
            The number of injection points filled.

        Raises:
            MissingRequiredDependencyError: If a required point has no candidate.
        """
        injected = 0
        for managed in self._components.by_type.values():
            for point in injection_points(managed):
                injected += self.inject(point)
        return injected

    def inject(self, point: InjectionPoint) -> bool:
        owner = point.owner
        dependency = find_dependency(self._components, point.dependency_type)

        if dependency is None:
            if point.required:
                raise MissingRequiredDependencyError(
                    owner.component_type.__qualname__, point.attribute, point.dependency_type
                )
            if not hasattr(owner.instance, point.attribute):
                setattr(owner.instance, point.attribute, None)
            logger.debug(
                "optional_dependency_missing",
                component=owner.name,
                attribute=point.attribute,
            )
            return False

        setattr(owner.instance, point.attribute, dependency.instance)
        logger.debug(
            "dependency_injected",
            component=owner.name,
            attribute=point.attribute,
            dependency=dependency.name,
        )
        return True
