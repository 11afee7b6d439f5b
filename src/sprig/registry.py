"""Classification, instantiation and indexing of components."""

import inspect
from collections import defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from sprig.domain import ComponentDescriptor, ManagedInstance, Role
from sprig.errors import (
    AmbiguousCapabilityError,
    InstantiationError,
    NameCollisionError,
)
from sprig.log_config import get_logger
from sprig.markers import is_capability, is_primary, roles_of

__all__ = [
    "ComponentRegistry",
    "RegistrySnapshot",
    "describe",
    "inferred_name",
    "capabilities_of",
]

logger = get_logger(__name__)


def inferred_name(target: type) -> str:
    """Derive a component name from a class name by lower-casing its first letter.

    Example:
        >>> inferred_name(OrderService)  # Returns "orderService"
        >>> inferred_name(URLBuilder)    # Returns "uRLBuilder"
    """
    name = target.__name__
    return name[0].lower() + name[1:]


def describe(candidate: Any) -> Optional[ComponentDescriptor]:
    """Classify a candidate by its role marker.

    Returns:
        A descriptor if the candidate carries exactly one role marker, otherwise None.
    """
    if not inspect.isclass(candidate):
        return None

    roles = roles_of(candidate)
    if not roles:
        return None
    if len(roles) > 1:
        logger.warning(
            "candidate_has_multiple_roles",
            component=candidate.__qualname__,
            roles=sorted(role.value for role in roles),
        )
        return None

    role, declared_name = next(iter(roles.items()))
    return ComponentDescriptor(candidate, role, declared_name, is_primary(candidate))


def capabilities_of(component_type: type) -> frozenset:
    """The capability types in a class's MRO, excluding the class itself."""
    return frozenset(t for t in component_type.__mro__[1:] if is_capability(t))


@dataclass(frozen=True)
class RegistrySnapshot:
    """Read-only view of every index held by a :class:`ComponentRegistry`.

    Attributes:
        by_name: Managed instances keyed by component name.
        by_type: Managed instances keyed by concrete type, in registration order.
        by_capability: The implementer chosen for each capability type.
        implementers: Every implementer of each capability type, in registration order.
        failure_advice: Managed instances marked as failure advice.
    """

    by_name: Mapping[str, ManagedInstance]
    by_type: Mapping[type, ManagedInstance]
    by_capability: Mapping[type, ManagedInstance]
    implementers: Mapping[type, tuple[ManagedInstance, ...]]
    failure_advice: tuple[ManagedInstance, ...]


class ComponentRegistry:
    """Registry of constructed components, indexed by name, type and capability.

    When several components implement one capability, the first registered wins
    and a warning is logged, unless one of them is marked primary.
    """

    def __init__(self, allow_name_override: bool = False):
        self._allow_name_override = allow_name_override
        self._by_name: dict[str, ManagedInstance] = {}
        self._by_type: dict[type, ManagedInstance] = {}
        self._by_capability: dict[type, ManagedInstance] = {}
        self._implementers: dict[type, list[ManagedInstance]] = defaultdict(list)
        self._failure_advice: list[ManagedInstance] = []

    def register(self, candidate: Any) -> Optional[ManagedInstance]:
        """Instantiate and index a candidate if it carries exactly one role marker.

        Args:
            candidate: A class yielded by a discovery source.

        Returns:
            The managed instance, or None if the candidate is not a component.

        Raises:
            InstantiationError: If the component's constructor fails.
            NameCollisionError: If the name is taken and overriding is disabled.
            AmbiguousCapabilityError: If a second primary implementer of a capability appears.
        """
        descriptor = describe(candidate)
        if descriptor is None:
            return None
        return self.register_descriptor(descriptor)

    def register_descriptor(self, descriptor: ComponentDescriptor) -> ManagedInstance:
        component_type = descriptor.component_type
        name = descriptor.declared_name or inferred_name(component_type)
        self._check_name(name, component_type)

        try:
            instance = component_type()
        except Exception as e:
            raise InstantiationError(component_type, e) from e

        managed = ManagedInstance(name, component_type, descriptor.role, instance)
        self._by_name[name] = managed
        self._by_type[component_type] = managed
        self._index_capabilities(managed, descriptor.primary)

        if descriptor.role is Role.FAILURE_ADVICE:
            self._failure_advice.append(managed)

        logger.debug(
            "component_registered",
            name=name,
            component=component_type.__qualname__,
            role=descriptor.role.value,
        )
        return managed

    def _check_name(self, name: str, component_type: type):
        existing = self._by_name.get(name)
        if existing is None:
            return
        if not self._allow_name_override:
            raise NameCollisionError(
                f"Component name '{name}' of {component_type.__qualname__} "
                f"is already used by {existing.component_type.__qualname__}"
            )
        logger.warning(
            "component_name_overridden",
            name=name,
            previous=existing.component_type.__qualname__,
            component=component_type.__qualname__,
        )

    def _index_capabilities(self, managed: ManagedInstance, primary: bool):
        for capability in capabilities_of(managed.component_type):
            self._implementers[capability].append(managed)
            current = self._by_capability.get(capability)

            if current is None:
                self._by_capability[capability] = managed
                continue

            current_primary = is_primary(current.component_type)
            if primary and current_primary:
                raise AmbiguousCapabilityError(
                    f"Capability {capability.__qualname__} has more than one primary "
                    f"implementer: {current.component_type.__qualname__}, "
                    f"{managed.component_type.__qualname__}"
                )
            if primary:
                self._by_capability[capability] = managed
            elif not current_primary:
                logger.warning(
                    "capability_has_multiple_implementers",
                    capability=capability.__qualname__,
                    chosen=current.component_type.__qualname__,
                    ignored=managed.component_type.__qualname__,
                )

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def freeze(self) -> RegistrySnapshot:
        """Snapshot the indices so they can be shared without locking."""
        return RegistrySnapshot(
            MappingProxyType(dict(self._by_name)),
            MappingProxyType(dict(self._by_type)),
            MappingProxyType(dict(self._by_capability)),
            MappingProxyType(
                {capability: tuple(found) for capability, found in self._implementers.items()}
            ),
            tuple(self._failure_advice),
        )
