"""The container facade handed to the rest of the application.

A container is built once at startup and moves through its lifecycle states
in one direction only. Once ready, every index it holds is read-only and may
be shared freely between threads.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, TypeVar, Union

from sprig.domain import FailureHandlerEntry, ManagedInstance, Role
from sprig.errors import ContainerStateError
from sprig.failures import FailureDispatchTable
from sprig.injector import find_dependency
from sprig.registry import RegistrySnapshot

__all__ = ["Container", "ContainerState", "ComponentKey"]

T = TypeVar("T")

ComponentKey = Union[str, type]
"""Key used to look up components in a Container, either a name or a type."""


class ContainerState(Enum):
    UNINITIALIZED = 0
    DISCOVERING = 1
    REGISTERING = 2
    INJECTING = 3
    BUILDING_FAILURE_TABLE = 4
    READY = 5
    FAILED = 6


_TERMINAL = (ContainerState.READY, ContainerState.FAILED)


class Container:
    """Lookup of managed components and failure handlers.

    Lookup misses return None; only :meth:`__getitem__` raises ``KeyError``, in
    the manner of a mapping.

    Example:
        >>> container = make_container("marketplace")
        >>> container.get_by_name("orderService")
        >>> container.get_by_type(PaymentGateway)
        >>> container.resolve_failure_handler(ValueError)
    """

    def __init__(self):
        self._state = ContainerState.UNINITIALIZED
        self._components: Optional[RegistrySnapshot] = None
        self._failures: Optional[FailureDispatchTable] = None

    @property
    def state(self) -> ContainerState:
        return self._state

    def advance(self, state: ContainerState):
        """Move to a later lifecycle state.

        Raises:
            ContainerStateError: If the move is not strictly forward, or the
                container has already reached a terminal state.
        """
        if self._state in _TERMINAL:
            raise ContainerStateError(f"Container is already {self._state.name}")
        if state is not ContainerState.FAILED and state.value <= self._state.value:
            raise ContainerStateError(
                f"Cannot move container from {self._state.name} to {state.name}"
            )
        if state is ContainerState.READY and (self._components is None or self._failures is None):
            raise ContainerStateError("Container cannot be ready before it is populated")
        self._state = state

    def populate(self, components: RegistrySnapshot, failures: FailureDispatchTable):
        if self._state is not ContainerState.BUILDING_FAILURE_TABLE:
            raise ContainerStateError(f"Cannot populate container while {self._state.name}")
        self._components = components
        self._failures = failures

    def _ready(self) -> RegistrySnapshot:
        if self._state is not ContainerState.READY:
            raise ContainerStateError(
                f"Container is {self._state.name}; lookups require READY"
            )
        return self._components

    def get_by_name(self, name: str) -> Optional[Any]:
        managed = self._ready().by_name.get(name)
        return managed.instance if managed else None

    def get_by_type(self, component_type: type[T]) -> Optional[T]:
        """The component satisfying a type: exact, then by capability, then by subclass."""
        managed = find_dependency(self._ready(), component_type)
        return managed.instance if managed else None

    def managed(self, name: str) -> Optional[ManagedInstance]:
        return self._ready().by_name.get(name)

    def all_of_role(self, role: Role) -> Mapping[str, Any]:
        return MappingProxyType(
            {
                name: managed.instance
                for name, managed in self._ready().by_name.items()
                if managed.role is role
            }
        )

    def controllers(self) -> Mapping[str, Any]:
        return self.all_of_role(Role.CONTROLLER)

    def implementers(self, capability: type) -> tuple:
        """Every component implementing ``capability``, in registration order."""
        return tuple(m.instance for m in self._ready().implementers.get(capability, ()))

    def components(self) -> Mapping[str, Any]:
        return MappingProxyType(
            {name: managed.instance for name, managed in self._ready().by_name.items()}
        )

    def failure_advice(self) -> tuple:
        return tuple(m.instance for m in self._ready().failure_advice)

    def resolve_failure_handler(
        self, failure: Union[type, BaseException]
    ) -> Optional[FailureHandlerEntry]:
        self._ready()
        return self._failures.resolve(failure)

    def dispatch_failure(
        self,
        failure: BaseException,
        *args,
        fallback: Optional[Callable] = None,
        **kwargs,
    ) -> Any:
        """Hand a failure to its handler; see :meth:`FailureDispatchTable.dispatch`."""
        self._ready()
        return self._failures.dispatch(failure, *args, fallback=fallback, **kwargs)

    def failure_handler_count(self) -> int:
        self._ready()
        return len(self._failures)

    def count(self) -> int:
        return len(self._ready().by_name)

    def contains(self, name: str) -> bool:
        return name in self._ready().by_name

    def contains_type(self, component_type: type) -> bool:
        """Whether :meth:`get_by_type` would find a component for this type."""
        return find_dependency(self._ready(), component_type) is not None

    def __contains__(self, key: ComponentKey) -> bool:
        if isinstance(key, str):
            return self.contains(key)
        return self.contains_type(key)

    def __getitem__(self, key: ComponentKey) -> Any:
        found = self.get_by_name(key) if isinstance(key, str) else self.get_by_type(key)
        if found is None:
            raise KeyError(key)
        return found

    def __len__(self) -> int:
        return self.count()
