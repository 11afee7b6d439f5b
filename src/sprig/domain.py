"""Domain models used throughout the container."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class Role(Enum):
    """The four mutually exclusive roles a component may be marked with."""

    CONTROLLER = "controller"
    SERVICE = "service"
    REPOSITORY = "repository"
    FAILURE_ADVICE = "failure_advice"


@dataclass(frozen=True)
class ComponentDescriptor:
    """
    Classification of a candidate type, derived once before instantiation.

    Attributes:
        component_type: The candidate class.
        role: The role marker carried by the class.
        declared_name: The custom name given to the role marker, if any.
        primary: Whether the class is the preferred implementer of its capabilities.
    """

    component_type: type
    role: Role
    declared_name: Optional[str]
    primary: bool = False


@dataclass(frozen=True)
class ManagedInstance:
    """
    A constructed singleton owned by the container.

    Attributes:
        name: The unique name the component is registered under.
        component_type: The concrete class of the component.
        role: The role the component was registered with.
        instance: The constructed object.
    """

    name: str
    component_type: type
    role: Role
    instance: Any


@dataclass(frozen=True)
class InjectionPoint:
    """
    A dependency slot declared on a managed component.

    Attributes:
        owner: The managed instance the dependency is injected into.
        attribute: The attribute name the dependency is assigned to.
        dependency_type: The type the dependency must satisfy.
        required: Whether a missing dependency aborts startup.
    """

    owner: ManagedInstance
    attribute: str
    dependency_type: type
    required: bool = True


@dataclass(frozen=True)
class FailureHandlerEntry:
    """
    A handler operation registered for a failure type.

    Calling the entry invokes the operation bound to its advice instance.

    Attributes:
        failure_type: The failure type this entry is keyed by.
        advice: The failure advice component hosting the operation.
        operation: The handler function as found on the class, possibly a static or class method.
    """

    failure_type: type
    advice: ManagedInstance
    operation: Callable

    @property
    def handler(self) -> Callable:
        return self.operation.__get__(self.advice.instance, self.advice.component_type)

    def __call__(self, failure: BaseException, *args, **kwargs) -> Any:
        return self.handler(failure, *args, **kwargs)
