"""Decorators and annotations that mark classes and methods for the container.

Role markers are recorded on the decorated class itself, so a subclass of a
marked class is not a component unless it is marked too.

Example:
    >>> @service()
    ... class OrderService:
    ...     repository: Annotated[OrderRepository, Autowired()]
    ...
    >>> @failure_advice()
    ... class GlobalFailureHandler:
    ...     @failure_handler(ValueError, KeyError)
    ...     def handle_invalid(self, failure, request):
    ...         ...
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Protocol

from sprig.domain import Role

__all__ = [
    "Autowired",
    "controller",
    "service",
    "repository",
    "failure_advice",
    "primary",
    "capability",
    "failure_handler",
    "roles_of",
    "is_primary",
    "is_capability",
    "declared_failure_types",
]

_METADATA_ATTR = "__component_metadata__"


@dataclass(frozen=True)
class Autowired:
    """Marks an annotated class attribute as an injection point.

    Example:
        >>> class OrderController:
        ...     orders: Annotated[OrderService, Autowired()]
        ...     audit: Annotated[AuditLog, Autowired(required=False)]
    """

    required: bool = True


def component_metadata(target: Any) -> dict[str, Any]:
    """Return the metadata set directly on ``target``, ignoring inherited values."""
    return vars(target).get(_METADATA_ATTR, {})


def set_metadata(target: Any, **kwargs) -> Any:
    metadata = dict(component_metadata(target))
    metadata.update(kwargs)
    setattr(target, _METADATA_ATTR, metadata)
    return target


def _role_marker(role: Role) -> Callable:
    def marker(name: Optional[str] = None) -> Callable:
        def decorator(target: type) -> type:
            if not inspect.isclass(target):
                raise TypeError(f"@{role.value} can only mark classes, not {target!r}")
            roles = dict(component_metadata(target).get("roles", {}))
            roles[role] = name
            return set_metadata(target, roles=roles)

        return decorator

    marker.__name__ = role.value
    marker.__doc__ = (
        f"Mark a class as a {role.value.replace('_', ' ')} component, "
        "optionally under a custom name."
    )
    return marker


controller = _role_marker(Role.CONTROLLER)
service = _role_marker(Role.SERVICE)
repository = _role_marker(Role.REPOSITORY)
failure_advice = _role_marker(Role.FAILURE_ADVICE)


def primary(target: type) -> type:
    """Prefer this class when several components implement the same capability."""
    return set_metadata(target, primary=True)


def capability(target: type) -> type:
    """Mark a concrete class as a capability type other components may implement."""
    return set_metadata(target, capability=True)


def failure_handler(*failure_types: type) -> Callable:
    """Tag a method of a failure advice component as a handler operation.

    With no arguments, the failure types are inferred from the method's
    annotated parameters.
    """

    def decorator(func: Callable) -> Callable:
        return set_metadata(func, failure_handler=tuple(failure_types))

    return decorator


def roles_of(target: type) -> dict[Role, Optional[str]]:
    """Role markers on ``target`` mapped to their custom names."""
    return component_metadata(target).get("roles", {})


def is_primary(target: type) -> bool:
    return component_metadata(target).get("primary", False)


def is_capability(target: type) -> bool:
    """Whether ``target`` is an abstract contract rather than a plain concrete class.

    Abstract classes, ``typing.Protocol`` classes and classes marked with
    :func:`capability` are capabilities.
    """
    if not inspect.isclass(target) or target in (object, Protocol, Generic):
        return False
    return (
        component_metadata(target).get("capability", False)
        or inspect.isabstract(target)
        or vars(target).get("_is_protocol", False)
    )


def declared_failure_types(func: Any) -> Optional[tuple]:
    """The types given to :func:`failure_handler`, or None if ``func`` is not tagged.

    Static and class methods are tagged whichever way the decorators are stacked.
    """
    if isinstance(func, (staticmethod, classmethod)):
        declared = component_metadata(func).get("failure_handler")
        return declared if declared is not None else declared_failure_types(func.__func__)
    if not inspect.isfunction(func):
        return None
    return component_metadata(func).get("failure_handler")
