"""Sprig component runtime.

Sprig discovers application components, constructs each once, wires them
together and routes uncaught failures to registered handlers. Inspired by
Spring's application context, it keeps to a single eager singleton lifetime
and avoids proxies: every component is built at startup and the container is
read-only afterwards.

Key Features:
    - Role markers (controller, service, repository, failure advice) on plain classes
    - Package scanning or explicit candidate lists
    - Attribute injection by exact type, capability or subclass, with optional points
    - Two-phase construction, so components may depend on each other
    - Failure dispatch to the most specific registered handler

Basic Usage:
    >>> from typing import Annotated
    >>> from sprig import Autowired, controller, service, make_container_from
    >>>
    >>> @service()
    ... class OrderService:
    ...     pass
    >>>
    >>> @controller()
    ... class OrderController:
    ...     orders: Annotated[OrderService, Autowired()]
    >>>
    >>> container = make_container_from([OrderService, OrderController])
    >>> container.get_by_type(OrderController).orders is container.get_by_name("orderService")
    True

The package consists of several modules:
    - markers: decorators and annotations consumed by the container
    - discovery: sources of candidate types
    - registry: classification, instantiation and indexing
    - injector: dependency resolution and injection
    - failures: failure handler table and dispatch
    - container: the facade and its lifecycle states
    - builders: the startup sequence
    - errors: container exceptions
"""

from sprig.builders import make_container, make_container_from
from sprig.container import Container, ContainerState
from sprig.domain import Role
from sprig.errors import (
    AmbiguousCapabilityError,
    ContainerError,
    ContainerStateError,
    DiscoveryError,
    FailureDispatchBuildError,
    InstantiationError,
    MissingRequiredDependencyError,
    NameCollisionError,
)
from sprig.markers import (
    Autowired,
    capability,
    controller,
    failure_advice,
    failure_handler,
    primary,
    repository,
    service,
)

__all__ = [
    "make_container",
    "make_container_from",
    "Container",
    "ContainerState",
    "Role",
    "Autowired",
    "capability",
    "controller",
    "failure_advice",
    "failure_handler",
    "primary",
    "repository",
    "service",
    "ContainerError",
    "DiscoveryError",
    "InstantiationError",
    "MissingRequiredDependencyError",
    "NameCollisionError",
    "AmbiguousCapabilityError",
    "FailureDispatchBuildError",
    "ContainerStateError",
]
