__all__ = [
    "ContainerError",
    "DiscoveryError",
    "InstantiationError",
    "MissingRequiredDependencyError",
    "NameCollisionError",
    "AmbiguousCapabilityError",
    "FailureDispatchBuildError",
    "ContainerStateError",
]


class ContainerError(Exception):
    """Base class for every error raised while building or querying a container."""

    pass


class DiscoveryError(ContainerError):
    """Raised when candidate enumeration fails, e.g. a package cannot be imported."""

    pass


class InstantiationError(ContainerError):
    """Raised when a marked component cannot be constructed with its no-argument constructor."""

    def __init__(self, component_type: type, cause: BaseException):
        super().__init__(
            f"Could not instantiate component {component_type.__qualname__}: {cause!r}"
        )
        self.component_type = component_type


class MissingRequiredDependencyError(ContainerError):
    """Raised when a required injection point has no satisfying component."""

    def __init__(self, owner: str, attribute: str, dependency_type: type):
        super().__init__(
            f"No component satisfies required dependency {owner}.{attribute}: "
            f"{getattr(dependency_type, '__qualname__', dependency_type)}"
        )
        self.owner = owner
        self.attribute = attribute
        self.dependency_type = dependency_type


class NameCollisionError(ContainerError):
    """Raised when two components compute the same name and overriding is disabled."""

    pass


class AmbiguousCapabilityError(ContainerError):
    """Raised when more than one primary implementer is registered for a capability."""

    pass


class FailureDispatchBuildError(ContainerError):
    """Raised for malformed failure handler metadata; the offending entry is skipped."""

    pass


class ContainerStateError(ContainerError):
    """Raised on an illegal lifecycle transition or a lookup before the container is ready."""

    pass
