"""Dispatch of uncaught failures to handler operations on failure advice components.

A failure is routed to the most specific registered handler: an exact match on
its type, then the nearest registered ancestor, then a handler for ``Exception``
and finally one for ``BaseException``.

Example:
    >>> @failure_advice()
    ... class GlobalFailureHandler:
    ...     @failure_handler(ValueError, KeyError)
    ...     def handle_invalid(self, failure, request):
    ...         return {"code": "INVALID_PARAM"}
    ...
    ...     @failure_handler()
    ...     def handle_any(self, failure: Exception, request):
    ...         return {"code": "SYSTEM_ERROR"}
    >>>
    >>> table.resolve(UnicodeDecodeError)  # handle_invalid, via ValueError
    >>> table.resolve(LookupError)         # handle_any, via Exception
"""

import inspect
import types
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Union, get_args, get_origin, get_type_hints

from sprig.domain import FailureHandlerEntry, ManagedInstance
from sprig.errors import FailureDispatchBuildError
from sprig.log_config import get_logger
from sprig.markers import declared_failure_types

__all__ = [
    "FailureDispatchTable",
    "build_failure_table",
    "handler_operations",
    "failure_types_of",
]

logger = get_logger(__name__)

ROOT_FAILURE = BaseException
RECOVERABLE_FAILURE = Exception


def handler_operations(advice_type: type) -> list[Callable]:
    """Tagged handler functions of a class, base classes first, in definition order.

    A method overridden in a subclass without the tag is no longer a handler.
    """
    operations: dict[str, Callable] = {}
    for klass in reversed(advice_type.__mro__):
        for attribute, member in vars(klass).items():
            if declared_failure_types(member) is not None:
                operations[attribute] = member
            elif attribute in operations:
                del operations[attribute]
    return list(operations.values())


def failure_types_of(operation: Callable) -> tuple[type, ...]:
    """The failure types a handler operation covers.

    Declared types take precedence; otherwise every parameter annotated with a
    ``BaseException`` subclass (or a union of them) contributes its types.

    Raises:
        FailureDispatchBuildError: If a declared type is not a failure type,
            or if no type is declared and none can be inferred.
    """
    declared = declared_failure_types(operation) or ()
    operation = _function_of(operation)
    for failure_type in declared:
        if not _is_failure_type(failure_type):
            raise FailureDispatchBuildError(
                f"{operation.__qualname__} declares {failure_type!r}, which is not an exception type"
            )
    if declared:
        return declared

    inferred = _infer_failure_types(operation)
    if not inferred:
        raise FailureDispatchBuildError(
            f"{operation.__qualname__} declares no failure types and none can be "
            "inferred from its parameters"
        )
    return inferred


def _infer_failure_types(operation: Callable) -> tuple[type, ...]:
    try:
        hints = get_type_hints(operation)
    except Exception as e:
        raise FailureDispatchBuildError(
            f"Could not resolve annotations of {operation.__qualname__}: {e!r}"
        ) from e

    inferred = []
    for parameter in inspect.signature(operation).parameters:
        annotation = hints.get(parameter)
        if get_origin(annotation) in (Union, types.UnionType):
            candidates = get_args(annotation)
        else:
            candidates = (annotation,)
        for candidate in candidates:
            if _is_failure_type(candidate) and candidate not in inferred:
                inferred.append(candidate)
    return tuple(inferred)


def _function_of(operation: Any) -> Callable:
    """The plain function behind a handler operation, unwrapping static and class methods."""
    if isinstance(operation, (staticmethod, classmethod)):
        return operation.__func__
    return operation


def _is_failure_type(candidate: Any) -> bool:
    return inspect.isclass(candidate) and issubclass(candidate, BaseException)


class FailureDispatchTable:
    """Immutable mapping of failure types to handler entries."""

    def __init__(self, entries: Mapping[type, FailureHandlerEntry]):
        self._entries = MappingProxyType(dict(entries))

    @property
    def entries(self) -> Mapping[type, FailureHandlerEntry]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, failure: Union[type, BaseException]) -> Optional[FailureHandlerEntry]:
        """Find the most specific handler for a failure type or instance.

        Returns:
            The handler entry, or None if no handler applies.
        """
        failure_type = failure if inspect.isclass(failure) else type(failure)

        found = self._entries.get(failure_type)
        if found is not None:
            return found

        for ancestor in failure_type.__mro__[1:]:
            if ancestor is ROOT_FAILURE:
                break
            found = self._entries.get(ancestor)
            if found is not None:
                return found

        found = self._entries.get(RECOVERABLE_FAILURE)
        if found is not None:
            return found

        return self._entries.get(ROOT_FAILURE)

    def dispatch(
        self,
        failure: BaseException,
        *args,
        fallback: Optional[Callable] = None,
        **kwargs,
    ) -> Any:
        """Invoke the handler for ``failure`` with any extra arguments.

        If no handler applies, ``fallback`` is called with the same arguments,
        or the failure is re-raised when there is no fallback.
        """
        entry = self.resolve(failure)
        if entry is None:
            if fallback is None:
                raise failure
            return fallback(failure, *args, **kwargs)

        logger.debug(
            "failure_dispatched",
            failure=type(failure).__qualname__,
            handler=_function_of(entry.operation).__qualname__,
        )
        return entry(failure, *args, **kwargs)


def build_failure_table(advice: Iterable[ManagedInstance]) -> FailureDispatchTable:
    """Collect the handler operations of every failure advice component.

    When two operations cover the same failure type, the one registered last
    wins. Operations with malformed metadata are logged and skipped.
    """
    entries: dict[type, FailureHandlerEntry] = {}

    for managed in advice:
        for operation in handler_operations(managed.component_type):
            qualname = _function_of(operation).__qualname__
            try:
                failure_types = failure_types_of(operation)
            except FailureDispatchBuildError as e:
                logger.warning(
                    "failure_handler_skipped",
                    advice=managed.name,
                    operation=qualname,
                    error=str(e),
                )
                continue

            for failure_type in failure_types:
                previous = entries.get(failure_type)
                if previous is not None:
                    logger.debug(
                        "failure_handler_replaced",
                        failure=failure_type.__qualname__,
                        previous=_function_of(previous.operation).__qualname__,
                        handler=qualname,
                    )
                entries[failure_type] = FailureHandlerEntry(failure_type, managed, operation)
                logger.debug(
                    "failure_handler_registered",
                    failure=failure_type.__qualname__,
                    handler=qualname,
                )

    return FailureDispatchTable(entries)
