from typing import Union

import pytest
from structlog.testing import capture_logs

from sprig.errors import FailureDispatchBuildError
from sprig.failures import build_failure_table, failure_types_of, handler_operations
from sprig.markers import failure_advice, failure_handler
from sprig.registry import ComponentRegistry


class BusinessError(Exception):
    pass


class OrderNotFound(BusinessError):
    pass


class AuthenticationError(Exception):
    pass


def table_for(*advice_types):
    registry = ComponentRegistry()
    for advice_type in advice_types:
        registry.register(advice_type)
    return build_failure_table(registry.freeze().failure_advice)


@failure_advice()
class GlobalFailureHandler:
    @failure_handler(ValueError)
    def handle_invalid(self, failure, request):
        return "invalid", request

    @failure_handler(BusinessError)
    def handle_business(self, failure, request):
        return "business", request

    @failure_handler()
    def handle_auth(self, failure: AuthenticationError, request):
        return "auth", request

    @failure_handler(BaseException)
    def handle_anything(self, failure, request):
        return "anything", request

    def not_a_handler(self, failure: KeyError):
        pass


def test_declared_types_take_precedence():
    assert failure_types_of(GlobalFailureHandler.handle_invalid) == (ValueError,)


def test_types_inferred_from_parameters():
    def handle(self, failure: Union[KeyError, IndexError], other: OrderNotFound, request: str):
        pass

    assert failure_types_of(failure_handler()(handle)) == (KeyError, IndexError, OrderNotFound)


def test_operation_without_types_is_malformed():
    def handle(self, failure, request):
        pass

    with pytest.raises(FailureDispatchBuildError, match="no failure types"):
        failure_types_of(failure_handler()(handle))


def test_declared_non_exception_type_is_malformed():
    def handle(self, failure):
        pass

    with pytest.raises(FailureDispatchBuildError, match="not an exception type"):
        failure_types_of(failure_handler(str)(handle))


def test_only_tagged_methods_are_operations():
    names = [op.__name__ for op in handler_operations(GlobalFailureHandler)]

    assert names == ["handle_invalid", "handle_business", "handle_auth", "handle_anything"]


def test_untagged_override_removes_operation():
    class Quieter(GlobalFailureHandler):
        def handle_invalid(self, failure, request):
            pass

    names = [op.__name__ for op in handler_operations(Quieter)]

    assert "handle_invalid" not in names


def test_resolves_exact_type():
    entry = table_for(GlobalFailureHandler).resolve(ValueError)

    assert entry.failure_type is ValueError
    assert entry.operation is GlobalFailureHandler.handle_invalid


def test_resolves_nearest_ancestor():
    table = table_for(GlobalFailureHandler)

    assert table.resolve(OrderNotFound).failure_type is BusinessError
    assert table.resolve(UnicodeDecodeError).failure_type is ValueError


def test_resolves_instances():
    entry = table_for(GlobalFailureHandler).resolve(OrderNotFound("order 7"))

    assert entry.failure_type is BusinessError


def test_falls_back_to_recoverable_then_root():
    @failure_advice()
    class Fallbacks:
        @failure_handler(Exception)
        def handle_exception(self, failure):
            pass

        @failure_handler(BaseException)
        def handle_root(self, failure):
            pass

    table = table_for(Fallbacks)

    assert table.resolve(LookupError).failure_type is Exception
    assert table.resolve(KeyboardInterrupt).failure_type is BaseException


def test_root_handler_catches_unrelated_failures():
    table = table_for(GlobalFailureHandler)

    assert table.resolve(ValueError).operation.__name__ == "handle_invalid"
    assert table.resolve(LookupError).operation.__name__ == "handle_anything"


def test_no_handler_resolves_to_none():
    @failure_advice()
    class Narrow:
        @failure_handler(ValueError)
        def handle(self, failure):
            pass

    assert table_for(Narrow).resolve(KeyError) is None


def test_last_registration_wins():
    @failure_advice()
    class First:
        @failure_handler(ValueError)
        def handle(self, failure):
            return "first"

    @failure_advice()
    class Second:
        @failure_handler(ValueError)
        def handle(self, failure):
            return "second"

    entry = table_for(First, Second).resolve(ValueError)

    assert entry.advice.component_type is Second
    assert entry(ValueError()) == "second"


def test_one_operation_covers_several_types():
    @failure_advice()
    class Validation:
        @failure_handler(ValueError, TypeError)
        def handle(self, failure):
            pass

    table = table_for(Validation)

    assert table.entries.keys() == {ValueError, TypeError}
    assert table.resolve(ValueError).operation is table.resolve(TypeError).operation


def test_malformed_operation_is_skipped_with_warning():
    @failure_advice()
    class PartlyBroken:
        @failure_handler()
        def untyped(self, failure):
            pass

        @failure_handler(KeyError)
        def handle_key(self, failure):
            pass

    with capture_logs() as logs:
        table = table_for(PartlyBroken)

    assert list(table.entries) == [KeyError]
    assert [entry["event"] for entry in logs if entry["log_level"] == "warning"] == [
        "failure_handler_skipped"
    ]


def test_dispatch_invokes_bound_handler_with_arguments():
    table = table_for(GlobalFailureHandler)

    assert table.dispatch(OrderNotFound(), "/orders/7") == ("business", "/orders/7")


def test_dispatch_without_handler_uses_fallback_or_reraises():
    @failure_advice()
    class Narrow:
        @failure_handler(ValueError)
        def handle(self, failure):
            pass

    table = table_for(Narrow)
    failure = KeyError("cart")

    assert table.dispatch(failure, fallback=lambda f: f"unhandled {f!r}") == "unhandled KeyError('cart')"
    with pytest.raises(KeyError):
        table.dispatch(failure)


def test_table_is_read_only():
    table = table_for(GlobalFailureHandler)

    with pytest.raises(TypeError):
        table.entries[KeyError] = table.resolve(ValueError)


def test_static_and_class_method_handlers_are_registered():
    @failure_advice()
    class StaticHandlers:
        @staticmethod
        @failure_handler(KeyError)
        def handle_key(failure, request):
            return "key", request

        @failure_handler(IndexError)
        @classmethod
        def handle_index(cls, failure, request):
            return cls.__name__, request

        @staticmethod
        @failure_handler()
        def handle_auth(failure: AuthenticationError, request):
            return "auth", request

    table = table_for(StaticHandlers)

    assert table.dispatch(KeyError("k"), "/a") == ("key", "/a")
    assert table.dispatch(IndexError(), "/b") == ("StaticHandlers", "/b")
    assert table.dispatch(AuthenticationError(), "/c") == ("auth", "/c")
