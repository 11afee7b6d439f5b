from abc import ABC, abstractmethod
from typing import Annotated, Optional, Protocol

import pytest

from sprig.errors import ContainerError, MissingRequiredDependencyError
from sprig.injector import Injector, find_dependency, injection_points
from sprig.markers import Autowired, controller, repository, service
from sprig.registry import ComponentRegistry


class Notifier(ABC):
    @abstractmethod
    def notify(self, message):
        pass


class Sender(Protocol):
    def send(self, message): ...


class BaseRepository:
    pass


@service()
class Alpha:
    beta: Annotated["Beta", Autowired()]


@service()
class Beta:
    alpha: Annotated[Alpha, Autowired()]


def build(*candidates):
    registry = ComponentRegistry()
    for candidate in candidates:
        registry.register(candidate)
    components = registry.freeze()
    Injector(components).inject_all()
    return components


def instance_of(components, component_type):
    return components.by_type[component_type].instance


def test_injection_points_are_read_from_annotations():
    @service()
    class Audit:
        pass

    @controller()
    class ReviewController:
        audit: Annotated[Audit, Autowired()]
        maybe: Annotated[Optional[Audit], Autowired(required=False)]
        plain: Audit
        labelled: Annotated[str, "not an injection point"]

    managed = ComponentRegistry().register(ReviewController)
    points = {p.attribute: (p.dependency_type, p.required) for p in injection_points(managed)}

    assert points == {"audit": (Audit, True), "maybe": (Audit, False)}


def test_injection_points_are_inherited():
    @repository()
    class Store:
        pass

    class Base:
        store: Annotated[Store, Autowired()]

    @service()
    class Derived(Base):
        pass

    managed = ComponentRegistry().register(Derived)

    assert [p.attribute for p in injection_points(managed)] == ["store"]


def test_unresolvable_annotation_raises():
    @service()
    class Broken:
        missing: Annotated["DoesNotExist", Autowired()]

    managed = ComponentRegistry().register(Broken)

    with pytest.raises(ContainerError, match="Broken"):
        injection_points(managed)


def test_injects_by_exact_type():
    @service()
    class OrderService:
        pass

    @controller()
    class OrderController:
        orders: Annotated[OrderService, Autowired()]

    components = build(OrderService, OrderController)

    assert instance_of(components, OrderController).orders is instance_of(components, OrderService)


def test_mutual_dependencies_are_wired():
    components = build(Alpha, Beta)
    alpha = instance_of(components, Alpha)
    beta = instance_of(components, Beta)

    assert alpha.beta is beta
    assert beta.alpha is alpha


def test_injects_by_capability():
    @service()
    class EmailNotifier(Notifier):
        def notify(self, message):
            pass

    @service()
    class MessageService:
        notifier: Annotated[Notifier, Autowired()]

    components = build(EmailNotifier, MessageService)

    assert instance_of(components, MessageService).notifier is instance_of(components, EmailNotifier)


def test_falls_back_to_first_subclass():
    @repository()
    class CartRepository(BaseRepository):
        pass

    @repository()
    class OrderRepository(BaseRepository):
        pass

    @service()
    class Maintenance:
        repository: Annotated[BaseRepository, Autowired()]

    components = build(CartRepository, OrderRepository, Maintenance)

    assert find_dependency(components, BaseRepository).component_type is CartRepository
    assert instance_of(components, Maintenance).repository is instance_of(components, CartRepository)


def test_missing_required_dependency_names_owner_and_type():
    class PaymentGateway:
        pass

    @service()
    class PaymentService:
        gateway: Annotated[PaymentGateway, Autowired()]

    with pytest.raises(
        MissingRequiredDependencyError,
        match=r"PaymentService\.gateway: .*PaymentGateway",
    ) as error:
        build(PaymentService)

    assert error.value.dependency_type is PaymentGateway


def test_missing_optional_dependency_is_left_unset():
    class Clock:
        pass

    @service()
    class Scheduler:
        clock: Annotated[Clock, Autowired(required=False)]
        fallback: Annotated[Clock, Autowired(required=False)] = "default"

    scheduler = instance_of(build(Scheduler), Scheduler)

    assert scheduler.clock is None
    assert scheduler.fallback == "default"


def test_inject_all_counts_filled_points():
    @service()
    class OrderService:
        pass

    @controller()
    class OrderController:
        orders: Annotated[OrderService, Autowired()]
        missing: Annotated[int, Autowired(required=False)]

    registry = ComponentRegistry()
    registry.register(OrderService)
    registry.register(OrderController)

    assert Injector(registry.freeze()).inject_all() == 1


def test_unimplemented_capability_is_not_found():
    @service()
    class Plain:
        pass

    components = build(Plain)

    assert find_dependency(components, Sender) is None
    assert find_dependency(components, Notifier) is None


def test_optional_protocol_point_without_implementer_stays_none():
    @service()
    class Plain:
        pass

    @service()
    class Outbox:
        sender: Annotated[Sender, Autowired(required=False)]

    components = build(Plain, Outbox)

    assert instance_of(components, Outbox).sender is None


def test_required_protocol_point_without_implementer_raises():
    @service()
    class Outbox:
        sender: Annotated[Sender, Autowired()]

    with pytest.raises(MissingRequiredDependencyError, match=r"Outbox\.sender"):
        build(Outbox)


def test_protocol_implementer_is_injected():
    @service()
    class SmtpSender(Sender):
        def send(self, message):
            pass

    @service()
    class Outbox:
        sender: Annotated[Sender, Autowired()]

    components = build(SmtpSender, Outbox)

    assert instance_of(components, Outbox).sender is instance_of(components, SmtpSender)
