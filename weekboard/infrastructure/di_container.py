# weekboard/infrastructure/di_container.py
"""Dependency injection container for weekboard services."""
from __future__ import annotations

from functools import lru_cache
import inspect
from typing import Any, Callable, Dict, Type

from weekboard.application.timetable_service import TimetableService
from weekboard.config import settings as app_settings
from weekboard.domain.configuration import DomainSettings, configure as configure_domain
from weekboard.domain.repositories import TimetableRepository
from weekboard.domain.rollover import RolloverEngine
from weekboard.domain.toggle import ToggleController
from weekboard.infrastructure.postgres_dal import PostgresDal

configure_domain(
    DomainSettings(
        timezone=app_settings.WEEKBOARD_TIMEZONE,
        history_page_size=app_settings.HISTORY_PAGE_SIZE,
        history_order=app_settings.HISTORY_ORDER,
    )
)

ServiceType = Type[Any]
Factory = Callable[["Container"], Any]


class Container:
    """Minimal service container supporting factories and instances."""

    def __init__(self) -> None:
        self._factories: Dict[ServiceType, Factory] = {}
        self._instances: Dict[ServiceType, Any] = {}

    def register(
        self,
        service: ServiceType,
        *,
        factory: Factory | None = None,
        instance: Any | None = None,
    ) -> None:
        if instance is not None:
            self._instances[service] = instance
            self._factories.pop(service, None)
            return
        if factory is None:
            raise ValueError("Either factory or instance must be provided.")
        self._factories[service] = factory
        self._instances.pop(service, None)

    def resolve(self, service: ServiceType) -> Any:
        if service in self._instances:
            return self._instances[service]
        try:
            factory = self._factories[service]
        except KeyError as exc:
            raise KeyError(f"No provider registered for {service!r}") from exc
        return factory(self)


def _register_defaults(container: Container) -> None:
    """Register the production service graph with the container."""
    container.register(TimetableRepository, factory=lambda _c: PostgresDal())
    container.register(RolloverEngine, factory=lambda _c: RolloverEngine())
    container.register(ToggleController, factory=lambda _c: ToggleController())
    container.register(
        TimetableService,
        factory=lambda c: TimetableService(
            c.resolve(TimetableRepository),
            engine=c.resolve(RolloverEngine),
            controller=c.resolve(ToggleController),
        ),
    )


def _wrap_override(provider: Any) -> Factory:
    if inspect.isfunction(provider) or inspect.ismethod(provider):
        signature = inspect.signature(provider)
        if len(signature.parameters) == 0:
            return lambda _c, fn=provider: fn()
        return lambda c, fn=provider: fn(c)
    if isinstance(provider, type):
        return lambda _c, cls=provider: cls()
    return lambda _c, value=provider: value


def build_container(overrides: Dict[ServiceType, Any] | None = None) -> Container:
    """Create a new container with optional dependency overrides."""
    container = Container()
    _register_defaults(container)

    if overrides:
        for service, provider in overrides.items():
            factory = _wrap_override(provider)
            if isinstance(provider, (type,)) or inspect.isfunction(provider) or inspect.ismethod(provider):
                container.register(service, factory=factory)
            else:
                container.register(service, instance=factory(container))

    return container


@lru_cache(maxsize=1)
def get_container() -> Container:
    """Return a cached container instance for application use."""
    return build_container()


__all__ = ["Container", "build_container", "get_container"]
