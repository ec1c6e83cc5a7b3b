from __future__ import annotations

from typing import Any, Callable, TypeVar

T = TypeVar("T")


class Container:
    """Minimal synchronous resolver used by the route registrar.

    Factories receive the container so they can resolve their own
    dependencies. Resolved instances are cached (one per class).
    """

    def __init__(self):
        self._factories: dict[type, Callable[["Container"], Any]] = {}
        self._instances: dict[type, Any] = {}

    def register(self, cls: type[T], factory: Callable[["Container"], T]) -> "Container":
        self._factories[cls] = factory
        self._instances.pop(cls, None)
        return self

    def register_instance(self, cls: type[T], instance: T) -> "Container":
        self._factories.pop(cls, None)
        self._instances[cls] = instance
        return self

    def is_registered(self, cls: type) -> bool:
        return cls in self._instances or cls in self._factories

    def resolve(self, cls: type[T]) -> T:
        if cls in self._instances:
            return self._instances[cls]
        factory = self._factories.get(cls)
        instance = factory(self) if factory is not None else cls()
        self._instances[cls] = instance
        return instance

    __call__ = resolve
