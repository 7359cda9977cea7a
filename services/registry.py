"""
Service Registry - Central management of application services
Implements dependency injection and lazy loading patterns
"""
from typing import Dict, Any, Callable, List, Optional
import logging

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """
    Centralized registry for application services.
    Supports dependency injection and lazy loading.

    Factories registered with ``dependencies`` receive the named services
    as keyword arguments. Services registered with ``singleton=False`` are
    rebuilt on every ``get`` (used for anything holding a db session).
    """

    def __init__(self):
        self._services: Dict[str, Any] = {}
        self._factories: Dict[str, Callable] = {}
        self._dependencies: Dict[str, List[str]] = {}
        self._singletons: Dict[str, bool] = {}
        self._resolving: set = set()

    def register_factory(self, name: str, factory: Callable,
                         dependencies: Optional[List[str]] = None,
                         singleton: bool = True) -> None:
        """
        Register a factory function for lazy service instantiation.

        Args:
            name: Service identifier
            factory: Callable that returns a service instance
            dependencies: Names of services passed to the factory as keyword arguments
            singleton: Cache the instance after the first call
        """
        self._factories[name] = factory
        self._dependencies[name] = list(dependencies or [])
        self._singletons[name] = singleton
        self._services.pop(name, None)

    def get(self, name: str) -> Any:
        """
        Get a service by name. Lazy loads if factory is registered.

        Raises:
            ValueError: If service is not registered or dependencies are circular
        """
        if name in self._services:
            return self._services[name]

        if name not in self._factories:
            raise ValueError(f"Service '{name}' is not registered")

        if name in self._resolving:
            raise ValueError(f"Circular dependency detected while resolving '{name}'")

        self._resolving.add(name)
        try:
            kwargs = {dep: self.get(dep) for dep in self._dependencies[name]}
            instance = self._factories[name](**kwargs)
        finally:
            self._resolving.discard(name)

        if self._singletons[name]:
            self._services[name] = instance
        logger.debug(f"Created service '{name}'")
        return instance
