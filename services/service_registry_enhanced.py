"""
Service Registry with lazy loading
Repositories and services are registered as factories and built on first use,
with their dependencies resolved from the registry by name
"""
from typing import Dict, Any, Callable, Optional, Set, List
from enum import Enum
import threading
import logging

logger = logging.getLogger(__name__)


class ServiceLifecycle(Enum):
    """Service lifecycle management options"""
    SINGLETON = "singleton"  # One instance per application
    TRANSIENT = "transient"  # New instance on every get()
    SCOPED = "scoped"        # One instance per scope id


class ServiceDescriptor:
    """Registration record for one service"""

    def __init__(
        self,
        name: str,
        factory: Optional[Callable] = None,
        instance: Optional[Any] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        dependencies: Optional[List[str]] = None
    ):
        self.name = name
        self.factory = factory
        self.instance = instance
        self.lifecycle = lifecycle
        self.dependencies = dependencies or []
        self.lock = threading.Lock()


class ServiceRegistryEnhanced:
    """
    Lazy service registry attached to the Flask app as app.services.

    Features:
    - Factory registration with named dependencies
    - Singleton, transient and scoped lifecycles
    - Circular dependency detection
    - Instance clearing for test isolation
    """

    def __init__(self):
        self._descriptors: Dict[str, ServiceDescriptor] = {}
        self._scoped_instances: Dict[str, Dict[str, Any]] = {}
        self._thread_local = threading.local()
        self._lock = threading.RLock()

    def register(
        self,
        name: str,
        service: Any = None,
        factory: Callable = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        dependencies: Optional[List[str]] = None
    ) -> None:
        """
        Register a ready instance or a factory under a name.

        Args:
            name: Service identifier
            service: Pre-built instance
            factory: Callable taking the dependencies as keyword arguments
            lifecycle: Service lifecycle type
            dependencies: Names of services passed to the factory
        """
        if service is None and factory is None:
            raise ValueError(f"Either service instance or factory must be provided for '{name}'")

        descriptor = ServiceDescriptor(
            name=name,
            factory=factory,
            instance=service,
            lifecycle=lifecycle,
            dependencies=dependencies
        )

        with self._lock:
            self._descriptors[name] = descriptor
            for scope in self._scoped_instances.values():
                scope.pop(name, None)

    def register_factory(
        self,
        name: str,
        factory: Callable,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        dependencies: Optional[List[str]] = None
    ) -> None:
        """Register a factory for lazy instantiation"""
        self.register(name=name, factory=factory, lifecycle=lifecycle, dependencies=dependencies)

    def get(self, name: str, scope_id: Optional[str] = None) -> Any:
        """
        Get a service, building it and its dependencies on first use.

        Raises:
            ValueError: If service is not registered
            RuntimeError: If circular dependency detected
        """
        if name not in self._descriptors:
            raise ValueError(f"Service '{name}' is not registered")

        descriptor = self._descriptors[name]
        stack = self._initialization_stack()
        if name in stack:
            cycle = " -> ".join(stack + [name])
            raise RuntimeError(f"Circular dependency detected: {cycle}")

        if descriptor.lifecycle == ServiceLifecycle.SINGLETON:
            return self._get_singleton(descriptor)
        if descriptor.lifecycle == ServiceLifecycle.TRANSIENT:
            return self._create_instance(descriptor)
        if descriptor.lifecycle == ServiceLifecycle.SCOPED:
            return self._get_scoped(descriptor, scope_id)

        raise ValueError(f"Unknown lifecycle: {descriptor.lifecycle}")

    def _initialization_stack(self) -> List[str]:
        if not hasattr(self._thread_local, 'initialization_stack'):
            self._thread_local.initialization_stack = []
        return self._thread_local.initialization_stack

    def _get_singleton(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.instance is not None:
            return descriptor.instance

        with descriptor.lock:
            if descriptor.instance is None:
                descriptor.instance = self._create_instance(descriptor)
            return descriptor.instance

    def _get_scoped(self, descriptor: ServiceDescriptor, scope_id: Optional[str]) -> Any:
        scope_id = scope_id or "default"

        with self._lock:
            scope = self._scoped_instances.setdefault(scope_id, {})
            if descriptor.name not in scope:
                scope[descriptor.name] = self._create_instance(descriptor)
            return scope[descriptor.name]

    def _create_instance(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.factory is None:
            raise ValueError(f"No factory registered for '{descriptor.name}'")

        stack = self._initialization_stack()
        stack.append(descriptor.name)
        try:
            deps = {dep: self.get(dep) for dep in descriptor.dependencies}
            instance = descriptor.factory(**deps)
            logger.debug(f"Created service instance: {descriptor.name}")
            return instance
        finally:
            stack.pop()

    def has(self, name: str) -> bool:
        return name in self._descriptors

    def list_services(self) -> List[str]:
        return sorted(self._descriptors.keys())

    def reset_service(self, name: str) -> None:
        """Drop the built instance of one service so the next get() rebuilds it"""
        descriptor = self._descriptors.get(name)
        if descriptor is None:
            return
        if descriptor.factory is not None:
            with descriptor.lock:
                descriptor.instance = None
        with self._lock:
            for scope in self._scoped_instances.values():
                scope.pop(name, None)

    def clear_scope(self, scope_id: str) -> None:
        with self._lock:
            self._scoped_instances.pop(scope_id, None)

    def clear_all_instances(self) -> None:
        """Drop every built instance; registrations are kept"""
        for name in list(self._descriptors):
            self.reset_service(name)
        with self._lock:
            self._scoped_instances.clear()

    def get_dependents(self, name: str) -> Set[str]:
        """Names of all services that depend on name, directly or indirectly"""
        dependents: Set[str] = set()
        pending = [name]
        while pending:
            current = pending.pop()
            for other, descriptor in self._descriptors.items():
                if current in descriptor.dependencies and other not in dependents:
                    dependents.add(other)
                    pending.append(other)
        return dependents

    def clear_dependency_chain(self, name: str) -> None:
        """Reset a service and everything built on top of it"""
        self.reset_service(name)
        for dependent in self.get_dependents(name):
            self.reset_service(dependent)

    def validate_dependencies(self) -> List[str]:
        """
        Returns:
            One message per dependency that is not registered
        """
        errors = []
        for name, descriptor in self._descriptors.items():
            for dep in descriptor.dependencies:
                if dep not in self._descriptors:
                    errors.append(f"Service '{name}' depends on unregistered service '{dep}'")
        return errors

    def get_initialization_order(self) -> List[str]:
        """
        Topological order of all services, dependencies first.

        Raises:
            RuntimeError: If circular dependency exists
        """
        graph = {name: list(descriptor.dependencies) for name, descriptor in self._descriptors.items()}
        visited: Set[str] = set()
        order: List[str] = []

        def visit(node: str, path: List[str]):
            if node in path:
                cycle = " -> ".join(path + [node])
                raise RuntimeError(f"Circular dependency detected: {cycle}")
            if node in visited:
                return
            for dep in graph.get(node, []):
                visit(dep, path + [node])
            visited.add(node)
            order.append(node)

        for node in graph:
            visit(node, [])
        return order


def create_enhanced_registry() -> ServiceRegistryEnhanced:
    return ServiceRegistryEnhanced()
