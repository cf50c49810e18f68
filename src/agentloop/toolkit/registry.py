"""CapabilityRegistry: conflict-checked store of capability definitions.

The registry keeps an immutable snapshot of all definitions. Writers build
a complete replacement snapshot, check it for name conflicts, and swap it
in under a lock, so concurrent readers always see either the old or the
new snapshot and never a half-updated one.
"""

from __future__ import annotations

import logging
import threading
import types
from typing import TYPE_CHECKING, Iterable, Protocol, runtime_checkable

from agentloop.exceptions import NameConflictError, UnknownCapabilityError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from agentloop.toolkit.models import CapabilityDefinition

logger = logging.getLogger(__name__)

ALL_GROUP = "all"


@runtime_checkable
class CapabilitySource(Protocol):
    """Supplies custom capability definitions at discovery/refresh time.

    The registry does not know where definitions come from; a source
    hands over already-parsed definitions.
    """

    def load(self) -> Iterable[CapabilityDefinition]:
        ...


class StaticCapabilitySource:
    """A CapabilitySource that always returns the same definitions."""

    def __init__(self, definitions: Iterable[CapabilityDefinition]) -> None:
        self._definitions = tuple(definitions)

    def load(self) -> Iterable[CapabilityDefinition]:
        return self._definitions


def _find_conflicts(
    existing: Mapping[str, CapabilityDefinition],
    batch: Iterable[CapabilityDefinition],
) -> list[str]:
    seen: set[str] = set()
    conflicts: list[str] = []
    for definition in batch:
        name = definition.name
        if (name in existing or name in seen) and name not in conflicts:
            conflicts.append(name)
        seen.add(name)
    return conflicts


class CapabilityRegistry:
    """Holds capability definitions and resolves them by name.

    Built-in definitions are registered first, then each source's batch.
    Definitions registered directly with :meth:`register` or
    :meth:`register_batch` survive :meth:`refresh`; source-provided
    definitions are reloaded on every refresh.

    Usage::

        registry = CapabilityRegistry(get_builtin_capabilities("."))
        registry.register_batch(custom_defs)
        defn = registry.lookup("read_file")
    """

    def __init__(
        self,
        builtins: Iterable[CapabilityDefinition] = (),
        sources: Iterable[CapabilitySource] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._sources: list[CapabilitySource] = list(sources)
        self._static: tuple[CapabilityDefinition, ...] = ()
        self._snapshot: Mapping[str, CapabilityDefinition] = types.MappingProxyType({})
        self._static = self._checked_extend((), builtins)
        self._snapshot = self._build_snapshot(self._static, self._load_sources())

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, definition: CapabilityDefinition) -> None:
        """Register a single definition.

        Raises:
            NameConflictError: If the name is already registered.
        """
        self.register_batch([definition])

    def register_batch(self, definitions: Iterable[CapabilityDefinition]) -> None:
        """Register a batch of definitions atomically.

        Either every definition is registered or none is.

        Raises:
            NameConflictError: Listing every name in the batch that collides
                with a registered name or repeats within the batch.
        """
        batch = tuple(definitions)
        with self._lock:
            conflicts = _find_conflicts(self._snapshot, batch)
            if conflicts:
                raise NameConflictError(conflicts)
            self._static = self._static + batch
            merged = dict(self._snapshot)
            for definition in batch:
                merged[definition.name] = definition
            self._snapshot = types.MappingProxyType(merged)
        logger.debug("Registered %d capabilities: %s", len(batch), [d.name for d in batch])

    def add_source(self, source: CapabilitySource) -> None:
        """Attach another source and load it immediately (atomically)."""
        with self._lock:
            batch = tuple(source.load())
            conflicts = _find_conflicts(self._snapshot, batch)
            if conflicts:
                raise NameConflictError(conflicts)
            merged = dict(self._snapshot)
            for definition in batch:
                merged[definition.name] = definition
            self._sources.append(source)
            self._snapshot = types.MappingProxyType(merged)

    def refresh(self) -> None:
        """Re-scan all sources and swap in a freshly validated snapshot.

        On conflict the previous snapshot stays in place.

        Raises:
            NameConflictError: If any reloaded definition collides.
        """
        with self._lock:
            snapshot = self._build_snapshot(self._static, self._load_sources())
            self._snapshot = snapshot
        logger.info("Capability registry refreshed: %d capabilities", len(snapshot))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> CapabilityDefinition | None:
        return self._snapshot.get(name)

    def get(self, name: str) -> CapabilityDefinition:
        """Return the definition for ``name``.

        Raises:
            UnknownCapabilityError: If ``name`` is not registered.
        """
        definition = self._snapshot.get(name)
        if definition is None:
            raise UnknownCapabilityError(name)
        return definition

    def all(self) -> list[CapabilityDefinition]:
        """All definitions in registration order."""
        return list(self._snapshot.values())

    def names(self) -> list[str]:
        return list(self._snapshot.keys())

    def by_group(self, tag: str) -> list[CapabilityDefinition]:
        """Definitions carrying ``tag`` (``"all"`` returns everything)."""
        snapshot = self._snapshot
        if tag == ALL_GROUP:
            return list(snapshot.values())
        return [d for d in snapshot.values() if tag in d.groups]

    def subset(self, names: Iterable[str]) -> list[CapabilityDefinition]:
        """Definitions for ``names`` in the requested order.

        Raises:
            UnknownCapabilityError: For the first name that is not registered.
        """
        snapshot = self._snapshot
        result: list[CapabilityDefinition] = []
        for name in names:
            definition = snapshot.get(name)
            if definition is None:
                raise UnknownCapabilityError(name)
            if definition not in result:
                result.append(definition)
        return result

    def __contains__(self, name: object) -> bool:
        return name in self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self):
        return iter(list(self._snapshot.values()))

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _load_sources(self) -> list[tuple[CapabilityDefinition, ...]]:
        return [tuple(source.load()) for source in self._sources]

    @staticmethod
    def _checked_extend(
        current: tuple[CapabilityDefinition, ...],
        batch: Iterable[CapabilityDefinition],
    ) -> tuple[CapabilityDefinition, ...]:
        batch = tuple(batch)
        conflicts = _find_conflicts({d.name: d for d in current}, batch)
        if conflicts:
            raise NameConflictError(conflicts)
        return current + batch

    @classmethod
    def _build_snapshot(
        cls,
        static: tuple[CapabilityDefinition, ...],
        batches: list[tuple[CapabilityDefinition, ...]],
    ) -> Mapping[str, CapabilityDefinition]:
        combined = static
        for batch in batches:
            combined = cls._checked_extend(combined, batch)
        return types.MappingProxyType({d.name: d for d in combined})
