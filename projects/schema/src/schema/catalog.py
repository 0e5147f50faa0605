"""Registry of record classes that can define their own table.

Record classes are registered explicitly, either with the ``register`` decorator or as
``"module:Class"`` strings that are resolved when the catalog is discovered. Discovery
keeps concrete classes whose instances satisfy ``TableDefining`` and skips the rest
with a warning.
"""

from collections.abc import Iterable
from importlib import import_module
from inspect import isabstract, isclass
from logging import getLogger
from typing import Protocol, runtime_checkable

from schema.types import SchemaDefinition

logger = getLogger(__name__)


@runtime_checkable
class TableDefining(Protocol):
    """Capability of a record to describe its own table."""

    def define_table(self) -> SchemaDefinition:
        """Return the table definition for this record."""
        ...


type Entry = type | str


def resolve_entry(entry: Entry) -> type | None:
    """Resolve a registry entry to a class, or None if it does not exist."""
    if not isinstance(entry, str):
        return entry

    module_name, _, attribute = entry.partition(":")
    try:
        candidate = getattr(import_module(module_name), attribute)
    except (ImportError, AttributeError):
        return None
    return candidate if isclass(candidate) else None


def entry_name(entry: Entry) -> str:
    """Name of an entry for diagnostics."""
    if isinstance(entry, str):
        return entry
    return f"{entry.__module__}.{entry.__qualname__}"


class SchemaCatalog:
    """Ordered registry of record classes."""

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        """Initialize the catalog with optional entries."""
        self._entries: list[Entry] = list(entries)

    def __len__(self) -> int:
        """Number of registered entries, conforming or not."""
        return len(self._entries)

    def add(self, entry: Entry) -> None:
        """Register a class or a ``"module:Class"`` path."""
        self._entries.append(entry)

    def register[T: type](self, cls: T) -> T:
        """Class decorator registering the class in this catalog."""
        self.add(cls)
        return cls

    def discover(self) -> list[SchemaDefinition]:
        """Instantiate the conforming records and collect their definitions.

        Returns:
            Definitions in registration order. This order carries no dependency
            meaning; foreign keys are applied after every table exists.

        """
        definitions: list[SchemaDefinition] = []

        for entry in self._entries:
            name = entry_name(entry)
            cls = resolve_entry(entry)

            if cls is None:
                logger.warning("Skipping record %s because it doesn't exist.", name)
                continue

            if isabstract(cls) or getattr(cls, "_is_protocol", False):
                logger.warning(
                    "Skipping record %s because it's abstract or an interface.",
                    name,
                )
                continue

            try:
                record = cls()
            except TypeError:
                logger.warning(
                    "Skipping record %s because it can't be instantiated.",
                    name,
                )
                continue

            if not isinstance(record, TableDefining):
                logger.warning(
                    "Skipping record %s because it doesn't have a define_table() "
                    "method.",
                    name,
                )
                continue

            definitions.append(record.define_table())

        return definitions


def discover(catalog: SchemaCatalog) -> list[SchemaDefinition]:
    """Discover the definitions of a catalog."""
    return catalog.discover()
