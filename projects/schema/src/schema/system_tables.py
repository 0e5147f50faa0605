"""Fixed system tables that are not backed by a record class."""

from schema.columns import (
    boolean,
    datetime,
    integer,
    locale,
    medium_text,
    small_integer,
    string,
    text,
    tiny_integer,
)
from schema.types import ForeignKeySpec, IndexSpec, SchemaDefinition

INFO_TABLE = "info"
SEARCH_INDEX_TABLE = "searchindex"


def content_table() -> SchemaDefinition:
    """Titles and custom field values of elements, one row per locale."""
    return SchemaDefinition(
        "content",
        (
            integer("elementId", nullable=False),
            locale(nullable=False),
            string("title"),
        ),
        indexes=(IndexSpec(("elementId", "locale"), unique=True), IndexSpec(("title",))),
        foreign_keys=(
            ForeignKeySpec("elementId", "elements", on_delete="CASCADE"),
            ForeignKeySpec("locale", "locales", "locale", "CASCADE", "CASCADE"),
        ),
    )


def relations_table() -> SchemaDefinition:
    """Element-to-element relations made by relational fields."""
    return SchemaDefinition(
        "relations",
        (
            integer("fieldId", nullable=False),
            integer("sourceId", nullable=False),
            locale("sourceLocale"),
            integer("targetId", nullable=False),
            small_integer("sortOrder"),
        ),
        indexes=(
            IndexSpec(("fieldId", "sourceId", "sourceLocale", "targetId"), unique=True),
        ),
        foreign_keys=(
            ForeignKeySpec("fieldId", "fields", on_delete="CASCADE"),
            ForeignKeySpec("sourceId", "elements", on_delete="CASCADE"),
            ForeignKeySpec("sourceLocale", "locales", "locale", "CASCADE", "CASCADE"),
            ForeignKeySpec("targetId", "elements", on_delete="CASCADE"),
        ),
    )


def shunned_messages_table() -> SchemaDefinition:
    """Messages a user has dismissed."""
    return SchemaDefinition(
        "shunnedmessages",
        (
            integer("userId", nullable=False),
            string("message", nullable=False),
            datetime("expiryDate"),
        ),
        indexes=(IndexSpec(("userId", "message"), unique=True),),
        foreign_keys=(ForeignKeySpec("userId", "users", on_delete="CASCADE"),),
    )


def search_index_table() -> SchemaDefinition:
    """Keyword index used by site search.

    Uses a storage engine with full-text support on MySQL and a composite primary key
    instead of an id column. The full-text index is emitted as its own statement.
    """
    return SchemaDefinition(
        SEARCH_INDEX_TABLE,
        (
            integer("elementId", nullable=False),
            string("attribute", 25, nullable=False),
            integer("fieldId", nullable=False),
            locale(nullable=False),
            text("keywords", nullable=False),
        ),
        indexes=(IndexSpec(("keywords",), fulltext=True),),
        primary_key=("elementId", "attribute", "fieldId", "locale"),
        id_column=False,
        audit_columns=False,
        engine="MyISAM",
    )


def template_cache_tables() -> tuple[SchemaDefinition, ...]:
    """Template caches plus the elements and criteria that invalidate them.

    Element and criteria rows go away with their cache row. Deleting an element only
    removes its join rows, never a cache row.
    """
    caches = SchemaDefinition(
        "templatecaches",
        (
            string("cacheKey", nullable=False),
            locale(nullable=False),
            string("path"),
            datetime("expiryDate", nullable=False),
            medium_text("body", nullable=False),
        ),
        indexes=(IndexSpec(("expiryDate", "cacheKey", "locale", "path")),),
        foreign_keys=(
            ForeignKeySpec("locale", "locales", "locale", "CASCADE", "CASCADE"),
        ),
        audit_columns=False,
    )
    elements = SchemaDefinition(
        "templatecacheelements",
        (integer("cacheId", nullable=False), integer("elementId", nullable=False)),
        foreign_keys=(
            ForeignKeySpec("cacheId", "templatecaches", on_delete="CASCADE"),
            ForeignKeySpec("elementId", "elements", on_delete="CASCADE"),
        ),
        id_column=False,
        audit_columns=False,
    )
    criteria = SchemaDefinition(
        "templatecachecriteria",
        (
            integer("cacheId", nullable=False),
            string("type", 150, nullable=False),
            text("criteria", nullable=False),
        ),
        indexes=(IndexSpec(("type",)),),
        foreign_keys=(
            ForeignKeySpec("cacheId", "templatecaches", on_delete="CASCADE"),
        ),
        audit_columns=False,
    )
    return caches, elements, criteria


def info_table() -> SchemaDefinition:
    """Singleton row of system metadata."""
    return SchemaDefinition(
        INFO_TABLE,
        (
            string("version", 15, nullable=False),
            integer("build", nullable=False, unsigned=True),
            string("schemaVersion", 15, nullable=False),
            datetime("releaseDate", nullable=False),
            tiny_integer("edition", nullable=False, unsigned=True, default=0),
            string("siteName", 100, nullable=False),
            string("siteUrl", 255, nullable=False),
            string("timezone", 30),
            boolean("on", default=False),
            boolean("maintenance", default=False),
            string("track", 40, nullable=False),
        ),
    )


def asset_transform_index_table() -> SchemaDefinition:
    """Generation state of transformed asset files."""
    return SchemaDefinition(
        "assettransformindex",
        (
            integer("fileId", nullable=False),
            string("filename"),
            string("format"),
            string("location", nullable=False),
            integer("sourceId"),
            boolean("fileExists"),
            boolean("inProgress"),
            datetime("dateIndexed"),
        ),
        indexes=(IndexSpec(("sourceId", "fileId", "location")),),
    )


def rackspace_access_table() -> SchemaDefinition:
    """Cached access tokens of the Rackspace storage integration."""
    return SchemaDefinition(
        "rackspaceaccess",
        (
            string("connectionKey", nullable=False),
            string("token", nullable=False),
            string("storageUrl", nullable=False),
            string("cdnUrl", nullable=False),
        ),
        indexes=(IndexSpec(("connectionKey",), unique=True),),
    )


def deprecation_errors_table() -> SchemaDefinition:
    """Deprecated API usage, recorded at runtime."""
    return SchemaDefinition(
        "deprecationerrors",
        (
            string("key", nullable=False),
            string("fingerprint", nullable=False),
            datetime("lastOccurrence", nullable=False),
            string("file", nullable=False),
            small_integer("line", nullable=False, unsigned=True),
            string("class"),
            string("method"),
            string("template"),
            small_integer("templateLine", unsigned=True),
            string("message"),
            text("traces"),
        ),
        indexes=(IndexSpec(("key", "fingerprint"), unique=True),),
    )


def system_tables() -> list[SchemaDefinition]:
    """All fixed system tables in creation order."""
    return [
        content_table(),
        relations_table(),
        shunned_messages_table(),
        search_index_table(),
        *template_cache_tables(),
        info_table(),
        asset_transform_index_table(),
        rackspace_access_table(),
        deprecation_errors_table(),
    ]
