"""Record classes that make up the default schema catalog."""

from abc import ABC, abstractmethod

from schema.catalog import SchemaCatalog
from schema.columns import (
    boolean,
    datetime,
    integer,
    locale,
    small_integer,
    string,
    text,
    tiny_integer,
)
from schema.types import ForeignKeySpec, IndexSpec, SchemaDefinition

CATALOG = SchemaCatalog()


class Record(ABC):
    """A persisted entity that knows the shape of its table."""

    @abstractmethod
    def define_table(self) -> SchemaDefinition:
        """Return the table definition for this record."""


def locale_key(column: str = "locale") -> ForeignKeySpec:
    """Foreign key to ``locales`` that follows locale renames and deletes."""
    return ForeignKeySpec(column, "locales", "locale", "CASCADE", "CASCADE")


@CATALOG.register
class LocaleRecord(Record):
    """Locales enabled for the site."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "locales",
            (locale(nullable=False), small_integer("sortOrder", unsigned=True)),
            indexes=(IndexSpec(("sortOrder",)),),
            primary_key=("locale",),
            id_column=False,
            source=type(self).__name__,
        )


@CATALOG.register
class ElementRecord(Record):
    """Base row shared by every content element."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "elements",
            (
                string("type", 150, nullable=False),
                boolean("enabled", default=True),
                boolean("archived", default=False),
            ),
            indexes=(
                IndexSpec(("type",)),
                IndexSpec(("enabled",)),
                IndexSpec(("archived",)),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class ElementLocaleRecord(Record):
    """Per-locale slug and URI of an element."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "elements_i18n",
            (
                integer("elementId", nullable=False),
                locale(nullable=False),
                string("slug"),
                string("uri"),
                boolean("enabled", default=True),
            ),
            indexes=(
                IndexSpec(("elementId", "locale"), unique=True),
                IndexSpec(("uri", "locale"), unique=True),
                IndexSpec(("slug", "locale")),
                IndexSpec(("enabled",)),
            ),
            foreign_keys=(
                ForeignKeySpec("elementId", "elements", on_delete="CASCADE"),
                locale_key(),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class UserRecord(Record):
    """User accounts. A user shares its id with its element row."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "users",
            (
                integer("id", nullable=False),
                string("username", 100, nullable=False),
                string("firstName", 100),
                string("lastName", 100),
                string("email", nullable=False),
                string("password"),
                locale("preferredLocale"),
                boolean("admin", default=False),
                boolean("client", default=False),
                boolean("locked", default=False),
                boolean("suspended", default=False),
                boolean("pending", default=False),
                boolean("archived", default=False),
                datetime("lastLoginDate"),
                tiny_integer("invalidLoginCount", unsigned=True),
                boolean("passwordResetRequired", default=False),
                datetime("lastPasswordChangeDate"),
            ),
            indexes=(
                IndexSpec(("username",), unique=True),
                IndexSpec(("email",), unique=True),
            ),
            foreign_keys=(
                ForeignKeySpec("id", "elements", on_delete="CASCADE"),
                ForeignKeySpec(
                    "preferredLocale",
                    "locales",
                    "locale",
                    "SET NULL",
                    "CASCADE",
                ),
            ),
            primary_key=("id",),
            id_column=False,
            source=type(self).__name__,
        )


@CATALOG.register
class SessionRecord(Record):
    """Authenticated sessions."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "sessions",
            (integer("userId", nullable=False), string("token", 100, nullable=False)),
            indexes=(
                IndexSpec(("uid",)),
                IndexSpec(("token",)),
                IndexSpec(("dateUpdated",)),
            ),
            foreign_keys=(ForeignKeySpec("userId", "users", on_delete="CASCADE"),),
            source=type(self).__name__,
        )


@CATALOG.register
class SystemSettingsRecord(Record):
    """Named groups of system settings stored as JSON."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "systemsettings",
            (string("category", 15, nullable=False), text("settings")),
            indexes=(IndexSpec(("category",), unique=True),),
            source=type(self).__name__,
        )


@CATALOG.register
class FieldGroupRecord(Record):
    """Groups of fields."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "fieldgroups",
            (string("name", nullable=False),),
            indexes=(IndexSpec(("name",), unique=True),),
            source=type(self).__name__,
        )


@CATALOG.register
class FieldRecord(Record):
    """Custom fields."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "fields",
            (
                integer("groupId"),
                string("name", nullable=False),
                string("handle", 58, nullable=False),
                string("context", nullable=False, default="global"),
                text("instructions"),
                boolean("translatable", default=False),
                string("type", 150, nullable=False),
                text("settings"),
            ),
            indexes=(
                IndexSpec(("handle", "context"), unique=True),
                IndexSpec(("context",)),
            ),
            foreign_keys=(
                ForeignKeySpec("groupId", "fieldgroups", on_delete="CASCADE"),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class FieldLayoutRecord(Record):
    """Field layouts attached to entry types and tag groups."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "fieldlayouts",
            (string("type", 150, nullable=False),),
            indexes=(IndexSpec(("type",)),),
            source=type(self).__name__,
        )


@CATALOG.register
class FieldLayoutTabRecord(Record):
    """Tabs of a field layout."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "fieldlayouttabs",
            (
                integer("layoutId", nullable=False),
                string("name", nullable=False),
                tiny_integer("sortOrder", unsigned=True),
            ),
            indexes=(IndexSpec(("sortOrder",)),),
            foreign_keys=(
                ForeignKeySpec("layoutId", "fieldlayouts", on_delete="CASCADE"),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class FieldLayoutFieldRecord(Record):
    """Placement of a field on a layout tab."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "fieldlayoutfields",
            (
                integer("layoutId", nullable=False),
                integer("tabId", nullable=False),
                integer("fieldId", nullable=False),
                boolean("required", default=False),
                tiny_integer("sortOrder", unsigned=True),
            ),
            indexes=(
                IndexSpec(("layoutId", "fieldId"), unique=True),
                IndexSpec(("sortOrder",)),
            ),
            foreign_keys=(
                ForeignKeySpec("layoutId", "fieldlayouts", on_delete="CASCADE"),
                ForeignKeySpec("tabId", "fieldlayouttabs", on_delete="CASCADE"),
                ForeignKeySpec("fieldId", "fields", on_delete="CASCADE"),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class SectionRecord(Record):
    """Sections: singles and channels."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "sections",
            (
                string("name", nullable=False),
                string("handle", nullable=False),
                string("type", 9, nullable=False, default="channel"),
                boolean("hasUrls", default=True),
                string("template", 500),
                boolean("enableVersioning", default=False),
            ),
            indexes=(
                IndexSpec(("name",), unique=True),
                IndexSpec(("handle",), unique=True),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class SectionLocaleRecord(Record):
    """Per-locale URL formats of a section."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "sections_i18n",
            (
                integer("sectionId", nullable=False),
                locale(nullable=False),
                boolean("enabledByDefault", default=True),
                string("urlFormat"),
                string("nestedUrlFormat"),
            ),
            indexes=(IndexSpec(("sectionId", "locale"), unique=True),),
            foreign_keys=(
                ForeignKeySpec("sectionId", "sections", on_delete="CASCADE"),
                locale_key(),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class EntryTypeRecord(Record):
    """Entry types of a section."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "entrytypes",
            (
                integer("sectionId", nullable=False),
                integer("fieldLayoutId"),
                string("name", nullable=False),
                string("handle", nullable=False),
                boolean("hasTitleField", default=True),
                string("titleLabel", default="Title"),
                string("titleFormat"),
                small_integer("sortOrder"),
            ),
            indexes=(
                IndexSpec(("name", "sectionId"), unique=True),
                IndexSpec(("handle", "sectionId"), unique=True),
            ),
            foreign_keys=(
                ForeignKeySpec("sectionId", "sections", on_delete="CASCADE"),
                ForeignKeySpec("fieldLayoutId", "fieldlayouts", on_delete="SET NULL"),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class EntryRecord(Record):
    """Entries. An entry shares its id with its element row."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "entries",
            (
                integer("id", nullable=False),
                integer("sectionId", nullable=False),
                integer("typeId"),
                integer("authorId"),
                datetime("postDate"),
                datetime("expiryDate"),
            ),
            indexes=(IndexSpec(("postDate",)), IndexSpec(("expiryDate",))),
            foreign_keys=(
                ForeignKeySpec("id", "elements", on_delete="CASCADE"),
                ForeignKeySpec("sectionId", "sections", on_delete="CASCADE"),
                ForeignKeySpec("typeId", "entrytypes", on_delete="CASCADE"),
                ForeignKeySpec("authorId", "users", on_delete="CASCADE"),
            ),
            primary_key=("id",),
            id_column=False,
            source=type(self).__name__,
        )


@CATALOG.register
class TagGroupRecord(Record):
    """Tag groups."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "taggroups",
            (
                string("name", nullable=False),
                string("handle", nullable=False),
                integer("fieldLayoutId"),
            ),
            indexes=(
                IndexSpec(("name",), unique=True),
                IndexSpec(("handle",), unique=True),
            ),
            foreign_keys=(
                ForeignKeySpec("fieldLayoutId", "fieldlayouts", on_delete="SET NULL"),
            ),
            source=type(self).__name__,
        )


@CATALOG.register
class TagRecord(Record):
    """Tags. A tag shares its id with its element row."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "tags",
            (integer("id", nullable=False), integer("groupId", nullable=False)),
            foreign_keys=(
                ForeignKeySpec("id", "elements", on_delete="CASCADE"),
                ForeignKeySpec("groupId", "taggroups", on_delete="CASCADE"),
            ),
            primary_key=("id",),
            id_column=False,
            source=type(self).__name__,
        )


@CATALOG.register
class MigrationRecord(Record):
    """Applied migrations, read by the upgrade runner."""

    def define_table(self) -> SchemaDefinition:
        return SchemaDefinition(
            "migrations",
            (string("version", nullable=False), datetime("applyTime", nullable=False)),
            indexes=(IndexSpec(("version",), unique=True),),
            source=type(self).__name__,
        )
