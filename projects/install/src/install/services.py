"""Collaborators used after the schema is committed, with SQL-backed defaults.

Every ``save`` returns whether it succeeded and leaves per-attribute messages on the
model. Each save runs in its own savepoint, so a failure undoes only that save.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import re
import secrets
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol
from uuid import uuid4

from sqlalchemy import Column, MetaData, Table, Text, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateColumn

from install.models import (
    Entry,
    EntryType,
    Field,
    FieldGroup,
    FieldLayout,
    FieldLayoutTab,
    Model,
    Section,
    SectionType,
    TagGroup,
    User,
)
from install.transaction import savepoint

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = 100_000
MAX_LOCALE_LENGTH = 12
MAX_SETTINGS_CATEGORY_LENGTH = 15

# Field types that store their values in the relations table instead of content
RELATIONAL_FIELD_TYPES = frozenset(("Assets", "Categories", "Entries", "Tags", "Users"))


def hash_password(
    password: str,
    salt: str | None = None,
    iterations: int = PBKDF2_ITERATIONS,
) -> str:
    """Hash a password with a random salt."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt.encode(),
        iterations,
    ).hex()
    return f"pbkdf2_sha256${iterations}${salt}${digest}"


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash."""
    try:
        algorithm, iterations, salt, _digest = (password_hash or "").split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    candidate = hash_password(password, salt, int(iterations))
    return hmac.compare_digest(candidate, password_hash or "")


def slugify(title: str) -> str:
    """Lowercase, dash separated slug of a title."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def utc_now() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(UTC).replace(tzinfo=None)


def content_column(handle: str) -> Column[Any]:
    """Column of the content table holding a field's values."""
    return Column(f"field_{handle}", Text())


class LocaleStore(Protocol):
    """Adds site locales."""

    def add(self, locale: str, sort_order: int) -> bool: ...


class UserStore(Protocol):
    """Saves user accounts."""

    def save(self, user: User) -> bool: ...


class SessionStore(Protocol):
    """Logs users in."""

    def login(self, username: str, password: str) -> bool: ...


class SettingsStore(Protocol):
    """Saves named groups of system settings."""

    def save_settings(self, namespace: str, settings: Mapping[str, Any]) -> bool: ...


class TagStore(Protocol):
    """Saves tag groups."""

    def save_tag_group(self, group: TagGroup) -> bool: ...


class FieldStore(Protocol):
    """Saves field groups and fields and assembles layouts."""

    def save_group(self, group: FieldGroup) -> bool: ...

    def save_field(self, field: Field) -> bool: ...

    def assemble_layout(
        self,
        tabs: Mapping[str, Sequence[int | None]],
        required: Iterable[int | None] = (),
    ) -> FieldLayout: ...


class SectionStore(Protocol):
    """Saves sections and their entry types."""

    def save_section(self, section: Section) -> bool: ...

    def save_entry_type(self, entry_type: EntryType) -> bool: ...


class EntryStore(Protocol):
    """Reads and saves entries."""

    def first_entry(self, section_id: int | None) -> Entry | None: ...

    def save_entry(self, entry: Entry) -> bool: ...


@dataclass
class Collaborators:
    """Everything the installer needs once the schema exists."""

    locales: LocaleStore
    users: UserStore
    sessions: SessionStore
    settings: SettingsStore
    tags: TagStore
    fields: FieldStore
    sections: SectionStore
    entries: EntryStore


class TableService:
    """Shared plumbing of the SQL-backed collaborators."""

    def __init__(self, connection: Connection, metadata: MetaData) -> None:
        """Initialize the service on the installation connection and its tables."""
        self._connection = connection
        self._metadata = metadata

    def table(self, name: str) -> Table:
        """Look up an installed table."""
        return self._metadata.tables[name]

    def _insert(self, table_name: str, **values: Any) -> int:  # noqa: ANN401
        table = self.table(table_name)
        if "uid" in table.c and "uid" not in values:
            values["uid"] = str(uuid4())
        result = self._connection.execute(insert(table).values(**values))
        return result.inserted_primary_key[0]

    def _create_element(self, element_type: str, *, enabled: bool = True) -> int:
        return self._insert("elements", type=element_type, enabled=enabled)

    def _save_layout(self, layout: FieldLayout) -> int:
        layout_id = self._insert("fieldlayouts", type=layout.type)
        for tab_order, tab in enumerate(layout.tabs, start=1):
            tab_id = self._insert(
                "fieldlayouttabs",
                layoutId=layout_id,
                name=tab.name,
                sortOrder=tab_order,
            )
            for field_order, field_id in enumerate(tab.field_ids, start=1):
                self._insert(
                    "fieldlayoutfields",
                    layoutId=layout_id,
                    tabId=tab_id,
                    fieldId=field_id,
                    required=field_id in layout.required_field_ids,
                    sortOrder=field_order,
                )
        layout.id = layout_id
        return layout_id

    def _persist[T](self, model: Model, label: str, work: Callable[[], T]) -> T | None:
        """Run the writes of one save in a savepoint.

        Returns:
            The result of ``work``, or None after recording the failure on the model.

        """
        try:
            with savepoint(self._connection):
                return work()
        except SQLAlchemyError as err:
            logger.warning("Could not save the %s: %s", label, err)
            model.add_error("id", f"Could not save the {label}.")
            return None


class LocaleService(TableService):
    """Adds rows to the locales table."""

    def add(self, locale: str, sort_order: int) -> bool:
        if not locale or len(locale) > MAX_LOCALE_LENGTH:
            logger.warning("Invalid locale '%s'.", locale)
            return False
        try:
            with savepoint(self._connection):
                self._connection.execute(
                    insert(self.table("locales")).values(
                        locale=locale,
                        sortOrder=sort_order,
                        uid=str(uuid4()),
                    ),
                )
        except SQLAlchemyError as err:
            logger.warning("Could not add the locale %s: %s", locale, err)
            return False
        return True


class UserService(TableService):
    """Creates user accounts."""

    def validate(self, user: User) -> bool:
        user.errors.clear()
        user.require(username=user.username, email=user.email)
        if len(user.username) > 100:  # noqa: PLR2004
            user.add_error("username", "username should contain at most 100 characters.")
        if user.username and re.search(r"\s", user.username):
            user.add_error("username", "username cannot contain spaces.")
        if user.email and ("@" not in user.email or len(user.email) > 255):  # noqa: PLR2004
            user.add_error("email", "email is not a valid email address.")
        if len(user.new_password) < MIN_PASSWORD_LENGTH:
            user.add_error(
                "newPassword",
                f"Passwords must be at least {MIN_PASSWORD_LENGTH} characters long.",
            )
        if user.errors:
            return False

        users = self.table("users")
        with savepoint(self._connection):
            taken = self._connection.execute(
                select(users.c.username, users.c.email).where(
                    or_(users.c.username == user.username, users.c.email == user.email),
                ),
            ).all()
        for username, email in taken:
            if username == user.username:
                user.add_error("username", f'Username "{username}" has already been taken.')
            if email == user.email:
                user.add_error("email", f'Email "{email}" has already been taken.')
        return not user.errors

    def save(self, user: User) -> bool:
        if not self.validate(user):
            return False

        def work() -> int:
            user_id = self._create_element("User")
            self._insert(
                "users",
                id=user_id,
                username=user.username,
                email=user.email,
                password=hash_password(user.new_password),
                admin=user.admin,
                lastPasswordChangeDate=utc_now(),
            )
            return user_id

        user_id = self._persist(user, "user", work)
        if user_id is None:
            return False
        user.id = user_id
        return True


class SessionService(TableService):
    """Verifies credentials and opens sessions."""

    def login(self, username: str, password: str) -> bool:
        users = self.table("users")
        try:
            with savepoint(self._connection):
                row = self._connection.execute(
                    select(users.c.id, users.c.password).where(
                        users.c.username == username,
                    ),
                ).first()
                if row is None or not verify_password(password, row.password):
                    logger.warning("Invalid credentials for %s.", username)
                    return False
                self._insert("sessions", userId=row.id, token=secrets.token_urlsafe(48))
                self._connection.execute(
                    update(users).where(users.c.id == row.id).values(lastLoginDate=utc_now()),
                )
        except SQLAlchemyError as err:
            logger.warning("Could not open a session for %s: %s", username, err)
            return False
        return True


class SettingsService(TableService):
    """Stores settings as JSON, one row per category."""

    def save_settings(self, namespace: str, settings: Mapping[str, Any]) -> bool:
        if not namespace or len(namespace) > MAX_SETTINGS_CATEGORY_LENGTH:
            logger.warning("Invalid settings category '%s'.", namespace)
            return False

        table = self.table("systemsettings")
        encoded = json.dumps(dict(settings))
        try:
            with savepoint(self._connection):
                existing = self._connection.execute(
                    select(table.c.id).where(table.c.category == namespace),
                ).scalar_one_or_none()
                if existing is None:
                    self._insert("systemsettings", category=namespace, settings=encoded)
                else:
                    self._connection.execute(
                        update(table)
                        .where(table.c.id == existing)
                        .values(settings=encoded, dateUpdated=utc_now()),
                    )
        except SQLAlchemyError as err:
            logger.warning("Could not save the %s settings: %s", namespace, err)
            return False
        return True


class TagService(TableService):
    """Creates tag groups, each with its own field layout."""

    def save_tag_group(self, group: TagGroup) -> bool:
        group.errors.clear()
        group.require(name=group.name, handle=group.handle)
        group.check_handle(group.handle)
        if group.errors:
            return False

        def work() -> int:
            layout_id = self._save_layout(FieldLayout(type="Tag"))
            return self._insert(
                "taggroups",
                name=group.name,
                handle=group.handle,
                fieldLayoutId=layout_id,
            )

        group.id = self._persist(group, "tag group", work)
        return group.id is not None


class FieldService(TableService):
    """Creates field groups and fields."""

    def save_group(self, group: FieldGroup) -> bool:
        group.errors.clear()
        group.require(name=group.name)
        if group.errors:
            return False

        group.id = self._persist(
            group,
            "field group",
            lambda: self._insert("fieldgroups", name=group.name),
        )
        return group.id is not None

    def save_field(self, field: Field) -> bool:
        field.errors.clear()
        field.require(
            groupId=field.group_id,
            name=field.name,
            handle=field.handle,
            type=field.type,
        )
        field.check_handle(field.handle, max_length=58)
        if field.errors:
            return False

        stores_content = field.type not in RELATIONAL_FIELD_TYPES

        def work() -> int:
            field_id = self._insert(
                "fields",
                groupId=field.group_id,
                name=field.name,
                handle=field.handle,
                translatable=field.translatable,
                type=field.type,
                settings=json.dumps(field.settings),
            )
            if stores_content:
                self._add_content_column(field.handle)
            return field_id

        field.id = self._persist(field, "field", work)
        if field.id is None:
            return False
        if stores_content:
            self.table("content").append_column(content_column(field.handle))
        return True

    def assemble_layout(
        self,
        tabs: Mapping[str, Sequence[int | None]],
        required: Iterable[int | None] = (),
    ) -> FieldLayout:
        """Build a layout, leaving out fields that were never saved."""
        return FieldLayout(
            tabs=[
                FieldLayoutTab(name, [field_id for field_id in ids if field_id is not None])
                for name, ids in tabs.items()
            ],
            required_field_ids={field_id for field_id in required if field_id is not None},
        )

    def _add_content_column(self, handle: str) -> None:
        content = self.table("content")
        preparer = self._connection.dialect.identifier_preparer
        # Compiled against a scratch table so the real one only changes on success
        scratch = Table(content.name, MetaData(), content_column(handle))
        column_ddl = CreateColumn(scratch.c[f"field_{handle}"]).compile(
            dialect=self._connection.dialect,
        )
        self._connection.exec_driver_sql(
            f"ALTER TABLE {preparer.format_table(content)} ADD COLUMN {column_ddl}",
        )


class SectionService(TableService):
    """Creates sections, their default entry type and, for singles, their entry."""

    def validate(self, section: Section) -> bool:
        section.errors.clear()
        section.require(name=section.name, handle=section.handle)
        section.check_handle(section.handle)
        if not section.locales:
            section.add_error("locales", "At least one locale must be selected.")
        for locale in section.locales.values():
            if (section.has_urls or section.type is SectionType.SINGLE) and not (
                locale.url_format
            ):
                section.add_error("urlFormat", f"URL Format for {locale.locale} cannot be blank.")
        return not section.errors

    def save_section(self, section: Section) -> bool:
        if not self.validate(section):
            return False

        def work() -> tuple[int, int]:
            section_id = self._insert(
                "sections",
                name=section.name,
                handle=section.handle,
                type=str(section.type),
                hasUrls=section.has_urls,
                template=section.template,
            )
            for locale in section.locales.values():
                self._insert(
                    "sections_i18n",
                    sectionId=section_id,
                    locale=locale.locale,
                    enabledByDefault=locale.enabled_by_default,
                    urlFormat=locale.url_format,
                )
            entry_type_id = self._insert(
                "entrytypes",
                sectionId=section_id,
                name=section.name,
                handle=section.handle,
                sortOrder=1,
            )
            if section.type is SectionType.SINGLE:
                self._create_single_entry(section, section_id, entry_type_id)
            return section_id, entry_type_id

        ids = self._persist(section, "section", work)
        if ids is None:
            return False

        section.id, entry_type_id = ids
        section.entry_types = [
            EntryType(
                section_id=section.id,
                name=section.name,
                handle=section.handle,
                id=entry_type_id,
            ),
        ]
        return True

    def save_entry_type(self, entry_type: EntryType) -> bool:
        entry_type.errors.clear()
        entry_type.require(
            sectionId=entry_type.section_id,
            name=entry_type.name,
            handle=entry_type.handle,
        )
        entry_type.check_handle(entry_type.handle)
        if entry_type.errors:
            return False

        table = self.table("entrytypes")

        def work() -> int:
            layout_id = (
                self._save_layout(entry_type.field_layout)
                if entry_type.field_layout
                else None
            )
            values = {
                "sectionId": entry_type.section_id,
                "name": entry_type.name,
                "handle": entry_type.handle,
                "hasTitleField": entry_type.has_title_field,
                "titleLabel": entry_type.title_label,
                "fieldLayoutId": layout_id,
            }
            if entry_type.id is None:
                return self._insert("entrytypes", **values)
            self._connection.execute(
                update(table).where(table.c.id == entry_type.id).values(**values),
            )
            return entry_type.id

        entry_type.id = self._persist(entry_type, "entry type", work)
        return entry_type.id is not None

    def _create_single_entry(
        self,
        section: Section,
        section_id: int,
        entry_type_id: int,
    ) -> None:
        entry_id = self._create_element("Entry")
        for locale in section.locales.values():
            self._insert(
                "elements_i18n",
                elementId=entry_id,
                locale=locale.locale,
                slug=section.handle,
                uri=locale.url_format,
            )
            self._insert(
                "content",
                elementId=entry_id,
                locale=locale.locale,
                title=section.name,
            )
        self._insert(
            "entries",
            id=entry_id,
            sectionId=section_id,
            typeId=entry_type_id,
            postDate=utc_now(),
        )


class EntryService(TableService):
    """Reads and writes entries and their content."""

    def first_entry(self, section_id: int | None) -> Entry | None:
        if section_id is None:
            return None

        entries = self.table("entries")
        content = self.table("content")
        query = (
            select(
                entries.c.id,
                entries.c.typeId,
                entries.c.authorId,
                entries.c.postDate,
                content.c.locale,
                content.c.title,
            )
            .join(content, content.c.elementId == entries.c.id)
            .where(entries.c.sectionId == section_id)
            .order_by(entries.c.id)
            .limit(1)
        )
        with savepoint(self._connection):
            row = self._connection.execute(query).first()

        if row is None:
            return None
        return Entry(
            section_id=section_id,
            type_id=row.typeId,
            author_id=row.authorId,
            post_date=row.postDate,
            locale=row.locale,
            title=row.title or "",
            id=row.id,
        )

    def save_entry(self, entry: Entry) -> bool:
        entry.errors.clear()
        entry.require(sectionId=entry.section_id, locale=entry.locale, title=entry.title)
        if entry.errors:
            return False

        content = self.table("content")
        values: dict[str, Any] = {"title": entry.title}
        for handle, value in entry.fields.items():
            if f"field_{handle}" in content.c:
                values[f"field_{handle}"] = value
            else:
                logger.debug("Ignoring unknown field %s.", handle)

        def work() -> int:
            if entry.id is None:
                return self._insert_entry(entry, values)
            self._update_entry(entry, values)
            return entry.id

        entry_id = self._persist(entry, "entry", work)
        if entry_id is None:
            return False
        entry.id = entry_id
        return True

    def _insert_entry(self, entry: Entry, values: dict[str, Any]) -> int:
        post_date = entry.post_date or utc_now()
        slug = entry.slug or slugify(entry.title)
        entry_id = self._create_element("Entry", enabled=entry.enabled)
        self._insert(
            "elements_i18n",
            elementId=entry_id,
            locale=entry.locale,
            slug=slug,
            uri=self._render_uri(entry, slug, post_date),
        )
        self._insert(
            "entries",
            id=entry_id,
            sectionId=entry.section_id,
            typeId=entry.type_id,
            authorId=entry.author_id,
            postDate=post_date,
        )
        self._insert("content", elementId=entry_id, locale=entry.locale, **values)
        entry.post_date = post_date
        entry.slug = slug
        return entry_id

    def _update_entry(self, entry: Entry, values: dict[str, Any]) -> None:
        entries = self.table("entries")
        content = self.table("content")
        self._connection.execute(
            update(entries)
            .where(entries.c.id == entry.id)
            .values(typeId=entry.type_id, authorId=entry.author_id),
        )
        result = self._connection.execute(
            update(content)
            .where(content.c.elementId == entry.id, content.c.locale == entry.locale)
            .values(**values),
        )
        if not result.rowcount:
            self._insert("content", elementId=entry.id, locale=entry.locale, **values)

    def _render_uri(self, entry: Entry, slug: str, post_date: datetime) -> str | None:
        sections_i18n = self.table("sections_i18n")
        url_format = self._connection.execute(
            select(sections_i18n.c.urlFormat).where(
                sections_i18n.c.sectionId == entry.section_id,
                sections_i18n.c.locale == entry.locale,
            ),
        ).scalar_one_or_none()
        if not url_format:
            return None
        return url_format.replace("{postDate.year}", str(post_date.year)).replace(
            "{slug}",
            slug,
        )


def default_collaborators(connection: Connection, metadata: MetaData) -> Collaborators:
    """SQL-backed collaborators working on the installed tables."""
    fields = FieldService(connection, metadata)
    sections = SectionService(connection, metadata)
    return Collaborators(
        locales=LocaleService(connection, metadata),
        users=UserService(connection, metadata),
        sessions=SessionService(connection, metadata),
        settings=SettingsService(connection, metadata),
        tags=TagService(connection, metadata),
        fields=fields,
        sections=sections,
        entries=EntryService(connection, metadata),
    )
