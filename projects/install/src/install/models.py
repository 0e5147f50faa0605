"""Models saved by the default collaborators during content seeding."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum, auto
from typing import Any

HANDLE_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9_]*")


class SectionType(StrEnum):
    """Kinds of sections."""

    SINGLE = auto()
    CHANNEL = auto()


@dataclass
class Model:
    """Base for models that collect per-attribute validation messages."""

    errors: dict[str, list[str]] = field(
        default_factory=dict,
        init=False,
        repr=False,
        compare=False,
    )

    def add_error(self, attribute: str, message: str) -> None:
        """Record a validation message for an attribute."""
        self.errors.setdefault(attribute, []).append(message)

    def require(self, **values: Any) -> None:  # noqa: ANN401
        """Record an error for every blank value."""
        for attribute, value in values.items():
            if value is None or value == "":
                self.add_error(attribute, f"{attribute} cannot be blank.")

    def check_handle(self, handle: str, max_length: int = 255) -> None:
        """Record an error for a malformed handle."""
        if handle and not HANDLE_PATTERN.fullmatch(handle):
            self.add_error("handle", f"'{handle}' isn't a valid handle.")
        if len(handle) > max_length:
            self.add_error(
                "handle",
                f"handle should contain at most {max_length} characters.",
            )


@dataclass
class User(Model):
    """A user account."""

    username: str = ""
    email: str = ""
    new_password: str = field(default="", repr=False)
    admin: bool = False
    id: int | None = None


@dataclass
class TagGroup(Model):
    """A group of tags."""

    name: str = ""
    handle: str = ""
    id: int | None = None


@dataclass
class FieldGroup(Model):
    """A group of fields."""

    name: str = ""
    id: int | None = None


@dataclass
class Field(Model):
    """A custom field."""

    group_id: int | None = None
    name: str = ""
    handle: str = ""
    type: str = ""
    translatable: bool = False
    settings: dict[str, Any] = field(default_factory=dict)
    id: int | None = None


@dataclass
class FieldLayoutTab:
    """A named tab with ordered fields."""

    name: str
    field_ids: list[int]


@dataclass
class FieldLayout:
    """Tabs of fields shown when editing an element."""

    type: str = "Entry"
    tabs: list[FieldLayoutTab] = field(default_factory=list)
    required_field_ids: set[int] = field(default_factory=set)
    id: int | None = None

    @property
    def field_ids(self) -> list[int]:
        """All fields of the layout in tab order."""
        return [field_id for tab in self.tabs for field_id in tab.field_ids]


@dataclass
class SectionLocale:
    """URL formats of a section in one locale."""

    locale: str
    url_format: str | None = None
    enabled_by_default: bool = True


@dataclass
class EntryType(Model):
    """An entry type of a section."""

    section_id: int | None = None
    name: str = ""
    handle: str = ""
    has_title_field: bool = True
    title_label: str = "Title"
    field_layout: FieldLayout | None = None
    id: int | None = None


@dataclass
class Section(Model):
    """A single or a channel."""

    name: str = ""
    handle: str = ""
    type: SectionType = SectionType.CHANNEL
    has_urls: bool = True
    template: str | None = None
    locales: dict[str, SectionLocale] = field(default_factory=dict)
    entry_types: list[EntryType] = field(default_factory=list)
    id: int | None = None


@dataclass
class Entry(Model):
    """An entry and its content in one locale."""

    section_id: int | None = None
    type_id: int | None = None
    locale: str = ""
    author_id: int | None = None
    enabled: bool = True
    title: str = ""
    slug: str = ""
    post_date: datetime | None = None
    fields: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
