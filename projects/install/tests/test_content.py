"""Tests for default content seeding."""

from collections.abc import Iterable, Mapping, Sequence
from itertools import count
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from install.content import ContentSeeder, render_copy, site_name_from_url
from install.models import (
    Entry,
    EntryType,
    Field,
    FieldGroup,
    FieldLayout,
    FieldLayoutTab,
    Model,
    Section,
    TagGroup,
    User,
)
from install.services import Collaborators
from install.types import InstallationInputs

INPUTS = InstallationInputs(
    locale="en-us",
    site_name="Example Site",
    site_url="https://example.com/",
    email="admin@example.com",
    username="admin",
    password="secret-password",
)


class FakeServices:
    """In-memory collaborators that fail the saves they are told to fail."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.failing = set(failing)
        self.saved: list[str] = []
        self.entries: list[Entry] = []
        self.layouts: dict[str, FieldLayout] = {}
        self._ids = count(1)

    def _save(self, key: str, model: Model) -> bool:
        if key in self.failing:
            model.add_error("id", f"{key} failed")
            return False
        model.id = next(self._ids)  # type: ignore[attr-defined]
        self.saved.append(key)
        return True

    def add(self, locale: str, sort_order: int) -> bool:
        return True

    def save(self, user: User) -> bool:
        return self._save("user", user)

    def login(self, username: str, password: str) -> bool:
        return True

    def save_settings(self, namespace: str, settings: Mapping[str, Any]) -> bool:
        return True

    def save_tag_group(self, group: TagGroup) -> bool:
        return self._save("tag group", group)

    def save_group(self, group: FieldGroup) -> bool:
        return self._save("field group", group)

    def save_field(self, field: Field) -> bool:
        return self._save(f"field {field.handle}", field)

    def assemble_layout(
        self,
        tabs: Mapping[str, Sequence[int | None]],
        required: Iterable[int | None] = (),
    ) -> FieldLayout:
        return FieldLayout(
            tabs=[
                FieldLayoutTab(name, [i for i in ids if i is not None])
                for name, ids in tabs.items()
            ],
            required_field_ids={i for i in required if i is not None},
        )

    def save_section(self, section: Section) -> bool:
        if not self._save(f"section {section.handle}", section):
            return False
        section.entry_types = [
            EntryType(
                section_id=section.id,
                name=section.name,
                handle=section.handle,
                id=next(self._ids),
            ),
        ]
        return True

    def save_entry_type(self, entry_type: EntryType) -> bool:
        if entry_type.field_layout:
            self.layouts[entry_type.handle] = entry_type.field_layout
        return self._save(f"entry type {entry_type.handle}", entry_type)

    def first_entry(self, section_id: int | None) -> Entry | None:
        if "first entry" in self.failing:
            msg = "SELECT"
            raise OperationalError(msg, {}, Exception("database is locked"))
        return Entry(section_id=section_id) if section_id else None

    def save_entry(self, entry: Entry) -> bool:
        self.entries.append(entry)
        return self._save(f"entry {entry.title}", entry)


def collaborators(fake: FakeServices) -> Collaborators:
    """Use one fake for every collaborator."""
    return Collaborators(fake, fake, fake, fake, fake, fake, fake, fake)


def seed(fake: FakeServices) -> list[str]:
    """Run the seeder with an administrator id of 42."""
    return ContentSeeder(collaborators(fake), INPUTS, 42).seed()


def test_everything_saved() -> None:
    """Test that all default content is created without warnings."""
    fake = FakeServices()

    assert seed(fake) == []
    assert fake.saved == [
        "tag group",
        "field group",
        "field body",
        "field tags",
        "section homepage",
        "entry type homepage",
        "entry Welcome to Example.com!",
        "section news",
        "entry type news",
        "entry We just installed the CMS!",
    ]

    news = fake.entries[-1]
    assert news.author_id == 42
    assert news.enabled
    assert "<!--pagebreak-->" in news.fields["body"]
    assert fake.layouts["news"].field_ids == [3, 4]
    assert fake.layouts["news"].required_field_ids == {3}


def test_failed_field_does_not_stop_sections() -> None:
    """Test that sections are still created after a field fails."""
    fake = FakeServices(failing={"field body"})

    warnings = seed(fake)

    assert warnings == ["Could not save the Body field."]
    assert "section homepage" in fake.saved
    assert "section news" in fake.saved
    assert fake.layouts["homepage"].field_ids == []


def test_failed_section_skips_its_entry_type() -> None:
    """Test that a missing section only affects its own steps."""
    fake = FakeServices(failing={"section homepage"})

    warnings = seed(fake)

    assert warnings == [
        "Could not save the Homepage single section.",
        "The Homepage section has no entry type.",
        "Could not find the Homepage entry.",
    ]
    assert "entry We just installed the CMS!" in fake.saved


def test_database_errors_are_advisory() -> None:
    """Test that an exception in one step becomes a warning."""
    fake = FakeServices(failing={"first entry"})

    warnings = seed(fake)

    assert len(warnings) == 1
    assert "create_homepage" in warnings[0]
    assert "entry We just installed the CMS!" in fake.saved


def test_tags_field_points_at_tag_group() -> None:
    """Test that the Tags field uses the default tag group as its source."""
    fake = FakeServices()
    seeder = ContentSeeder(collaborators(fake), INPUTS, 42)

    seeder.seed()

    assert seeder.tags_field.settings == {"source": f"taggroup:{seeder.tag_group.id}"}
    assert seeder.body_field.translatable


@pytest.mark.parametrize(
    ("site_url", "expected"),
    [
        ("https://example.com/", "Example.com"),
        ("http://blog.example.org:8080/path", "Blog.example.org"),
        ("not a url", "Fallback"),
    ],
)
def test_site_name_from_url(site_url: str, expected: str) -> None:
    """Test that the site name is the capitalised host name."""
    assert site_name_from_url(site_url, "fallback") == expected


def test_copy_is_escaped() -> None:
    """Test that the site name is escaped in rendered copy."""
    body = render_copy("homepage_body.html", "<Example>")

    assert "&lt;Example&gt;" in body
    assert body.startswith("<p>")
