"""Default content created after the schema is committed.

Every step is attempted even when an earlier one failed. A failure is logged and
kept as a warning; nothing here raises.
"""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.exc import SQLAlchemyError

from install.models import (
    Entry,
    EntryType,
    Field,
    FieldGroup,
    Section,
    SectionLocale,
    SectionType,
    TagGroup,
)

if TYPE_CHECKING:
    from install.services import Collaborators
    from install.types import InstallationInputs

logger = getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

_JINJA_ENV = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(),
    trim_blocks=True,
    lstrip_blocks=True,
)


def site_name_from_url(site_url: str, fallback: str = "") -> str:
    """Capitalised host name of the site URL."""
    host = urlsplit(site_url).hostname or fallback
    return host[:1].upper() + host[1:]


def render_copy(template_name: str, site_name: str) -> str:
    """Render a packaged copy template."""
    template = _JINJA_ENV.get_template(template_name)
    return template.render(site_name=site_name).strip()


class ContentSeeder:
    """Creates the default tag group, fields, sections and entries."""

    def __init__(
        self,
        collaborators: Collaborators,
        inputs: InstallationInputs,
        author_id: int | None,
    ) -> None:
        """Initialize the seeder for one installation run."""
        self._services = collaborators
        self._inputs = inputs
        self._author_id = author_id
        self._site_name = site_name_from_url(inputs.site_url, inputs.site_name)
        self.warnings: list[str] = []

        self.tag_group = TagGroup(name="Default", handle="default")
        self.field_group = FieldGroup(name="Default")
        self.body_field = Field(name="Body", handle="body", type="RichText")
        self.tags_field = Field(name="Tags", handle="tags", type="Tags")
        self.homepage = Section(
            name="Homepage",
            handle="homepage",
            type=SectionType.SINGLE,
            has_urls=False,
            template="index",
        )
        self.news = Section(
            name="News",
            handle="news",
            type=SectionType.CHANNEL,
            has_urls=True,
            template="news/_entry",
        )

    def seed(self) -> list[str]:
        """Run every step and return the warnings collected along the way."""
        logger.info("Creating default content.")
        steps = (
            self.create_tag_group,
            self.create_field_group,
            self.create_body_field,
            self.create_tags_field,
            self.create_homepage,
            self.create_news,
        )
        for step in steps:
            try:
                step()
            except SQLAlchemyError as err:
                self.warn(f"Default content step {step.__name__} failed: {err}")
        return self.warnings

    def warn(self, message: str) -> None:
        """Log an advisory failure and keep it for the result."""
        logger.warning(message)
        self.warnings.append(message)

    def create_tag_group(self) -> None:
        logger.info("Creating the Default tag group.")
        if self._services.tags.save_tag_group(self.tag_group):
            logger.info("Default tag group created successfully.")
        else:
            self.warn("Could not save the Default tag group.")

    def create_field_group(self) -> None:
        logger.info("Creating the Default field group.")
        if self._services.fields.save_group(self.field_group):
            logger.info("Default field group created successfully.")
        else:
            self.warn("Could not save the Default field group.")

    def create_body_field(self) -> None:
        logger.info("Creating the Body field.")
        field = self.body_field
        field.group_id = self.field_group.id
        field.translatable = True
        field.settings = {"configFile": "Standard.json", "columnType": "text"}
        if self._services.fields.save_field(field):
            logger.info("Body field created successfully.")
        else:
            self.warn("Could not save the Body field.")

    def create_tags_field(self) -> None:
        logger.info("Creating the Tags field.")
        field = self.tags_field
        field.group_id = self.field_group.id
        field.settings = {"source": f"taggroup:{self.tag_group.id}"}
        if self._services.fields.save_field(field):
            logger.info("Tags field created successfully.")
        else:
            self.warn("Could not save the Tags field.")

    def create_homepage(self) -> None:
        """Create the Homepage single, its entry type and its welcome entry."""
        logger.info("Creating the Homepage single section.")
        section = self.homepage
        section.locales = {
            self._inputs.locale: SectionLocale(self._inputs.locale, "__home__"),
        }
        if self._services.sections.save_section(section):
            logger.info("Homepage single section created successfully.")
        else:
            self.warn("Could not save the Homepage single section.")

        layout = self._services.fields.assemble_layout(
            {"Content": [self.body_field.id]},
            [self.body_field.id],
        )
        if entry_type := self._first_entry_type(section):
            entry_type.has_title_field = True
            entry_type.title_label = "Title"
            entry_type.field_layout = layout
            if self._services.sections.save_entry_type(entry_type):
                logger.info("Homepage single section entry type saved successfully.")
            else:
                self.warn("Could not save the Homepage single section entry type.")

        logger.info("Setting the Homepage content.")
        entry = self._services.entries.first_entry(section.id)
        if entry is None:
            self.warn("Could not find the Homepage entry.")
            return

        entry.locale = self._inputs.locale
        entry.title = f"Welcome to {self._site_name}!"
        entry.fields = {"body": render_copy("homepage_body.html", self._site_name)}
        if self._services.entries.save_entry(entry):
            logger.info("Homepage entry saved successfully.")
        else:
            self.warn("Could not save an entry to the Homepage single section.")

    def create_news(self) -> None:
        """Create the News channel, its entry type and one example entry."""
        logger.info("Creating the News section.")
        section = self.news
        section.locales = {
            self._inputs.locale: SectionLocale(
                self._inputs.locale,
                "news/{postDate.year}/{slug}",
            ),
        }
        if self._services.sections.save_section(section):
            logger.info("News section created successfully.")
        else:
            self.warn("Could not save the News section.")

        logger.info("Saving the News entry type.")
        layout = self._services.fields.assemble_layout(
            {"Content": [self.body_field.id, self.tags_field.id]},
            [self.body_field.id],
        )
        entry_type = self._first_entry_type(section)
        if entry_type:
            entry_type.field_layout = layout
            if self._services.sections.save_entry_type(entry_type):
                logger.info("News entry type saved successfully.")
            else:
                self.warn("Could not save the News entry type.")

        logger.info("Creating a News entry.")
        entry = Entry(
            section_id=section.id,
            type_id=entry_type.id if entry_type else None,
            locale=self._inputs.locale,
            author_id=self._author_id,
            enabled=True,
            title="We just installed the CMS!",
            fields={"body": render_copy("news_body.html", self._site_name)},
        )
        if self._services.entries.save_entry(entry):
            logger.info("News entry created successfully.")
        else:
            self.warn("Could not save the News entry.")

    def _first_entry_type(self, section: Section) -> EntryType | None:
        if not section.entry_types:
            self.warn(f"The {section.name} section has no entry type.")
            return None
        return section.entry_types[0]
