"""Errors shared by the schema, ledger and install projects."""

from collections.abc import Mapping, Sequence

type FieldErrors = Mapping[str, Sequence[str]]


def flatten_errors(errors: FieldErrors) -> str:
    """Flatten per-field messages into a bulleted listing."""
    return "".join(
        "\n - " + "\n - ".join(messages) for messages in errors.values() if messages
    )


class SchemaError(Exception):
    """A table, index or foreign key could not be created."""


class ValidationError(Exception):
    """A record failed field-level validation."""

    def __init__(self, message: str, errors: FieldErrors | None = None) -> None:
        """Keep the per-field messages next to the summary."""
        self.message = message
        self.errors: dict[str, list[str]] = {
            field: list(messages) for field, messages in (errors or {}).items()
        }
        super().__init__(f"{message}{flatten_errors(self.errors)}")
