from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Stored documents written by older clients carry naive timestamps
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def pascal_field(wire_name: str, **kwargs):
    """Field written under a PascalCase wire name.

    The camelCase spelling is still accepted on read.
    """
    camel_name = wire_name[0].lower() + wire_name[1:]
    return Field(
        validation_alias=AliasChoices(wire_name, camel_name),
        serialization_alias=wire_name,
        **kwargs,
    )


class DocumentModel(BaseModel):
    """Base for every persisted document and embedded value.

    Field names are snake_case in Python and camelCase on the wire. Keys the
    model does not know about (Cosmos ``_rid``/``_etag``, Mongo ``_id``) are
    dropped on load.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict:
        """JSON-compatible dict with wire field names, as written to storage."""
        return self.model_dump(mode="json", by_alias=True)
