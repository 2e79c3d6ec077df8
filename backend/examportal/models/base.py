"""Shared model configuration."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Stored documents use camelCase keys; Python code uses snake_case."""
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self, **kwargs) -> dict:
        """Serialize with the stored (camelCase) field names."""
        return self.model_dump(by_alias=True, mode="json", **kwargs)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
