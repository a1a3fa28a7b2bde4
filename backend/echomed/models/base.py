from datetime import datetime, timezone
from typing import Annotated
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # Naive timestamps (old exports) are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


Timestamp = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    """Stored and served with the camelCase keys the browser client uses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
