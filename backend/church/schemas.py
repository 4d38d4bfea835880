import datetime
import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from . import errors
from .clock import to_naive_utc

log = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class Entity(ApiModel):
    model_config = ConfigDict(from_attributes=True)


def validate_payload(schema: Type[M], data: Any, message: str) -> M:
    """Validate a raw JSON body, turning schema violations into a generic 400."""
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        log.info('%s rejected: %s', schema.__name__, e.errors(include_url=False, include_input=False))
        raise errors.ValidationError(message) from e


class EventCreate(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    description: str
    date: datetime.datetime
    location: str = Field(min_length=1, max_length=300)
    is_recurring: bool = False

    @field_validator('date')
    @classmethod
    def _naive_utc(cls, v: datetime.datetime) -> datetime.datetime:
        return to_naive_utc(v)


class Event(Entity):
    id: int
    title: str
    description: str
    date: datetime.datetime
    location: str
    is_recurring: bool = False


class ContactCreate(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    message: str = Field(min_length=1)


class ContactMessage(Entity):
    id: int
    name: str
    email: str
    message: str
    created_at: datetime.datetime
