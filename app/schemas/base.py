from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.core.exceptions import ValidationError


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def parse_input(schema, data):
    """
    Validate `data` (a dict or an instance of `schema`) against `schema`.

    Raises the application ValidationError so store callers see one error
    type regardless of whether the input came from HTTP or from code.
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        message = first.get("msg", "Invalid value")
        raise ValidationError(f"{field}: {message}" if field else message, detail=str(e)) from e


def reject_null(v):
    """Field may be omitted from a partial update but never sent as null."""
    if v is None:
        raise ValueError("Value cannot be null")
    return v
