from datetime import datetime, date
from enum import Enum
from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class CamelCaseBaseModel(BaseModel):
    """
    Base model with camelCase field aliases and JSON-friendly serialization.

    - Input: camelCase keys from the client (and from imported files) are
      accepted, as are the snake_case field names.
    - Output: `model_dump(by_alias=True)` yields camelCase keys, the same
      names used as CSV headers on export.
    - In JSON mode dates, datetimes and Enums are dumped as plain strings.
      Python mode keeps them as objects, so dumps can be written to the
      database as they are.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*", when_used="json")
    def serialize_any(self, value):
        """Global serializer turning values into JSON-compatible primitives"""

        if isinstance(value, Enum):
            return value.value

        # datetime is a subclass of date, both dump as ISO 8601
        if isinstance(value, (datetime, date)):
            return value.isoformat()

        if isinstance(value, (list, tuple, set)):
            return [self.serialize_any(item) for item in value]

        if isinstance(value, dict):
            return {key: self.serialize_any(val) for key, val in value.items()}

        return value
