from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal

Role = Literal["student", "faculty", "admin"]
Semester = Literal["1st", "2nd", "3rd", "4th", "5th", "6th", "7th", "8th"]
Year = Literal["1st", "2nd", "3rd", "4th", "5th", "Graduate"]


class CamelModel(BaseModel):
    """Request bodies are camelCase on the wire and in MongoDB."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, **kwargs) -> dict:
        return self.model_dump(by_alias=True, **kwargs)
