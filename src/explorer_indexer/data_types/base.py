from typing import Any, Dict
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Stored documents use camelCase keys, Python code uses snake_case attributes"""
    model_config = {
        "arbitrary_types_allowed": False,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
