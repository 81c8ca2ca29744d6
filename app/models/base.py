"""
Boundary schema base.

Tables and the engines use snake_case; every request/response schema derives
from ``CamelModel`` so the API speaks camelCase without the core knowing.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Pydantic model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
