"""
Input models for every tool, grouped by domain.

Fields are snake_case in Python and camelCase on the wire; models accept
either spelling and always dump camelCase for the CRUD layer.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Id = Annotated[str, Field(min_length=1, description="Record identifier")]
NonEmpty = Annotated[str, Field(min_length=1)]


class RpcInput(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_rpc(self) -> dict[str, Any]:
        """Arguments as sent to the remote procedure."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = ["Id", "NonEmpty", "RpcInput"]
