"""
Pydantic model for the records the query engine searches.
"""

from typing import Union
from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Immutable searchable record: identifier, display name, category and score."""

    id: Union[int, str] = Field(..., description="Unique record identifier")
    name: str = Field(..., description="Display name, matched by search")
    category: str = Field(..., description="Category label, matched by search")
    score: Union[int, float] = Field(..., description="Ranking score, higher ranks first")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Acme Analytics Suite",
                "category": "Analytics",
                "score": 92
            }
        }
    )
