"""
Homepage Backend — Sticky Note Schemas
======================================

What:  Pydantic models defining the notes API contract.
How:   FastAPI uses these to serialize responses and generate OpenAPI docs.

The ORM model carries a `deleted` flag that the API never exposes; the
response model simply leaves it out.
"""

from pydantic import BaseModel, Field


class StickyNoteResponse(BaseModel):
    """
    What:  A sticky note as the frontend sees it.
    Who:   Returned by every /notes endpoint that produces a body.
    """
    id: int = Field(description="Note identifier")
    content: str = Field(description="Note text")
    created_at: int = Field(description="Creation time in unix seconds")
    x: int = Field(description="Horizontal position on the canvas (px)")
    y: int = Field(description="Vertical position on the canvas (px)")

    model_config = {"from_attributes": True}
