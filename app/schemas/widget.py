from datetime import datetime
from pydantic import BaseModel, Field


class Link(BaseModel):
    href: str


class WidgetOut(BaseModel):
    id: int
    title: str
    description: str | None
    status: str
    quantity: int
    created_at: datetime
    updated_at: datetime
    links: dict[str, list[Link]] = Field(serialization_alias="_links")
