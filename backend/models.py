from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Chapter(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: Optional[str] = None
    content: str = ""


class Book(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(min_length=1)
    subtitle: Optional[str] = None
    author: str = Field(min_length=1)
    cover_image_url: Optional[str] = Field(default=None, alias="coverImageUrl")
    chapters: List[Chapter] = Field(default_factory=list)
