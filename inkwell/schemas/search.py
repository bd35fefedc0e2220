from typing import List

from pydantic import BaseModel, Field

from inkwell.schemas.post import Post


class SearchQuery(BaseModel):
    query: str = Field(..., min_length=1, description="Search query")


class SearchResult(BaseModel):
    query: str
    posts: List[Post] = []
