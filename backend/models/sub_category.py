from pydantic import BaseModel, Field
from typing import Optional

class SubCategoryIn(BaseModel):
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
