from pydantic import BaseModel, Field

class BrandIn(BaseModel):
    name: str = Field(..., min_length=1)
