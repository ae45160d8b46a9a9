from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

class ProductIn(BaseModel):
    # Unknown fields are stored as sent
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    sub_categories: Optional[List[str]] = None
    images: Optional[List[str]] = None

class ProductUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    sub_categories: Optional[List[str]] = None
    images: Optional[List[str]] = None
