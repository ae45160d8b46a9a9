from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

class PaginationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(..., ge=1, alias="currentPage")
    results_per_page: int = Field(..., ge=1, alias="resultsPerPage")
    number_of_pages: int = Field(..., ge=0, alias="numberOfPages")
    next_page: Optional[int] = Field(None, alias="nextPage")
    previous_page: Optional[int] = Field(None, alias="previousPage")

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
