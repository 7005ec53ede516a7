from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# PUBLIC_INTERFACE
class PageRequest(BaseModel):
    """A 1-indexed page window: skip (page_number - 1) * page_size, take page_size."""

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(..., ge=1, description="1-based page index")
    page_size: int = Field(..., ge=1, description="Max number of records per page")

    @property
    def offset(self) -> int:
        """Number of records to skip."""
        return (self.page_number - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size
