from math import ceil

from pydantic import BaseModel, Field


class PageRequest(BaseModel):
    limit: int = Field(default=10, ge=1)
    offset: int = Field(default=0, ge=0)

    @property
    def current_page(self) -> int:
        return self.offset // self.limit + 1


class Pagination(BaseModel):
    total: int
    totalPages: int
    currentPage: int
    itemsPerPage: int

    @classmethod
    def build(cls, total: int, page: PageRequest) -> "Pagination":
        return cls(
            total=total,
            totalPages=ceil(total / page.limit),
            currentPage=page.current_page,
            itemsPerPage=page.limit,
        )
