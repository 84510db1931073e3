from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelSchema(BaseModel):
    """
    Base for wire schemas.

    Attributes are snake_case (matching the documents) while JSON in and
    out is camelCase, matching the admin and storefront frontends.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationSchema(CamelSchema):
    """Pagination block returned with every list."""
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=1)
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationSchema":
        pages = max(1, -(-total // limit))
        return cls(
            page=page,
            limit=limit,
            total=total,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        )
