from pydantic import BaseModel, Field


class ScrollPage(BaseModel):
    """One page of points read from the vector store.

    next_page_offset is the cursor to pass to the next scroll request. It is
    None on the last page and on pages merged by do_scroll_all().
    """

    points: list[dict] = Field(default_factory=list)
    next_page_offset: str | int | None = None

    def is_last(self) -> bool:
        return self.next_page_offset is None
