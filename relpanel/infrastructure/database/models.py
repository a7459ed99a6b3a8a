from datetime import datetime

from sqlmodel import Field, Relationship, SQLModel

from ...domain.constants import MAX_TEXT_LENGTH


class Article(SQLModel, table=True):  # type: ignore[call-arg]
    """An article. Owns any number of comments."""

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True, min_length=1, max_length=MAX_TEXT_LENGTH)
    author: str | None = Field(default=None, max_length=MAX_TEXT_LENGTH)
    created_at: datetime = Field(default_factory=datetime.now)

    comments: list["Comment"] = Relationship(
        back_populates="article",
        sa_relationship_kwargs={"order_by": "Comment.position"},
    )


class Comment(SQLModel, table=True):  # type: ignore[call-arg]
    """A comment on an article, optionally with an attached file."""

    id: int | None = Field(default=None, primary_key=True)
    body: str = Field(min_length=1, max_length=MAX_TEXT_LENGTH)
    rating: int = Field(default=3, ge=1, le=5)
    attachment: str | None = None  # path relative to settings.storage_dir
    position: int = Field(default=0, index=True)

    article_id: int | None = Field(default=None, foreign_key="article.id", index=True)
    article: Article | None = Relationship(back_populates="comments")
