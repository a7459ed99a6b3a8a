"""Resources for the bundled article/comment demo schema."""

from typing import Any

from ..fields.base import ID, Field, Number, Text
from ..fields.file import File
from ..fields.relationships import HasMany
from ..infrastructure.database.models import Article, Comment
from .base import ModelResource
from .registry import ResourceRegistry

# Articles with more comments than this link to the comment index instead
COMMENT_TABLE_THRESHOLD = 10


class CommentResource(ModelResource):
    model = Comment
    uri = "comment-resource"
    title = "Comments"
    column = "body"
    search_columns = ("body",)
    sort_column = "position"
    click_action = "edit"

    def fields(self) -> list[Field]:
        return [
            ID(),
            Text("Body", "body").required(),
            Number("Rating", "rating", min_value=1, max_value=5)
            .with_default(3)
            .update_on_preview(),
            File("Attachment", "attachment", directory="comments").hide_on_index(),
        ]

    def tr_attributes(self):
        def low_rating(record: Any, index: int) -> dict[str, Any]:
            return {"class": "low-rating" if record.rating <= 2 else None}

        return low_rating


class ArticleResource(ModelResource):
    model = Article
    uri = "article-resource"
    title = "Articles"
    column = "title"
    search_columns = ("title", "author")

    def fields(self) -> list[Field]:
        return [
            ID(),
            Text("Title", "title").required(),
            Text("Author", "author"),
            HasMany("Comments", "comments", resource=CommentResource())
            .creatable()
            .asynchronous()
            .limit(5)
            .only_link(condition=lambda count: count > COMMENT_TABLE_THRESHOLD),
        ]


def register_blog_resources(registry: ResourceRegistry) -> None:
    registry.register(ArticleResource())
    registry.register(CommentResource())
