"""Tests for the one-to-many relation field."""

from bs4 import BeautifulSoup

from relpanel.components.buttons import ActionButton
from relpanel.components.table import TableBuilder, to_raw
from relpanel.context import PageType, RenderContext
from relpanel.domain.conditions import Computed
from relpanel.domain.pagination import Page
from relpanel.fields.base import Text
from relpanel.fields.relationships import HasMany
from relpanel.infrastructure.database.models import Article
from relpanel.resources.blog import (
    COMMENT_TABLE_THRESHOLD,
    ArticleResource,
    CommentResource,
)


def comments_field(article: Article, ctx: RenderContext) -> HasMany:
    field = ArticleResource().get_relation_field("comments")
    assert isinstance(field, HasMany)
    return field.with_context(ctx).resolve_fill(to_raw(article), article)


def body_rows(markup) -> list:
    soup = BeautifulSoup(str(markup), "html.parser")
    return soup.select("table > tbody > tr")


class TestConfiguration:
    def test_defaults(self):
        field = HasMany("Comments", "comments", resource=CommentResource())
        assert not field.is_creatable()
        assert field.is_searchable()
        assert not field.is_async()
        assert not field.is_only_link()

    def test_only_link_without_condition_is_always_a_link(self):
        field = HasMany("Comments", resource=CommentResource()).only_link()
        assert field.relation_name == "comments"
        assert field.is_only_link()

    def test_only_link_with_predicate_becomes_computed(self):
        field = HasMany("Comments", resource=CommentResource()).only_link(
            condition=lambda count: count > 1
        )
        assert isinstance(field._only_link, Computed)
        field.value = [1, 2]
        assert field.is_only_link()

    def test_creatable_accepts_callables(self):
        field = HasMany("Comments", resource=CommentResource()).creatable(lambda: False)
        assert not field.is_creatable()

    def test_custom_fields_are_cloned_per_render(self):
        body = Text("Body", "body")
        field = HasMany("Comments", resource=CommentResource()).fields([body])
        cloned = field.prepared_cloned_fields()
        assert cloned[0] is not body
        assert cloned[0].column == "body"


class TestPreview:
    def test_preview_table_is_capped_at_limit(self, make_article, form_context):
        article = make_article(count=7)
        field = comments_field(article, form_context)

        rows = body_rows(field.preview())
        assert len(rows) == field.get_limit() == 5

    def test_preview_table_has_no_row_buttons(self, make_article, form_context):
        article = make_article(count=2)
        field = comments_field(article, form_context)

        soup = BeautifulSoup(str(field.preview()), "html.parser")
        assert soup.select_one("table.table-simple") is not None
        assert soup.select_one(".row-actions") is None
        assert soup.select_one("thead") is None

    def test_preview_cells_post_updates(self, make_article, form_context):
        article = make_article(count=1)
        field = comments_field(article, form_context)

        soup = BeautifulSoup(str(field.preview()), "html.parser")
        rating = soup.select_one("input.update-on-preview")
        assert rating["hx-post"].endswith(
            "/resource/comment-resource/update-column?_relation=comments"
        )

    def test_raw_mode_joins_values(self):
        field = HasMany("Comments", "comments", resource=CommentResource()).raw_mode()
        field.value = [{"body": "a"}, {"body": None}, {"body": "c"}]
        assert str(field.preview()) == "a;;c"

    def test_raw_mode_respects_limit(self):
        field = (
            HasMany("Comments", "comments", resource=CommentResource())
            .raw_mode()
            .limit(2)
        )
        field.value = [{"body": str(i)} for i in range(5)]
        assert str(field.preview()) == "0;1"

    def test_raw_mode_escapes_output(self):
        field = HasMany("Comments", "comments", resource=CommentResource()).raw_mode()
        field.value = [{"body": "<i>"}]
        assert str(field.preview()) == "&lt;i&gt;"

    def test_link_preview_counts_items(self, make_article, form_context):
        article = make_article(count=COMMENT_TABLE_THRESHOLD + 1)
        field = comments_field(article, form_context)

        soup = BeautifulSoup(str(field.preview()), "html.parser")
        link = soup.find("a")
        assert link.get_text(strip=True) == f"({COMMENT_TABLE_THRESHOLD + 1})"
        assert f"_parentId=article-{article.id}" in link["href"]

    def test_link_relation_overrides_parent_reference(self, form_context):
        field = HasMany("Comments", resource=CommentResource()).only_link("post")
        field.resolve_fill({}, Article(id=4, title="T"))
        assert field.parent_reference(form_context) == "post-4"


class TestValue:
    def test_small_relation_renders_interactive_table(self, make_article, form_context):
        article = make_article(count=3)
        field = comments_field(article, form_context)

        value = field.resolve_value(form_context)
        assert isinstance(value, TableBuilder)
        assert isinstance(value.items, Page)
        assert value.items.total == 3

        soup = BeautifulSoup(str(value.render()), "html.parser")
        component = soup.select_one("#comments-component")
        assert component["hx-get"] == (
            f"/admin/relation/article-resource/{article.id}/comments"
        )
        assert len(soup.select("table > tbody > tr")) == 3

    def test_large_relation_renders_link(self, make_article, form_context):
        article = make_article(count=COMMENT_TABLE_THRESHOLD + 2)
        field = comments_field(article, form_context)

        value = field.resolve_value(form_context)
        assert isinstance(value, ActionButton)
        assert value.label == f"Show ({COMMENT_TABLE_THRESHOLD + 2})"

    def test_link_count_uses_total_not_page_size(self, make_article, form_context):
        article = make_article(count=3)
        field = comments_field(article, form_context)
        field.value = Page(items=[], total=99, per_page=15)

        value = field.resolve_value(form_context)
        assert isinstance(value, ActionButton)
        assert value.label == "Show (99)"

    def test_rows_carry_delete_and_edit_buttons(self, make_article, form_context):
        article = make_article(count=1)
        field = comments_field(article, form_context)

        soup = BeautifulSoup(str(field.render(form_context)), "html.parser")
        row = soup.select_one("table > tbody > tr")
        delete_form = row.select_one("form.inline-form")
        assert "_relation=comments" in delete_form["action"]
        assert "_parent_resource=article-resource" in delete_form["action"]
        assert "_component_name=comments" in delete_form["action"]
        assert delete_form["hx-post"] == delete_form["action"]

        edit = row.select_one("a.edit-button")
        assert f"_parentId=article-{article.id}" in edit["href"]

    def test_detail_button_follows_async_mode(self, make_article, form_context):
        article = make_article(count=1)
        field = comments_field(article, form_context)

        soup = BeautifulSoup(str(field.render(form_context)), "html.parser")
        detail = soup.select_one("table > tbody > tr a.detail-button")
        assert detail["hx-get"] == detail["href"]
        assert detail["hx-target"] == "body"

    def test_detail_button_is_plain_link_when_not_async(
        self, make_article, form_context
    ):
        article = make_article(count=1)
        field = comments_field(article, form_context)
        field._async = False

        soup = BeautifulSoup(str(field.render(form_context)), "html.parser")
        detail = soup.select_one("table > tbody > tr a.detail-button")
        assert "/resource/comment-resource/" in detail["href"]
        assert not detail.has_attr("hx-get")

    def test_mass_delete_is_wired_to_component(self, make_article, form_context):
        article = make_article(count=2)
        field = comments_field(article, form_context)

        soup = BeautifulSoup(str(field.render(form_context)), "html.parser")
        bulk = soup.select_one('[data-button-type="bulk-button"]')
        assert bulk["data-for-component"] == "comments"
        assert bulk.select_one('.hidden-ids[data-for-component="comments"]')

    def test_search_filters_related_rows(self, make_article, session):
        article = make_article(count=3)
        ctx = RenderContext(
            session=session,
            resource=ArticleResource(),
            page_type=PageType.FORM,
            search="comment 1",
        )
        field = comments_field(article, ctx)

        value = field.resolve_value(ctx)
        assert [c.body for c in value.items] == ["comment 1"]

    def test_not_found_row_on_form(self, make_article, form_context):
        article = make_article(count=0)
        field = comments_field(article, form_context)

        soup = BeautifulSoup(str(field.render(form_context)), "html.parser")
        assert soup.select_one("tr.not-found") is not None

    def test_unsaved_parent_yields_empty_page(self, form_context):
        field = comments_field(Article(title="draft"), form_context)
        value = field.resolve_value(form_context)
        assert isinstance(value, TableBuilder)
        assert value.items.total == 0
        assert value.items.items == []

    def test_other_articles_comments_are_excluded(self, make_article, form_context):
        make_article(count=4, title="Other")
        article = make_article(count=2)
        field = comments_field(article, form_context)

        value = field.resolve_value(form_context)
        assert {c.article_id for c in value.items} == {article.id}


class TestCreateButton:
    def test_create_button_links_to_form_with_parent(
        self, make_article, form_context
    ):
        article = make_article(count=0)
        field = comments_field(article, form_context)

        button = field.create_button(form_context)
        assert button is not None
        url = button.get_url(article)
        assert url.startswith("/admin/resource/comment-resource/create")
        assert f"_parentId=article-{article.id}" in url
        # async relations reload in place
        assert "_redirect" not in url

    def test_no_create_button_without_parent_key(self, form_context):
        field = comments_field(Article(title="draft"), form_context)
        assert field.create_button(form_context) is None

    def test_no_create_button_when_not_allowed(
        self, make_article, form_context, monkeypatch
    ):
        monkeypatch.setattr(CommentResource, "abilities", {"create": False})
        article = make_article(count=0)
        field = comments_field(article, form_context)
        assert field.create_button(form_context) is None

    def test_custom_create_button_keeps_its_label(self, make_article, form_context):
        article = make_article(count=0)
        field = comments_field(article, form_context).creatable(
            button=ActionButton("Add comment")
        )
        button = field.create_button(form_context)
        assert button.label == "Add comment"
        assert "create-button" in button.css_classes

    def test_sync_relation_redirects_back_to_parent(
        self, make_article, form_context
    ):
        article = make_article(count=0)
        field = comments_field(article, form_context)
        field._async = False

        url = field.create_button(form_context).get_url(article)
        assert "_redirect=" in url


def test_after_destroy_delegates_to_related_resource(monkeypatch):
    calls = []
    monkeypatch.setattr(
        CommentResource,
        "after_destroy",
        lambda self, record, raw=None: calls.append((record, raw)),
    )
    field = HasMany("Comments", resource=CommentResource())
    field.after_destroy("record", {"id": 1})
    assert calls == [("record", {"id": 1})]


def test_foreign_key_is_read_from_relationship(form_context):
    field = comments_field(Article(id=1, title="T"), form_context)
    assert field.foreign_key() == "article_id"


def test_relation_field_lookup_by_name():
    assert ArticleResource().get_relation_field("missing") is None
