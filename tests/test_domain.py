"""Tests for conditions, pagination and URL helpers."""

import pytest

from relpanel.domain.conditions import Computed, Fixed, boolean, to_condition
from relpanel.domain.pagination import Page, count_items
from relpanel.routing import (
    AdminRouter,
    build_url,
    parse_parent_id,
    replace_query_param,
)


class TestConditions:
    def test_none_uses_default(self):
        assert to_condition(None, default=True) == Fixed(True)
        assert to_condition(None, default=False) == Fixed(False)

    def test_bool_becomes_fixed(self):
        condition = to_condition(False)
        assert isinstance(condition, Fixed)
        assert condition.evaluate(100) is False

    def test_callable_becomes_computed(self):
        condition = to_condition(lambda count: count > 2)
        assert isinstance(condition, Computed)
        assert condition.evaluate(2) is False
        assert condition.evaluate(3) is True

    def test_condition_passes_through(self):
        fixed = Fixed(True)
        assert to_condition(fixed) is fixed

    def test_boolean_resolves_callables(self):
        assert boolean(None, default=True) is True
        assert boolean(lambda: False, default=True) is False
        assert boolean(0, default=True) is False


class TestPagination:
    def test_count_items_prefers_page_total(self):
        page = Page(items=[1, 2], total=40, per_page=2)
        assert count_items(page) == 40
        assert len(page) == 2

    def test_count_items_for_sequences(self):
        assert count_items([1, 2, 3]) == 3
        assert count_items(None) == 0

    def test_page_navigation(self):
        page = Page(items=[], total=31, page=2, per_page=15)
        assert page.last_page == 3
        assert page.has_previous
        assert page.has_next

    def test_empty_page_has_single_page(self):
        page = Page()
        assert page.last_page == 1
        assert not page.has_next


class TestRouting:
    def test_build_url_skips_none_and_repeats_lists(self):
        url = build_url("/x", {"a": None, "ids[]": [1, 2], "b": "c d"})
        assert url == "/x?ids[]=1&ids[]=2&b=c+d"

    def test_build_url_appends_to_existing_query(self):
        assert build_url("/x?a=1", {"b": 2}) == "/x?a=1&b=2"

    def test_replace_query_param_drops_previous_values(self):
        url = replace_query_param("/export?ids[]=9&x=1&ids[]=8", "ids[]", ["1", "2"])
        assert url == "/export?x=1&ids[]=1&ids[]=2"

    def test_replace_query_param_with_no_values(self):
        assert replace_query_param("/export?ids[]=9", "ids[]", []) == "/export"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("article-5", ("article", "5")),
            ("blog-post-7", ("blog-post", "7")),
            ("article-", None),
            ("nodash", None),
            (None, None),
        ],
    )
    def test_parse_parent_id(self, value, expected):
        assert parse_parent_id(value) == expected

    def test_relation_url(self):
        router = AdminRouter("/admin")
        url = router.to_relation("search-relations", "article-resource", 3, "comments")
        assert url == "/admin/relation/article-resource/3/comments"

    def test_unknown_relation_action(self):
        with pytest.raises(ValueError):
            AdminRouter().to_relation("nope", "a", 1, "b")
