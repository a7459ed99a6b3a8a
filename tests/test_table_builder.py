"""Markup produced by the table component and action buttons."""

import pytest
from bs4 import BeautifulSoup

from relpanel.components.buttons import ActionButton
from relpanel.components.table import TableBuilder
from relpanel.domain.pagination import Page
from relpanel.fields.base import ID, Text

ITEMS = [{"id": 1, "body": "first"}, {"id": 2, "body": "second"}]


def parse(markup) -> BeautifulSoup:
    return BeautifulSoup(str(markup), "html.parser")


def delete_button(bulk: bool = False) -> ActionButton:
    return ActionButton(
        "Delete selected" if bulk else "Delete",
        "/delete" if bulk else (lambda record: f"/delete/{record['id']}"),
        method="post",
        bulk=bulk,
        for_component="rows" if bulk else None,
    )


def test_rows_carry_key_and_index():
    table = TableBuilder(ITEMS, [ID(), Text("Body", "body")]).name("rows")
    soup = parse(table.render())
    rows = soup.select("tbody > tr")
    assert [r["data-row-key"] for r in rows] == ["1", "2"]
    assert [r["data-row-index"] for r in rows] == ["0", "1"]
    assert rows[0].find_all("td")[1].get_text() == "first"


def test_fields_may_be_a_callable():
    table = TableBuilder(ITEMS).fields(lambda: [Text("Body", "body")])
    assert [f.column for f in table.get_fields()] == ["body"]


def test_table_data_attributes():
    table = (
        TableBuilder(ITEMS, [Text("Body", "body")])
        .name("rows")
        .creatable(limit=4)
        .reindex()
        .on_row_click("select")
        .removing_after_clone()
        .sortable("/sort", group="g", events=["a", "b"])
    )
    element = parse(table.render()).find("table")
    assert element["data-name"] == "rows"
    assert element["data-creatable"] == "true"
    assert element["data-creatable-limit"] == "4"
    assert element["data-reindex"] == "true"
    assert element["data-click-action"] == "select"
    assert element["data-remove-after-clone"] == "true"
    assert element["data-sortable-url"] == "/sort"
    assert element["data-sortable-group"] == "g"
    assert element["data-sortable-events"] == "a,b"


def test_async_component_reloads_on_its_event():
    soup = parse(TableBuilder(ITEMS).name("rows").with_async("/rows").render())
    component = soup.select_one("#rows-component")
    assert component["hx-get"] == "/rows"
    assert component["hx-trigger"] == "table-updated-rows from:body"
    assert '"_component_name": "rows"' in component["hx-vals"]


def test_preview_table_is_not_async():
    soup = parse(TableBuilder(ITEMS).with_async("/rows").preview().render())
    assert not soup.select_one(".table-builder").has_attr("hx-get")


def test_editable_cells_use_array_names():
    table = (
        TableBuilder(ITEMS, [Text("Body", "body")]).name("rows").editable().creatable()
    )
    soup = parse(table.render())
    names = [i["name"] for i in soup.select("tbody input")]
    # two rows plus the blank template row
    assert names == ["rows[0][body]", "rows[1][body]", "rows[2][body]"]
    assert soup.select_one("button.add-row") is not None


def test_bulk_buttons_render_in_hidden_footer():
    table = TableBuilder(ITEMS, [Text("Body", "body")]).name("rows")
    table.buttons([delete_button(), delete_button(bulk=True)])
    soup = parse(table.render())

    footer = soup.select_one("tfoot")
    assert "hidden" in footer["class"]
    assert footer.select_one('.hidden-ids[data-for-component="rows"]') is not None
    assert soup.select_one(".rows-actionsAllChecked") is not None

    checkboxes = soup.select("tbody .rows-tableActionRow")
    assert [c["value"] for c in checkboxes] == ["1", "2"]

    row_forms = soup.select("tbody form.inline-form")
    assert [f["action"] for f in row_forms] == ["/delete/1", "/delete/2"]


def test_hidden_buttons_are_skipped():
    button = ActionButton("Edit", "/edit", can_see=lambda record: record["id"] == 2)
    soup = parse(TableBuilder(ITEMS, [Text("Body", "body")], [button]).render())
    rows = soup.select("tbody > tr")
    assert rows[0].select_one("a") is None
    assert rows[1].select_one("a")["href"] == "/edit"


def test_row_and_cell_attributes():
    table = (
        TableBuilder(ITEMS, [Text("Body", "body")])
        .tr_attributes(lambda item, index: {"class": f"row-{index}"})
        .td_attributes(lambda item, index, column: {"data-column": column})
    )
    soup = parse(table.render())
    row = soup.select("tbody > tr")[1]
    assert row["class"] == ["row-1"]
    assert row.find("td")["data-column"] == "0"


def test_not_found_row():
    soup = parse(TableBuilder([]).with_not_found().render())
    assert soup.select_one("tr.not-found") is not None


def test_search_form_targets_component():
    table = TableBuilder(ITEMS).name("rows").with_async("/rows").searchable("abc")
    form = parse(table.render()).select_one("form.table-search")
    assert form["hx-get"] == "/rows"
    assert form.find("input", attrs={"name": "search"})["value"] == "abc"


def test_pagination_links_keep_search():
    page = Page(items=ITEMS, total=40, page=1, per_page=2)
    table = TableBuilder(page).name("rows").with_async("/rows").searchable("x")
    soup = parse(table.render())
    next_link = soup.select_one(".pagination a")
    assert next_link["href"] == "/rows?page=2&search=x"


def test_render_row_uses_given_index():
    table = TableBuilder(ITEMS, [Text("Body", "body")]).name("rows").editable()
    row = parse(table.render_row(ITEMS[1], 5)).find("tr")
    assert row["data-row-index"] == "5"
    assert row.find("input")["name"] == "rows[5][body]"


def test_unknown_click_action():
    with pytest.raises(ValueError):
        TableBuilder().on_row_click("hover")


class TestActionButton:
    def test_get_button_is_a_link(self):
        soup = parse(ActionButton("Show", "/show", icon="eye", primary=True).render())
        link = soup.find("a")
        assert link["href"] == "/show"
        assert "btn-primary" in link["class"]
        assert link.select_one(".icon-eye") is not None

    def test_async_post_button(self):
        button = ActionButton("Delete", "/d", method="post", is_async=True, confirm="?")
        form = parse(button.render()).find("form")
        assert form["hx-post"] == "/d"
        assert form["hx-confirm"] == "?"

    def test_with_url_copies(self):
        button = ActionButton("Create")
        other = button.with_url("/new")
        assert button.get_url() == "#"
        assert other.get_url() == "/new"
