"""Helpers for working with parsed HTML the way the browser behavior does."""

import copy

from bs4 import BeautifulSoup, Tag


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def document_of(tag: Tag) -> BeautifulSoup:
    """The BeautifulSoup object that owns ``tag``."""
    node: Tag = tag
    while node.parent is not None:
        node = node.parent
    if not isinstance(node, BeautifulSoup):
        raise ValueError("Element is not attached to a document")
    return node


def closest(tag: Tag, name: str) -> Tag | None:
    """``tag`` itself or its nearest ancestor with the given element name."""
    if tag.name == name:
        return tag
    return tag.find_parent(name)


def clone(tag: Tag) -> Tag:
    return copy.copy(tag)


def remove_class(tag: Tag, name: str) -> None:
    classes = [c for c in tag.get("class") or [] if c != name]
    if classes:
        tag["class"] = classes
    elif tag.has_attr("class"):
        del tag["class"]


def is_checked(tag: Tag) -> bool:
    return tag.has_attr("checked")


def set_checked(tag: Tag, checked: bool) -> None:
    if checked:
        tag["checked"] = ""
    elif tag.has_attr("checked"):
        del tag["checked"]


def serialize_inputs(container: Tag) -> list[tuple[str, str]]:
    """Name/value pairs a browser would submit for the named controls."""
    pairs: list[tuple[str, str]] = []
    controls = container.find_all(["input", "select", "textarea"], attrs={"name": True})
    for element in controls:
        name = element["name"]
        if element.has_attr("disabled"):
            continue
        if element.name == "select":
            selected = element.find_all("option", selected=True) or element.find_all(
                "option", limit=1
            )
            pairs.extend((name, o.get("value", o.get_text())) for o in selected)
        elif element.name == "textarea":
            pairs.append((name, element.get_text()))
        else:
            input_type = (element.get("type") or "text").lower()
            if input_type in ("checkbox", "radio") and not is_checked(element):
                continue
            if input_type in ("submit", "button", "reset", "file", "image"):
                continue
            pairs.append((name, element.get("value", "")))
    return pairs
