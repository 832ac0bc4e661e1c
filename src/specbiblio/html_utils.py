"""BeautifulSoup helpers for walking and rewriting the document tree.

- ``traverse_while`` — sibling lookahead returning ``None`` when exhausted
- ``header_source`` — text of a header element, honouring transclusion
- ``replace_contents`` / ``parse_fragment`` — set an element's inner HTML
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal, TypeAlias

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, PageElement, Tag

# Elements carrying this attribute contribute its value instead of their
# own text; used for headers transcluded from another document.
TRANSCLUDE_ATTR = "data-transclude"

SiblingStep: TypeAlias = Literal["next_sibling", "next_element_sibling"]


def _step(node: PageElement, step: SiblingStep) -> PageElement | None:
    if step == "next_sibling":
        return node.next_sibling
    sibling = node.next_sibling
    while sibling is not None and not isinstance(sibling, Tag):
        sibling = sibling.next_sibling
    return sibling


def traverse_while(
    node: PageElement | None,
    step: SiblingStep,
    predicate: Callable[[PageElement], bool],
) -> PageElement | None:
    """Advance from ``node`` while ``predicate`` holds.

    Returns the first node (``node`` itself included) failing the
    predicate, or ``None`` when the siblings run out.
    """
    while node is not None and predicate(node):
        node = _step(node, step)
    return node


def first_element_child(node: Tag) -> Tag | None:
    for child in node.children:
        if isinstance(child, Tag):
            return child
    return None


def element_children(node: Tag) -> list[Tag]:
    return [child for child in node.children if isinstance(child, Tag)]


def is_blank(node: PageElement) -> bool:
    """True for whitespace-only text and comments."""
    if isinstance(node, Comment):
        return True
    if isinstance(node, NavigableString):
        return not node.strip()
    if isinstance(node, Tag):
        return False
    return True


def is_empty(node: PageElement) -> bool:
    """Like ``is_blank`` but also true for elements with no visible text."""
    if isinstance(node, Tag):
        return not node.get_text().strip()
    return is_blank(node)


def header_source(header: Tag) -> str:
    """Text content of ``header`` with transcluded text substituted in."""
    return _text_content(header).strip()


def _text_content(node: PageElement) -> str:
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return str(node)
    if isinstance(node, Tag):
        transcluded = node.get(TRANSCLUDE_ATTR)
        if transcluded is not None:
            return str(transcluded)
        return "".join(_text_content(child) for child in node.children)
    return ""


def parse_fragment(markup: str) -> list[PageElement]:
    soup = BeautifulSoup(markup, "html.parser")
    return list(soup.contents)


def replace_contents(node: Tag, markup: str) -> None:
    """Equivalent of assigning ``innerHTML``."""
    node.clear()
    for child in parse_fragment(markup):
        node.append(child.extract())


def new_tag(node: Tag, name: str, **attrs: str) -> Tag:
    """Create a tag owned by ``node``'s document."""
    soup = _owner(node)
    return soup.new_tag(name, attrs=attrs)


def _owner(node: Tag) -> BeautifulSoup:
    root: PageElement = node
    while root.parent is not None:
        root = root.parent
    if isinstance(root, BeautifulSoup):
        return root
    # Detached subtree; any factory produces compatible tags.
    return BeautifulSoup("", "html.parser")
