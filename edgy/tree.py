"""Iterative walks over element trees.

Design files can nest thousands of levels deep, so no walk here recurses.
"""

from collections.abc import Iterator

from .models import Element


def iter_elements(root: Element, skip_hidden: bool = False) -> Iterator[Element]:
    """Yield ``root`` and all descendants in pre-order (document order).

    Args:
        root: Subtree root.
        skip_hidden: Skip invisible elements together with their subtrees.
    """
    stack = [root]
    while stack:
        element = stack.pop()
        if skip_hidden and not element.visible:
            continue
        yield element
        stack.extend(reversed(element.children))


def flatten(root: Element, skip_hidden: bool = False) -> list[Element]:
    """Return ``root`` and all descendants as a list in pre-order."""
    return list(iter_elements(root, skip_hidden=skip_hidden))


def flatten_all(roots: list[Element]) -> list[Element]:
    """Flatten several trees into one list, tree by tree."""
    return [element for root in roots for element in iter_elements(root)]


class ParentIndex:
    """Parent lookup for one tree, keyed by element identity.

    Element ids from external files are not guaranteed unique, so the
    index uses object identity rather than ``Element.id``.
    """

    def __init__(self, root: Element):
        self.root = root
        self._parents: dict[int, Element] = {}
        for element in iter_elements(root):
            for child in element.children:
                self._parents[id(child)] = element

    def parent_of(self, element: Element) -> Element | None:
        """Return the parent of ``element``, or None for the root."""
        return self._parents.get(id(element))

    def ancestors(self, element: Element) -> Iterator[Element]:
        """Yield ancestors from the parent up to the root."""
        current = self.parent_of(element)
        while current is not None:
            yield current
            current = self.parent_of(current)

    def siblings(self, element: Element) -> list[Element]:
        """Return the parent's children (including ``element``) in order."""
        parent = self.parent_of(element)
        return list(parent.children) if parent else [element]
