"""Entity protocol and tree walking.

Application objects take part in persistence by implementing Saveable. The
store never inspects an entity's attributes: the entity builds its own Record
in save(), reads it back in load(), and names itself through get_key().
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Protocol, runtime_checkable

from keepsake.record import Record

ChildrenFn = Callable[[Any], Iterable[Any]]
Walker = Callable[[Any], Iterable[Any]]


@runtime_checkable
class Saveable(Protocol):
    """Protocol that all persisted entities must implement.

    ``context`` is passed through untouched by the store; use it when an
    entity needs extra information to save or load itself.
    """

    def save(self, context: Any = None) -> Record:
        """Build the Record holding this entity's state."""
        ...

    def load(self, record: Record | None, context: Any = None) -> None:
        """Restore state from record. None means nothing has been saved yet."""
        ...

    def get_key(self, context: Any = None) -> str:
        """Key identifying this entity. Must be unique within one store."""
        ...


class SaveableBase:
    """Default Saveable implementation to subclass.

    The key comes from a ``save_key`` attribute (falling back to the class
    name), save() stores an empty payload and load() ignores missing data.
    Override save() and load() to persist real state, e.g.:

        def save(self, context=None):
            return Record(self.get_key(context), [self.position, self.health])

        def load(self, record, context=None):
            if record is None:
                return
            self.position, self.health = record[0], record[1]
    """

    def save(self, context: Any = None) -> Record:
        return Record(self.get_key(context))

    def load(self, record: Record | None, context: Any = None) -> None:
        """Nothing to restore by default; defaults stay as they are."""

    def get_key(self, context: Any = None) -> str:
        return getattr(self, "save_key", None) or type(self).__name__


# ── Tree walking ──────────────────────────────────────────────


def default_children(node: Any) -> Iterable[Any]:
    """Children of a node: ``children`` (attribute or method) or ``get_children()``."""
    children = getattr(node, "children", None)
    if callable(children):
        children = children()
    if children is None:
        get_children = getattr(node, "get_children", None)
        children = get_children() if callable(get_children) else ()
    return children


def walk_tree(root: Any, children: ChildrenFn = default_children) -> Iterator[Any]:
    """Yield every descendant of root, each node's subtree before the node.

    The root itself is not yielded. The tree must be acyclic.
    """
    for node in children(root):
        yield from walk_tree(node, children)
        yield node


def iter_saveables(root: Any, walker: Walker = walk_tree) -> Iterator[Saveable]:
    """Yield the Saveable nodes found by walker under root."""
    for node in walker(root):
        if isinstance(node, Saveable):
            yield node
