"""Menu tree building and permission-based pruning.

All functions here are pure: they work on an in-memory snapshot of menus
and permissions and perform no I/O.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from backoffice.core.exceptions import ValidationError
from backoffice.models import Menu, Permission

logger = logging.getLogger(__name__)


@dataclass
class MenuNode:
    """A menu with its directly attached permission keys and sorted children."""

    menu: Menu
    permission_keys: tuple = ()
    children: List["MenuNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.menu.id

    @property
    def name(self) -> str:
        return self.menu.name

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


def _sort_key(menu: Menu):
    return (menu.sort_order or 0, menu.name)


class MenuIndex:
    """Adjacency snapshot of active menus: a node array plus child-index lists.

    Built once per snapshot; roots and children are already ordered by
    ``sort_order`` then name.
    """

    def __init__(self, menus: Iterable[Menu]):
        self.nodes: List[Menu] = [m for m in menus if m.is_active]
        self.position: Dict[int, int] = {m.id: i for i, m in enumerate(self.nodes)}
        self.children: List[List[int]] = [[] for _ in self.nodes]
        self.roots: List[int] = []
        self.orphans: List[int] = []

        for i, menu in enumerate(self.nodes):
            parent_id = menu.parent_menu_id
            if parent_id is None:
                self.roots.append(i)
            elif parent_id in self.position:
                self.children[self.position[parent_id]].append(i)
            else:
                self.orphans.append(i)

        def order(i: int):
            return _sort_key(self.nodes[i])

        self.roots.sort(key=order)
        for child_list in self.children:
            child_list.sort(key=order)

    def reachable(self) -> Set[int]:
        seen: Set[int] = set()
        stack = list(self.roots)
        while stack:
            i = stack.pop()
            if i in seen:
                continue
            seen.add(i)
            stack.extend(self.children[i])
        return seen


def find_cycle(menus: Iterable[Menu]) -> List[int]:
    """Return the menu ids forming a parent cycle, or an empty list."""
    parent_of = {m.id: m.parent_menu_id for m in menus}
    done: Set[int] = set()

    for start in parent_of:
        path: List[int] = []
        on_path: Dict[int, int] = {}
        node: Optional[int] = start
        while node is not None and node in parent_of and node not in done:
            if node in on_path:
                return path[on_path[node]:]
            on_path[node] = len(path)
            path.append(node)
            node = parent_of[node]
        done.update(path)
    return []


def validate_parent(menu_id: Optional[int], parent_id: Optional[int], menus: Sequence[Menu]) -> None:
    """Check that ``parent_id`` is a legal parent for ``menu_id``.

    ``menu_id`` is ``None`` for a menu that does not exist yet.

    Raises:
        ValidationError: parent missing, inactive, itself, or a descendant.
    """
    if parent_id is None:
        return
    by_id = {m.id: m for m in menus}
    parent = by_id.get(parent_id)
    if parent is None or not parent.is_active:
        raise ValidationError(f"Parent menu {parent_id} does not exist or is inactive")
    if menu_id is None:
        return
    if parent_id == menu_id:
        raise ValidationError("A menu cannot be its own parent")

    ancestor: Optional[int] = parent_id
    visited: Set[int] = set()
    while ancestor is not None and ancestor not in visited:
        if ancestor == menu_id:
            raise ValidationError(f"Menu {parent_id} is a descendant of menu {menu_id}")
        visited.add(ancestor)
        ancestor = by_id[ancestor].parent_menu_id if ancestor in by_id else None


class MenuTreeBuilder:
    """Builds the navigation hierarchy and prunes it to what a user may act on."""

    @staticmethod
    def build_tree(menus: Iterable[Menu], permissions: Iterable[Permission] = ()) -> List[MenuNode]:
        index = MenuIndex(menus)

        keys_by_menu: Dict[int, List[str]] = {}
        for permission in permissions:
            if permission.is_active:
                keys_by_menu.setdefault(permission.menu_id, []).append(permission.permission_key)

        def build(i: int) -> MenuNode:
            menu = index.nodes[i]
            return MenuNode(
                menu=menu,
                permission_keys=tuple(sorted(keys_by_menu.get(menu.id, ()))),
                children=[build(c) for c in index.children[i]],
            )

        unreachable = len(index.nodes) - len(index.reachable())
        if unreachable:
            logger.warning(
                "Skipped %s menus without an active root path (orphans: %s, cycle: %s)",
                unreachable,
                [index.nodes[i].id for i in index.orphans],
                find_cycle(index.nodes),
            )
        return [build(i) for i in index.roots]

    @staticmethod
    def filter_by_permissions(tree: Sequence[MenuNode], permission_keys: Iterable[str]) -> List[MenuNode]:
        """Keep a node iff it carries a granted key directly or a child survives.

        A node without a granted key of its own and without surviving
        children is pruned, never shown as an empty group.
        """
        granted = frozenset(permission_keys)

        def prune(node: MenuNode) -> Optional[MenuNode]:
            children = [kept for kept in (prune(c) for c in node.children) if kept is not None]
            if children or granted.intersection(node.permission_keys):
                return MenuNode(menu=node.menu, permission_keys=node.permission_keys, children=children)
            return None

        return [kept for kept in (prune(n) for n in tree) if kept is not None]


menu_tree_builder = MenuTreeBuilder()
