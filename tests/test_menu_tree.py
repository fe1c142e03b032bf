"""Tests for menu tree building, pruning, and parent validation."""

import pytest

from backoffice.core.exceptions import ValidationError
from backoffice.models import Menu, Permission, PermissionType
from backoffice.services.menu_tree import (
    MenuTreeBuilder, find_cycle, menu_tree_builder, validate_parent,
)


def menu(id, name, parent=None, sort_order=0, active=True):
    return Menu(
        id=id, name=name, display_name=name.title(), parent_menu_id=parent,
        sort_order=sort_order, is_active=active,
    )


def permission(id, menu_id, key, active=True):
    return Permission(
        id=id, menu_id=menu_id, permission_type=PermissionType.view,
        permission_key=key, display_name=key, is_active=active,
    )


def shape(nodes):
    return [(n.name, shape(n.children)) for n in nodes]


@pytest.fixture
def example_menus():
    """root -> {A -> {A1, A2}, B}"""
    return [
        menu(1, "root"),
        menu(2, "a", parent=1, sort_order=1),
        menu(3, "a1", parent=2, sort_order=1),
        menu(4, "a2", parent=2, sort_order=2),
        menu(5, "b", parent=1, sort_order=2),
    ]


@pytest.fixture
def example_permissions():
    return [
        permission(10, 2, "a.view"),
        permission(11, 3, "a1.view"),
        permission(12, 4, "a2.view"),
        permission(13, 5, "b.view"),
    ]


class TestBuildTree:

    def test_builds_nested_hierarchy(self, example_menus, example_permissions):
        tree = MenuTreeBuilder.build_tree(example_menus, example_permissions)

        assert shape(tree) == [("root", [("a", [("a1", []), ("a2", [])]), ("b", [])])]

    def test_siblings_sorted_by_order_then_name(self):
        menus = [
            menu(1, "zeta", sort_order=1),
            menu(2, "alpha", sort_order=2),
            menu(3, "beta", sort_order=1),
            menu(4, "child-b", parent=3, sort_order=5),
            menu(5, "child-a", parent=3, sort_order=5),
        ]

        tree = MenuTreeBuilder.build_tree(menus)

        assert [n.name for n in tree] == ["beta", "zeta", "alpha"]
        assert [n.name for n in tree[0].children] == ["child-a", "child-b"]

    def test_attaches_sorted_active_permission_keys(self, example_menus):
        permissions = [
            permission(1, 2, "a.view"),
            permission(2, 2, "a.edit"),
            permission(3, 2, "a.delete", active=False),
        ]

        tree = MenuTreeBuilder.build_tree(example_menus, permissions)
        a = tree[0].children[0]

        assert a.permission_keys == ("a.edit", "a.view")
        assert tree[0].permission_keys == ()

    def test_inactive_menu_drops_its_subtree(self, example_menus):
        example_menus[1].is_active = False

        tree = MenuTreeBuilder.build_tree(example_menus)

        assert shape(tree) == [("root", [("b", [])])]

    def test_orphans_are_excluded(self):
        menus = [menu(1, "root"), menu(2, "lost", parent=99)]

        tree = MenuTreeBuilder.build_tree(menus)

        assert [n.name for n in tree] == ["root"]

    def test_cycle_members_are_excluded(self):
        menus = [menu(1, "root"), menu(2, "x", parent=3), menu(3, "y", parent=2)]

        tree = MenuTreeBuilder.build_tree(menus)

        assert shape(tree) == [("root", [])]

    def test_walk_visits_every_node(self, example_menus):
        tree = MenuTreeBuilder.build_tree(example_menus)

        assert [n.id for n in tree[0].walk()] == [1, 2, 3, 4, 5]


class TestFilterByPermissions:

    def test_keeps_path_to_granted_leaf(self, example_menus, example_permissions):
        tree = menu_tree_builder.build_tree(example_menus, example_permissions)

        filtered = menu_tree_builder.filter_by_permissions(tree, {"a2.view"})

        assert shape(filtered) == [("root", [("a", [("a2", [])])])]

    def test_node_with_own_grant_kept_without_children(self, example_menus, example_permissions):
        tree = menu_tree_builder.build_tree(example_menus, example_permissions)

        filtered = menu_tree_builder.filter_by_permissions(tree, {"b.view"})

        assert shape(filtered) == [("root", [("b", [])])]

    def test_nothing_granted_prunes_everything(self, example_menus, example_permissions):
        tree = menu_tree_builder.build_tree(example_menus, example_permissions)

        assert menu_tree_builder.filter_by_permissions(tree, set()) == []

    def test_unknown_keys_grant_nothing(self, example_menus, example_permissions):
        tree = menu_tree_builder.build_tree(example_menus, example_permissions)

        assert menu_tree_builder.filter_by_permissions(tree, {"zzz.view"}) == []

    def test_input_tree_is_not_modified(self, example_menus, example_permissions):
        tree = menu_tree_builder.build_tree(example_menus, example_permissions)
        before = shape(tree)

        menu_tree_builder.filter_by_permissions(tree, {"a1.view"})

        assert shape(tree) == before


class TestParentValidation:

    def test_find_cycle_reports_members(self):
        menus = [menu(1, "root"), menu(2, "x", parent=3), menu(3, "y", parent=2)]

        assert sorted(find_cycle(menus)) == [2, 3]

    def test_find_cycle_on_tree_is_empty(self, example_menus):
        assert find_cycle(example_menus) == []

    def test_root_parent_is_always_valid(self, example_menus):
        validate_parent(2, None, example_menus)

    def test_new_menu_under_active_parent(self, example_menus):
        validate_parent(None, 2, example_menus)

    def test_missing_parent_rejected(self, example_menus):
        with pytest.raises(ValidationError):
            validate_parent(None, 42, example_menus)

    def test_inactive_parent_rejected(self, example_menus):
        example_menus[4].is_active = False

        with pytest.raises(ValidationError):
            validate_parent(3, 5, example_menus)

    def test_self_parent_rejected(self, example_menus):
        with pytest.raises(ValidationError):
            validate_parent(2, 2, example_menus)

    def test_descendant_parent_rejected(self, example_menus):
        with pytest.raises(ValidationError):
            validate_parent(2, 4, example_menus)

    def test_moving_to_sibling_branch_allowed(self, example_menus):
        validate_parent(3, 5, example_menus)
