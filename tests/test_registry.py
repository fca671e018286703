"""Tests for registries and the shared registry algorithms."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from nodeguard import (
    ActionMapRegistry,
    DuplicateKeyError,
    InvalidArgumentError,
    Node,
    NodeRegistry,
    NotFoundError,
    PermissionRegistry,
    SiteMapPayload,
    SiteMapRegistry,
    add_node,
    add_node_after,
    add_node_before,
    add_root_node,
    find_node,
    iter_nodes,
    remove_node,
    required_permission_of,
)


@pytest.fixture
def registry() -> NodeRegistry:
    """admin(users(users.edit), roles), reports"""
    reg: NodeRegistry = NodeRegistry("test")
    add_root_node(reg, "admin", "Administration")
    add_node(reg, "admin", "admin.users", "Users")
    add_node(reg, "admin.users", "admin.users.edit", "Edit user")
    add_node(reg, "admin", "admin.roles", "Roles")
    add_root_node(reg, "reports", "Reports")
    return reg


class TestFindNode:
    """Tests for find_node."""

    def test_finds_every_key(self, registry: NodeRegistry) -> None:
        """Each inserted key resolves to exactly its node."""
        for key in ("admin", "admin.users", "admin.users.edit", "admin.roles", "reports"):
            node = find_node(registry, key)
            assert node is not None
            assert node.key == key

    def test_missing_key(self, registry: NodeRegistry) -> None:
        """Unknown keys return None."""
        assert find_node(registry, "nope") is None

    def test_key_is_trimmed(self, registry: NodeRegistry) -> None:
        """Surrounding whitespace is ignored."""
        assert find_node(registry, "  admin.roles  ").key == "admin.roles"

    def test_blank_key_returns_none(self, registry: NodeRegistry) -> None:
        """Blank keys return None instead of raising."""
        assert find_node(registry, "") is None
        assert find_node(registry, "   ") is None

    def test_none_key_rejected(self, registry: NodeRegistry) -> None:
        """A None key raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            find_node(registry, None)  # type: ignore[arg-type]

    def test_none_registry_rejected(self) -> None:
        """A None registry raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            find_node(None, "admin")  # type: ignore[arg-type]

    def test_duplicate_roots_raise(self) -> None:
        """Two roots with one key fail the lookup."""
        reg: NodeRegistry = NodeRegistry("test")
        reg.roots.append(Node("dup"))
        reg.roots.append(Node("dup"))
        with pytest.raises(DuplicateKeyError, match="dup"):
            find_node(reg, "dup")

    def test_duplicate_across_levels_raise(self, registry: NodeRegistry) -> None:
        """A key repeated deeper in another branch fails the lookup."""
        find_node(registry, "reports").children.append(Node("admin.users"))
        with pytest.raises(DuplicateKeyError):
            find_node(registry, "admin.users")
        # Other keys are unaffected
        assert find_node(registry, "admin.roles") is not None

    def test_contains_and_len(self, registry: NodeRegistry) -> None:
        """Registries support ``in`` by key and ``len``."""
        assert "admin.users.edit" in registry
        assert "nope" not in registry
        assert 42 not in registry
        assert len(registry) == 5


class TestIterNodes:
    """Tests for iter_nodes."""

    def test_pre_order(self, registry: NodeRegistry) -> None:
        """Nodes come before their children, siblings in order."""
        assert [n.key for n in iter_nodes(registry)] == [
            "admin",
            "admin.users",
            "admin.users.edit",
            "admin.roles",
            "reports",
        ]

    def test_snapshot_tolerates_mutation(self, registry: NodeRegistry) -> None:
        """Mutating while iterating does not break the traversal."""
        keys = []
        for node in registry:
            keys.append(node.key)
            if node.key == "admin":
                add_root_node(registry, "late", "Late")
        assert "late" not in keys
        assert find_node(registry, "late") is not None

    def test_parent_child_consistency(self, registry: NodeRegistry) -> None:
        """Every non-root node is listed by its parent."""
        for node in iter_nodes(registry):
            if node.parent is None:
                assert node in registry.roots
            else:
                assert node.parent.children.index_of(node) >= 0


class TestAddNode:
    """Tests for add_node and add_root_node."""

    def test_appends_as_last_child(self, registry: NodeRegistry) -> None:
        """New children go to the end of the parent's collection."""
        node = add_node(registry, "admin", "admin.audit", "Audit", "Audit log", {"icon": "list"})
        admin = find_node(registry, "admin")
        assert admin.children.keys == ["admin.users", "admin.roles", "admin.audit"]
        assert node.parent is admin
        assert node.description == "Audit log"
        assert node.get_attribute("icon") == "list"

    def test_idempotent(self, registry: NodeRegistry) -> None:
        """A second add with the same key returns the existing node unchanged."""
        first = add_node(registry, "admin", "admin.audit", "Audit")
        second = add_node(registry, "reports", "admin.audit", "Other title", "desc", {"k": "v"})
        assert second is first
        assert second.title == "Audit"
        assert second.description is None
        assert second.get_attribute("k") is None
        assert second.parent.key == "admin"
        assert [n.key for n in iter_nodes(registry)].count("admin.audit") == 1

    def test_missing_parent(self, registry: NodeRegistry) -> None:
        """An unknown parent key raises NotFoundError."""
        with pytest.raises(NotFoundError, match="ghost"):
            add_node(registry, "ghost", "child", "Child")
        assert find_node(registry, "child") is None

    def test_not_found_is_invalid_argument(self, registry: NodeRegistry) -> None:
        """NotFoundError can be caught as InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            add_node(registry, "ghost", "child", "Child")

    def test_blank_key_rejected(self, registry: NodeRegistry) -> None:
        """A blank key cannot be created."""
        with pytest.raises(InvalidArgumentError):
            add_node(registry, "admin", "  ", "Blank")

    def test_key_trimmed_on_create(self, registry: NodeRegistry) -> None:
        """Keys are stored trimmed, so a padded re-add finds the same node."""
        first = add_root_node(registry, " padded ", "Padded")
        assert first.key == "padded"
        assert add_root_node(registry, "padded") is first

    def test_add_root_node_idempotent(self, registry: NodeRegistry) -> None:
        """add_root_node returns an existing node wherever it lives."""
        existing = find_node(registry, "admin.users")
        assert add_root_node(registry, "admin.users", "Users again") is existing
        assert registry.roots.keys == ["admin", "reports"]

    def test_add_root_node_appends(self, registry: NodeRegistry) -> None:
        """New roots are appended to the root collection."""
        node = add_root_node(registry, "help", "Help")
        assert registry.roots.keys == ["admin", "reports", "help"]
        assert node.parent is None

    def test_methods_delegate(self) -> None:
        """Registry methods behave like the free functions."""
        reg: NodeRegistry = NodeRegistry("test")
        root = reg.add_root_node("root", "Root")
        child = reg.add_node("root", "child", "Child")
        assert reg.find_node("child") is child
        assert child.parent is root
        assert reg.remove_node("child") is True


class TestAddBeside:
    """Tests for add_node_before and add_node_after."""

    def test_before_child(self, registry: NodeRegistry) -> None:
        """The new node lands immediately before its sibling."""
        node = add_node_before(registry, "admin.roles", "admin.groups", "Groups")
        admin = find_node(registry, "admin")
        assert admin.children.keys == ["admin.users", "admin.groups", "admin.roles"]
        assert admin.children.index_of(node) < admin.children.index_of(find_node(registry, "admin.roles"))
        assert node.parent is admin

    def test_after_child(self, registry: NodeRegistry) -> None:
        """The new node lands one position after its sibling."""
        admin = find_node(registry, "admin")
        sibling_index = admin.children.index_of(find_node(registry, "admin.users"))
        node = add_node_after(registry, "admin.users", "admin.groups", "Groups")
        assert admin.children.index_of(node) == sibling_index + 1
        assert admin.children.keys == ["admin.users", "admin.groups", "admin.roles"]

    def test_before_first_root(self, registry: NodeRegistry) -> None:
        """Siblings that are roots insert into the root collection."""
        node = add_node_before(registry, "admin", "home", "Home")
        assert registry.roots.keys == ["home", "admin", "reports"]
        assert node.parent is None

    def test_after_last_root(self, registry: NodeRegistry) -> None:
        """Inserting after the last root appends."""
        add_node_after(registry, "reports", "help", "Help")
        assert registry.roots.keys == ["admin", "reports", "help"]

    def test_missing_sibling(self, registry: NodeRegistry) -> None:
        """An unknown sibling key raises NotFoundError."""
        with pytest.raises(NotFoundError):
            add_node_before(registry, "ghost", "x", "X")
        with pytest.raises(NotFoundError):
            add_node_after(registry, "ghost", "x", "X")

    def test_existing_key_returned(self, registry: NodeRegistry) -> None:
        """An existing key is returned and not moved."""
        existing = find_node(registry, "reports")
        assert add_node_before(registry, "admin.users", "reports", "Reports") is existing
        assert existing.parent is None
        assert registry.roots.keys == ["admin", "reports"]


class TestRemoveNode:
    """Tests for remove_node."""

    def test_remove_then_find(self, registry: NodeRegistry) -> None:
        """A removed key no longer resolves, and removing twice returns False."""
        assert remove_node(registry, "admin.roles") is True
        assert find_node(registry, "admin.roles") is None
        assert remove_node(registry, "admin.roles") is False

    def test_remove_missing(self, registry: NodeRegistry) -> None:
        """Removing an unknown key returns False."""
        assert remove_node(registry, "ghost") is False

    def test_remove_root(self, registry: NodeRegistry) -> None:
        """Roots are removed from the root collection."""
        assert remove_node(registry, "reports") is True
        assert registry.roots.keys == ["admin"]

    def test_removed_subtree_stays_consistent(self, registry: NodeRegistry) -> None:
        """The detached subtree keeps its own links."""
        users = find_node(registry, "admin.users")
        edit = find_node(registry, "admin.users.edit")
        assert remove_node(registry, "admin.users") is True
        assert users.parent is None
        assert edit.parent is users
        assert edit.root is users
        assert find_node(registry, "admin.users.edit") is None

    def test_removed_key_can_be_added_again(self, registry: NodeRegistry) -> None:
        """After removal the key is free for a new node."""
        old = find_node(registry, "admin.roles")
        remove_node(registry, "admin.roles")
        new = add_node(registry, "reports", "admin.roles", "Roles report")
        assert new is not old
        assert new.parent.key == "reports"


class TestHierarchyKinds:
    """Tests for the site-map, permission and action-map registries."""

    def test_site_map_required_permission(self) -> None:
        """Site-map pages carry url and required permission."""
        site_map = SiteMapRegistry()
        site_map.add_root_page("admin", "Administration", url="/admin")
        page = site_map.add_page(
            "admin",
            "admin.users",
            "Users",
            url="/admin/users",
            required_permission="users.manage",
        )
        assert page.payload == SiteMapPayload(url="/admin/users", required_permission="users.manage")
        assert site_map.required_permission("admin.users") == "users.manage"
        assert site_map.required_permission("admin") is None
        assert site_map.required_permission("missing") is None

    def test_site_map_before_after(self) -> None:
        """Site-map helpers insert beside siblings."""
        site_map = SiteMapRegistry()
        site_map.add_root_page("b", "B")
        site_map.add_page_before("b", "a", "A", url="/a")
        site_map.add_page_after("b", "c", "C", required_permission="c.view")
        assert site_map.roots.keys == ["a", "b", "c"]
        assert site_map.required_permission("c") == "c.view"

    def test_required_permission_of_plain_nodes(self) -> None:
        """Nodes without a site-map payload require nothing."""
        assert required_permission_of(None) is None
        assert required_permission_of(Node("plain")) is None
        assert required_permission_of(Node("p", payload=SiteMapPayload(required_permission=""))) is None

    def test_permission_and_action_maps(self) -> None:
        """Permission and action-map registries use the same algorithms."""
        permissions = PermissionRegistry()
        permissions.add_root_node("users", "Users")
        permissions.add_node("users", "users.manage", "Manage users", "Create and delete users")
        actions = ActionMapRegistry()
        actions.add_root_node("UsersController", "Users")
        actions.add_node("UsersController", "UsersController.Delete", "Delete")
        assert permissions.find_node("users.manage").parent.key == "users"
        assert actions.find_node("UsersController.Delete").payload is None

    def test_duplicate_message_names_hierarchy(self) -> None:
        """Duplicate-key errors name the hierarchy."""
        actions = ActionMapRegistry()
        actions.roots.append(Node("x"))
        actions.roots.append(Node("x"))
        with pytest.raises(DuplicateKeyError, match="action map"):
            actions.find_node("x")


class TestConcurrency:
    """Tests for registry locking."""

    def test_concurrent_adds(self) -> None:
        """Parallel create-or-get calls never produce duplicate keys."""
        reg: NodeRegistry = NodeRegistry("test")
        add_root_node(reg, "root", "Root")

        def work(i: int) -> None:
            add_node(reg, "root", f"node-{i % 25}", f"Node {i}")
            find_node(reg, f"node-{i % 25}")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(200)))

        assert len(find_node(reg, "root").children) == 25
        assert len(reg) == 26
