"""Unit tests for permission set expansion, enumeration and tree building."""

import pytest

from kublade.core.permissions import WILDCARD, PermissionSet


class TestFromRequest:
    """Binding a guard's permission template to route parameters."""

    def test_binds_project_identifier(self):
        assert PermissionSet.from_request("projects.update", {"project_id": 5}) == [
            "projects.*",
            "projects.5.*",
            "projects.5.update",
        ]

    def test_without_parameters_expands_template_only(self):
        assert PermissionSet.from_request("projects.view") == ["projects.*", "projects.view"]

    def test_binds_nested_resources_in_order(self):
        permissions = PermissionSet.from_request(
            "templates.fields.view",
            {"template_id": "t1", "field_id": "f1"},
        )
        assert permissions == [
            "templates.*",
            "templates.t1.*",
            "templates.t1.fields.*",
            "templates.t1.fields.f1.*",
            "templates.t1.fields.f1.view",
        ]

    def test_ignores_parameters_without_matching_segment(self):
        assert PermissionSet.from_request("users.view", {"project_id": 3}) == ["users.*", "users.view"]

    def test_ignores_empty_parameter_values(self):
        assert PermissionSet.from_request("projects.view", {"project_id": ""}) == ["projects.*", "projects.view"]

    def test_only_first_occurrence_is_bound(self):
        assert PermissionSet.bind("projects.projects.view", {"project_id": 1}) == "projects.1.projects.view"

    def test_hyphenated_segment(self):
        bound = PermissionSet.bind("network-policies.update", {"network_policy_id": 9})
        assert bound == "network-policies.9.update"


class TestAll:
    """Enumerating every grantable permission."""

    def test_includes_wildcard_and_prefixes(self):
        permissions = PermissionSet.all([("roles.view", [])])
        assert permissions == [WILDCARD, "roles.*", "roles.view"]

    def test_binds_known_identifiers(self):
        permissions = PermissionSet.all(
            [("projects.view", []), ("projects.update", ["project_id"])],
            {"project_id": ["p1"]},
        )
        assert permissions == ["*", "projects.*", "projects.p1.*", "projects.p1.update", "projects.view"]

    def test_result_is_sorted_and_unique(self):
        permissions = PermissionSet.all([("users.view", []), ("users.view", []), ("users.add", [])])
        assert permissions == sorted(set(permissions))
        assert permissions.count("users.*") == 1

    def test_route_parameter_without_identifiers_yields_nothing_bound(self):
        permissions = PermissionSet.all([("projects.update", ["project_id"])], {"project_id": []})
        assert permissions == ["*"]


class TestTree:
    """Nesting permissions for display."""

    def test_identifiers_collapse_into_parent_wildcard(self):
        tree = PermissionSet.tree(["*", "projects.*", "projects.5.*", "projects.5.update"])
        assert tree == {
            "*": None,
            "projects": {
                "*": None,
                "projects.*": {"*": None, "update": None},
            },
        }

    def test_uuid_identifier_is_collapsed(self):
        tree = PermissionSet.tree(["templates.123e4567-e89b-12d3-a456-426614174000.view"])
        assert tree == {"*": None, "templates": {"templates.*": {"view": None}}}

    def test_keys_are_sorted(self):
        tree = PermissionSet.tree(["users.view", "roles.view", "projects.view"])
        assert list(tree.keys()) == ["*", "projects", "roles", "users"]

    @pytest.mark.parametrize(
        "segment,expected",
        [
            ("5", True),
            ("123e4567-e89b-12d3-a456-426614174000", True),
            ("view", False),
            ("*", False),
        ],
    )
    def test_is_identifier(self, segment, expected):
        assert PermissionSet.is_identifier(segment) is expected
