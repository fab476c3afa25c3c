"""Tests for graph/registry.py.

Tests for declaring resources, outputs and parsing declaration markers.
"""

import pytest

from stackgraph.core.errors import (
    DuplicateIdError,
    ExitCode,
    UnknownResourceError,
    ValidationError,
)
from stackgraph.graph.models import Reference, ResourceState
from stackgraph.graph.registry import ResourceRegistry, is_marker, parse_markers


class TestDeclare:
    """Tests for ResourceRegistry.declare."""

    def test_declare_returns_node(self):
        registry = ResourceRegistry()
        node = registry.declare("queue", "q1", {"name": "jobs"})

        assert node.id == "q1"
        assert node.kind == "queue"
        assert node.config == {"name": "jobs"}
        assert node.state is ResourceState.DECLARED

    def test_duplicate_id_rejected(self):
        registry = ResourceRegistry()
        registry.declare("queue", "q1")

        with pytest.raises(DuplicateIdError) as exc_info:
            registry.declare("storage-bucket", "q1")

        assert exc_info.value.resource_id == "q1"
        assert exc_info.value.exit_code == ExitCode.VALIDATION_ERROR
        assert len(registry) == 1

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            ResourceRegistry().declare("queue", "")

    def test_empty_kind_rejected(self):
        with pytest.raises(ValidationError):
            ResourceRegistry().declare("", "q1")

    def test_config_is_copied(self):
        config = {"name": "jobs"}
        node = ResourceRegistry().declare("queue", "q1", config)
        config["name"] = "other"

        assert node.config["name"] == "jobs"

    def test_iteration_follows_declaration_order(self):
        registry = ResourceRegistry()
        for node_id in ["z", "a", "m"]:
            registry.declare("queue", node_id)

        assert registry.ids() == ["z", "a", "m"]
        assert [n.id for n in registry] == ["z", "a", "m"]
        assert "a" in registry
        assert "b" not in registry


class TestGet:
    """Tests for ResourceRegistry.get."""

    def test_get_existing(self):
        registry = ResourceRegistry()
        node = registry.declare("queue", "q1")
        assert registry.get("q1") is node

    def test_get_unknown(self):
        with pytest.raises(UnknownResourceError) as exc_info:
            ResourceRegistry().get("q2")
        assert exc_info.value.resource_id == "q2"


class TestOutputs:
    """Tests for output declarations."""

    def test_output_declared(self):
        registry = ResourceRegistry()
        registry.declare("queue", "q1")
        registry.output("SQSQueueURL", Reference("q1", "queueUrl"), "queue url")

        assert [o.name for o in registry.outputs] == ["SQSQueueURL"]
        assert registry.outputs[0].description == "queue url"

    def test_duplicate_output_rejected(self):
        registry = ResourceRegistry()
        registry.output("Url", Reference("q1", "queueUrl"))

        with pytest.raises(DuplicateIdError):
            registry.output("Url", Reference("q1", "arn"))


class TestMarkers:
    """Tests for {ref, attribute} marker parsing."""

    def test_is_marker(self):
        assert is_marker({"ref": "a", "attribute": "b"})
        assert not is_marker({"ref": "a"})
        assert not is_marker({"ref": "a", "attribute": "b", "extra": 1})
        assert not is_marker("a.b")

    def test_nested_markers_parsed(self):
        parsed = parse_markers(
            {
                "origin": {"ref": "bucket", "attribute": "websiteUrl"},
                "targets": [{"ref": "asg", "attribute": "name"}, "literal"],
                "nested": {"deep": {"ref": "vpc", "attribute": "subnetIds.0"}},
                "port": 80,
            }
        )

        assert parsed["origin"] == Reference("bucket", "websiteUrl")
        assert parsed["targets"] == [Reference("asg", "name"), "literal"]
        assert parsed["nested"]["deep"] == Reference("vpc", "subnetIds.0")
        assert parsed["port"] == 80

    def test_malformed_marker(self):
        with pytest.raises(ValidationError):
            parse_markers({"ref": "bucket", "attribute": ""})


class TestFromDeclarations:
    """Tests for ResourceRegistry.from_declarations."""

    def test_builds_nodes_in_order(self):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "bucket", "kind": "storage-bucket", "config": {"name": "site"}},
                {
                    "id": "cdn",
                    "kind": "cdn",
                    "config": {"origin": {"ref": "bucket", "attribute": "websiteUrl"}},
                },
            ]
        )

        assert registry.ids() == ["bucket", "cdn"]
        assert registry.get("cdn").config["origin"] == Reference("bucket", "websiteUrl")

    def test_depends_on_string_or_list(self):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "alb", "kind": "load-balancer"},
                {"id": "l1", "kind": "listener", "depends_on": "alb"},
                {"id": "l2", "kind": "listener", "depends_on": ["alb"]},
            ]
        )

        assert registry.get("l1").depends_on == ("alb",)
        assert registry.get("l2").depends_on == ("alb",)

    def test_missing_kind(self):
        with pytest.raises(ValidationError, match="kind"):
            ResourceRegistry.from_declarations([{"id": "q1"}])

    def test_config_must_be_mapping(self):
        with pytest.raises(ValidationError):
            ResourceRegistry.from_declarations([{"id": "q1", "kind": "queue", "config": [1]}])

    def test_outputs_bare_and_described(self):
        registry = ResourceRegistry.from_declarations(
            [{"id": "q1", "kind": "queue"}],
            outputs={
                "QueueUrl": {"ref": "q1", "attribute": "queueUrl"},
                "QueueArn": {
                    "value": {"ref": "q1", "attribute": "arn"},
                    "description": "arn of the queue",
                },
            },
        )

        outputs = {o.name: o for o in registry.outputs}
        assert outputs["QueueUrl"].reference == Reference("q1", "queueUrl")
        assert outputs["QueueArn"].description == "arn of the queue"

    def test_output_must_be_reference(self):
        with pytest.raises(ValidationError):
            ResourceRegistry.from_declarations([], outputs={"Literal": "value"})
