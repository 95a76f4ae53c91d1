"""
Basic tests for the graph model, validation and layout.
"""

import json

import pytest

from infraviz.errors import GraphValidationError
from infraviz.graph import (
    EdgeKinds,
    InfraGraph,
    Position,
    ResourceEdge,
    ResourceNode,
    ResourceTypes,
    auto_layout,
    layer_for,
    load_graph,
    read_graph_file,
    validate_graph_dict,
    write_graph_file,
)
from infraviz.graph.schema import RESOURCE_CATALOG, RESOURCE_TYPES


def _doc(nodes, edges=None):
    return {"nodes": nodes, "edges": edges or [], "metadata": {"name": "t", "region": "eu-west-1"}}


class TestSchema:
    """Test graph serialization."""

    def test_catalog_covers_every_type(self):
        """Test every resource type has a catalog entry."""
        assert len(RESOURCE_TYPES) == 18
        assert ResourceTypes.ROUTE_TABLE in RESOURCE_CATALOG
        assert RESOURCE_CATALOG[ResourceTypes.EC2].label == "EC2"

    def test_round_trip(self):
        """Test a graph survives to_dict/from_dict."""
        graph = InfraGraph(
            nodes=[
                ResourceNode(id="a", type="vpc", label="VPC", properties={"cidr": "10.0.0.0/16"}),
                ResourceNode(id="b", type="subnet", label="Subnet", position=Position(1, 2)),
            ],
            edges=[ResourceEdge(id="e", source="a", target="b", kind=EdgeKinds.CONTAINS)],
        )
        data = graph.to_dict()
        assert data["edges"][0]["type"] == "contains"
        assert "label" not in data["edges"][0]
        assert "createdAt" in data["metadata"]

        restored = InfraGraph.from_dict(data)
        assert restored.to_dict() == data

    def test_copy_is_deep(self):
        """Test copies do not share property dicts."""
        graph = InfraGraph(nodes=[ResourceNode(id="a", type="rds", label="RDS", properties={"encrypted": False})])
        clone = graph.copy()
        clone.nodes[0].properties["encrypted"] = True
        assert graph.nodes[0].properties["encrypted"] is False


class TestValidation:
    """Test structural validation of graph documents."""

    def test_valid_document(self):
        doc = _doc(
            [{"id": "a", "type": "vpc", "label": "VPC"}, {"id": "b", "type": "subnet"}],
            [{"id": "e", "source": "a", "target": "b", "type": "contains"}],
        )
        assert validate_graph_dict(doc) == []
        graph = load_graph(doc)
        assert graph.metadata.region == "eu-west-1"
        assert graph.get_node("b").label == ""

    def test_dangling_edge(self):
        """Test edges must reference existing nodes."""
        doc = _doc([{"id": "a", "type": "vpc"}], [{"id": "e", "source": "a", "target": "zz"}])
        issues = validate_graph_dict(doc)
        assert len(issues) == 1
        assert "does not reference a node" in issues[0]

    def test_duplicate_ids_and_unknown_type(self):
        doc = _doc([{"id": "a", "type": "vpc"}, {"id": "a", "type": "mainframe"}])
        issues = validate_graph_dict(doc)
        assert any("duplicated" in issue for issue in issues)
        assert any("mainframe" in issue for issue in issues)

    def test_self_loop_and_bad_edge_type(self):
        doc = _doc([{"id": "a", "type": "vpc"}], [{"id": "e", "source": "a", "target": "a", "type": "owns"}])
        issues = validate_graph_dict(doc)
        assert any("self-loop" in issue for issue in issues)
        assert any("owns" in issue for issue in issues)

    def test_position_must_be_numeric(self):
        doc = _doc([{"id": "a", "type": "vpc", "position": {"x": True, "y": "1"}}])
        assert len(validate_graph_dict(doc)) == 2

    def test_not_an_object(self):
        assert validate_graph_dict([]) != []
        assert validate_graph_dict({"nodes": {}, "edges": []}) != []

    def test_load_graph_raises_with_issues(self):
        with pytest.raises(GraphValidationError) as exc_info:
            load_graph(_doc([{"id": "", "type": "vpc"}]))
        assert exc_info.value.issues == ["nodes[0].id must be a non-empty string"]

    def test_graph_files(self, tmp_path):
        """Test reading and writing graph files."""
        path = tmp_path / "graph.json"
        write_graph_file(load_graph(_doc([{"id": "a", "type": "s3"}])), path)
        assert read_graph_file(path).nodes[0].type == "s3"

        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        with pytest.raises(GraphValidationError):
            read_graph_file(bad)

        bad.write_text(json.dumps({"nodes": [], "edges": "none"}))
        with pytest.raises(GraphValidationError):
            read_graph_file(bad)


class TestLayout:
    """Test layered auto-layout."""

    def test_single_node(self):
        nodes = auto_layout([ResourceNode(id="a", type="ec2", label="EC2")])
        assert nodes[0].position.x == 400
        assert nodes[0].position.y == 100

    def test_layers_stack_in_order(self):
        """Test containers sit above segments which sit above compute."""
        nodes = [
            ResourceNode(id="ec2", type="ec2", label="EC2"),
            ResourceNode(id="subnet", type="subnet", label="Subnet"),
            ResourceNode(id="subnet2", type="subnet", label="Subnet"),
            ResourceNode(id="vpc", type="vpc", label="VPC"),
        ]
        auto_layout(nodes)
        y = {node.id: node.position.y for node in nodes}
        assert y["vpc"] < y["subnet"] < y["ec2"]
        assert y["subnet"] == y["subnet2"]
        # Empty layer 1 is skipped
        assert y["subnet"] - y["vpc"] == 150

    def test_nodes_in_a_layer_are_spread(self):
        nodes = [ResourceNode(id=str(i), type="ec2", label="EC2") for i in range(3)]
        auto_layout(nodes)
        xs = [node.position.x for node in nodes]
        assert xs == [200, 400, 600]
        assert len({node.position.y for node in nodes}) == 1

    def test_unknown_type_defaults_to_compute_layer(self):
        assert layer_for("ec2") == 3
        assert layer_for("mainframe") == 3
        assert layer_for("vpc") == 0
