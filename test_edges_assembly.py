"""
edge building and node assembly tests.

run with: pytest test_edges_assembly.py -v
"""

from refgraph.core.models import EdgeType, FullRecord, PaperMetadata, PaperRole
from refgraph.graph.assembler import assemble_nodes, merge_records
from refgraph.graph.edges import build_edges, build_internal_edges


def full(pid, year=2020, refs=None, role=None):
    return FullRecord(
        id=pid,
        year=year,
        references=list(refs or []),
        metadata=PaperMetadata(title=f"Paper {pid}"),
        role=role
    )


def pairs(edges):
    return sorted((e.source, e.target) for e in edges)


class TestBuildEdges:
    """cites edges inside the graph only."""

    def test_source_and_seed_edges(self):
        source = full("S", refs=["A", "B"])
        seeds = {"A": full("A", refs=["B"]), "B": full("B")}

        edges = build_edges(source, seeds, {})

        assert pairs(edges) == [("A", "B"), ("S", "A"), ("S", "B")]
        assert all(e.edge_type == EdgeType.CITES for e in edges)

    def test_refs_outside_graph_dropped(self):
        source = full("S", refs=["A", "OUT"])
        edges = build_edges(source, {"A": full("A", refs=["OUT2"])}, {})
        assert pairs(edges) == [("S", "A")]

    def test_self_loop_dropped(self):
        source = full("S", refs=["A"])
        edges = build_edges(source, {"A": full("A", refs=["A", "S"])}, {})
        assert pairs(edges) == [("A", "S"), ("S", "A")]

    def test_parallel_edges_kept(self):
        # a paper that is both seed and top paper contributes its edges twice
        source = full("S")
        seed = full("A", refs=["S"])
        edges = build_edges(source, {"A": seed}, {"A": seed})
        assert pairs(edges) == [("A", "S"), ("A", "S")]

    def test_top_paper_edges(self):
        source = full("S", refs=["A"])
        top = {"T": full("T", refs=["A", "S"])}
        assert pairs(build_edges(source, {"A": full("A")}, top)) == [("S", "A"), ("T", "A"), ("T", "S")]

    def test_internal_edges(self):
        works = {"P1": full("P1", refs=["P2", "X"]), "P2": full("P2")}
        assert pairs(build_internal_edges(works)) == [("P1", "P2")]

    def test_edge_dict(self):
        source = full("S", refs=["A"])
        edge = build_edges(source, {"A": full("A")}, {})[0]
        assert edge.to_dict() == {"source": "S", "target": "A", "type": "cites"}


class TestMergeRecords:
    """first write wins."""

    def test_role_precedence(self):
        source = full("S")
        root_seed = full("A")
        branch_seed = full("A", year=1999)
        ranked = full("A", role=PaperRole.ROOT)

        merged = merge_records(source, [root_seed], [branch_seed], [ranked])

        paper, role = merged["A"]
        assert role == PaperRole.ROOT_SEED
        assert paper is root_seed

    def test_source_wins_over_everything(self):
        source = full("S")
        merged = merge_records(source, [full("S")], [full("S")], [full("S", role=PaperRole.BRANCH)])
        assert merged["S"][1] == PaperRole.SOURCE
        assert merged["S"][0] is source

    def test_ranked_papers_keep_their_role(self):
        merged = merge_records(None, papers=[full("T", role=PaperRole.BRANCH)])
        assert merged["T"][1] == PaperRole.BRANCH

    def test_url_ids_collapse(self):
        merged = merge_records(None, [full("https://openalex.org/W1")], [full("W1")])
        assert list(merged) == ["W1"]


class TestAssembleNodes:
    """connections, cited_by, ordering."""

    def build(self):
        source = full("S", year=2020, refs=["A", "B", "OUT"])
        root_seeds = [full("A", year=2018, refs=["B", "B"]), full("B", year=2015)]
        branch_seeds = [full("D", year=2022, refs=["S", "A"])]
        return assemble_nodes(source, root_seeds, branch_seeds, [])

    def test_no_dangling_connections(self):
        nodes = self.build()
        ids = {n.id for n in nodes}
        for node in nodes:
            assert set(node.connections) <= ids
            assert set(node.cited_by) <= ids

    def test_cited_by_is_reverse_of_connections(self):
        nodes = self.build()
        forward = {(n.id, c) for n in nodes for c in n.connections}
        backward = {(c, n.id) for n in nodes for c in n.cited_by}
        assert forward == backward

    def test_connections_deduplicated(self):
        node = {n.id: n for n in self.build()}["A"]
        assert node.connections == ["B"]

    def test_sorted_by_year_then_id(self):
        source = full("S", year=2020)
        nodes = assemble_nodes(source, [full("Z", 2021), full("A", 2021), full("M", 2019)])
        assert [n.id for n in nodes] == ["A", "Z", "S", "M"]

    def test_source_flagged(self):
        nodes = {n.id: n for n in self.build()}
        assert nodes["S"].metadata.is_source
        assert nodes["S"].role == PaperRole.SOURCE
        assert not nodes["A"].metadata.is_source
        assert nodes["A"].role == PaperRole.ROOT_SEED
        assert nodes["D"].role == PaperRole.BRANCH_SEED

    def test_source_metadata_not_mutated(self):
        source = full("S")
        assemble_nodes(source)
        assert not source.metadata.is_source

    def test_self_reference_ignored(self):
        nodes = assemble_nodes(full("S", refs=["S"]))
        assert nodes[0].connections == []
        assert nodes[0].cited_by == []

    def test_node_dict(self):
        node = {n.id: n for n in self.build()}["D"]
        data = node.to_dict()
        assert data["order"] == 2022
        assert data["role"] == "branch_seed"
        assert data["connections"] == ["S", "A"]
