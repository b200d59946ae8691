"""
graph exporter - writes built graphs to files.

supports:
- JSON (Graph.to_dict, for web visualization)
- GraphML (for Gephi, Cytoscape)
- GEXF (for Gephi)

usage:
    from refgraph.export import GraphExporter

    exporter = GraphExporter()
    exporter.to_json(graph, "citation_graph.json")
    exporter.to_graphml(graph, "citation_graph.graphml")
"""

import json
import logging
from typing import Any, Dict, Optional

import networkx as nx

from ..core.models import Graph

logger = logging.getLogger("refgraph.export")


class GraphExporter:
    """exports refgraph graphs to various formats."""

    def to_networkx(self, graph: Graph) -> nx.MultiDiGraph:
        """
        citation graph as a networkx multigraph.
        parallel cites edges are kept, as in the edge list.
        """
        G = nx.MultiDiGraph()
        for node in graph.nodes:
            meta = node.metadata
            G.add_node(
                node.id,
                title=meta.title,
                year=node.order,
                role=node.role.value if node.role else "",
                citation_count=meta.citation_count,
                authors=meta.authors,
                doi=meta.doi or "",
                source_name=meta.source_name or "",
                is_source=meta.is_source
            )
        for edge in graph.edges:
            # "type" is reserved for edge direction in gexf
            G.add_edge(edge.source, edge.target, relation=edge.edge_type.value)

        for pid, rank in graph.ranks.items():
            if pid in G:
                G.nodes[pid]["rank"] = rank.rank
        return G

    def to_json(self, graph: Graph, filepath: Optional[str] = None) -> Dict[str, Any]:
        """export graph as a JSON-ready dict, optionally written to filepath."""
        result = graph.to_dict()
        if filepath:
            with open(filepath, "w") as f:
                json.dump(result, f, indent=2)
            logger.info(f"exported JSON to {filepath}")
        return result

    def to_graphml(self, graph: Graph, filepath: str):
        """export graph to GraphML format (for Gephi, Cytoscape)."""
        G = self._flatten(self.to_networkx(graph))
        nx.write_graphml(G, filepath)
        logger.info(f"exported GraphML to {filepath}")

    def to_gexf(self, graph: Graph, filepath: str):
        """export graph to GEXF format (for Gephi)."""
        G = self._flatten(self.to_networkx(graph), stringify_bools=True)
        nx.write_gexf(G, filepath)
        logger.info(f"exported GEXF to {filepath}")

    def _flatten(self, G: nx.MultiDiGraph, stringify_bools: bool = False) -> nx.MultiDiGraph:
        """convert list/dict attributes to JSON strings, file formats only take scalars."""
        G = G.copy()
        for node_id in G.nodes():
            for key, value in list(G.nodes[node_id].items()):
                if isinstance(value, (list, dict)):
                    G.nodes[node_id][key] = json.dumps(value)
                elif stringify_bools and isinstance(value, bool):
                    G.nodes[node_id][key] = str(value).lower()
        return G
