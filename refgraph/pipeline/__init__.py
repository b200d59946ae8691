# pipeline - seed to citation graph
from .orchestrator import GraphBuilder, build_graph, build_author_graph, hydrate_metadata
