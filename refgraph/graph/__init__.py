from .ranking import (
    recency_weight, compute_root_ranks, compute_branch_ranks, top_ranked,
    reference_frequency, select_frequent_refs
)
from .expansion import ExpansionResult, expand_roots, expand_branches
from .edges import build_edges, build_internal_edges
from .assembler import assemble_nodes, merge_records
