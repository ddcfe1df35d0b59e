"""
Cycle record produced by deadlock detection.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class GraphMode(Enum):
    """Which graph a detection pass ran over."""
    ALLOCATION_GRAPH = "allocation"
    WAIT_FOR_GRAPH = "wait_for"


@dataclass(frozen=True)
class CycleRecord:
    """
    Evidence of a deadlock: the nodes on one cycle in DFS visitation order.

    Attributes:
        nodes: Node indices from the back-edge target to the node that
               closed the cycle
        closing_node: Node the back-edge points to (equal to nodes[0])
        mode: Graph the cycle was found in
        num_processes: P at detection time; in allocation mode nodes below
                       P are processes and the rest are resources

    The cycle is the closed walk nodes[0] -> nodes[1] -> ... -> nodes[-1]
    -> closing_node.
    """
    nodes: Tuple[int, ...]
    closing_node: int
    mode: GraphMode
    num_processes: int

    def is_process_node(self, node: int) -> bool:
        return self.mode == GraphMode.WAIT_FOR_GRAPH or node < self.num_processes

    def node_label(self, node: int) -> str:
        if self.is_process_node(node):
            return f"P{node}"
        return f"R{node - self.num_processes}"

    def labels(self) -> List[str]:
        return [self.node_label(node) for node in self.nodes]

    def process_ids(self) -> List[int]:
        """Distinct process indices on the cycle, ascending."""
        return sorted({node for node in self.nodes if self.is_process_node(node)})

    def edges(self) -> List[Tuple[int, int]]:
        """Consecutive edges of the cycle, including the closing edge."""
        pairs = list(zip(self.nodes, self.nodes[1:]))
        pairs.append((self.nodes[-1], self.closing_node))
        return pairs

    def __str__(self) -> str:
        path = " -> ".join(self.labels())
        return f"{path} -> {self.node_label(self.closing_node)} (Cycle Complete)"
