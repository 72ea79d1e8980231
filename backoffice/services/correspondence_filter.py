"""
Correspondence filters over a document graph.

A graph's first node is the selected letter. The filters keep:
- previous: letters reachable from the selected one dated on or before it
- next: letters in the same components as its later correspondence,
  dated on or after it
- all: every letter in every connected component

Connectivity comes from an undirected adjacency matrix built from the
graph edges plus letter_no <-> references links between nodes.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

from backoffice.schemas.graph import GraphData, GraphNode


DateCondition = Callable[[datetime], bool]


def parse_node_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date/datetime string; None when missing or invalid."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def create_adjacency_matrix(graph: GraphData) -> Tuple[List[List[bool]], Dict[str, int], List[datetime]]:
    """
    Build the undirected adjacency matrix of a graph.

    Returns:
        (matrix, node id -> index, node dates). Nodes with a missing or
        invalid date get the current time.
    """
    size = len(graph.nodes)
    matrix = [[False] * size for _ in range(size)]
    index_of: Dict[str, int] = {}
    dates: List[datetime] = []
    by_letter_no: Dict[str, List[int]] = {}
    by_reference: Dict[str, List[int]] = {}
    now = datetime.now()

    for index, node in enumerate(graph.nodes):
        index_of[node.id] = index
        dates.append(parse_node_date(node.data.date) or now)

        if node.data.letter_no:
            by_letter_no.setdefault(str(node.data.letter_no), []).append(index)
        for reference in node.data.references:
            by_reference.setdefault(str(reference), []).append(index)

    for edge in graph.edges:
        source = index_of.get(edge.source)
        target = index_of.get(edge.target)
        if source is not None and target is not None:
            matrix[source][target] = True
            matrix[target][source] = True

    # A node is linked to every node that lists its letter_no as a reference
    for letter_no, node_indices in by_letter_no.items():
        for node_index in node_indices:
            for ref_index in by_reference.get(letter_no, []):
                matrix[node_index][ref_index] = True
                matrix[ref_index][node_index] = True

    return matrix, index_of, dates


def find_connected_nodes(
    matrix: List[List[bool]],
    start: int,
    visited: List[bool],
    dates: List[datetime],
    condition: Optional[DateCondition] = None,
) -> Set[int]:
    """
    Depth-first search from `start`, marking `visited` in place.

    Neighbours failing `condition` are excluded but parked; once the stack
    drains, their own unvisited neighbours are tested once more so a
    qualifying letter behind a non-qualifying one is still found.
    """
    result = {start}
    pending: Set[int] = set()
    stack = [start]
    visited[start] = True

    while stack:
        current = stack.pop()

        for neighbor, linked in enumerate(matrix[current]):
            if not linked or visited[neighbor]:
                continue
            visited[neighbor] = True
            if condition is None or condition(dates[neighbor]):
                result.add(neighbor)
                stack.append(neighbor)
            else:
                pending.add(neighbor)

        if not stack and pending:
            for parked in sorted(pending):
                for candidate, linked in enumerate(matrix[parked]):
                    if linked and not visited[candidate]:
                        if condition is None or condition(dates[candidate]):
                            result.add(candidate)
                            stack.append(candidate)
                            visited[candidate] = True
            pending.clear()

    return result


def _collect(graph: GraphData, indices: Set[int], dates: List[datetime]) -> GraphData:
    """Nodes at `indices` sorted by date, plus edges with both ends kept."""
    ordered = sorted(indices, key=lambda i: (dates[i], i))
    nodes: List[GraphNode] = [graph.nodes[i] for i in ordered]
    kept = {node.id for node in nodes}
    edges = [edge for edge in graph.edges if edge.source in kept and edge.target in kept]
    return GraphData(nodes=nodes, edges=edges)


def _selected(graph: GraphData) -> Optional[Tuple[GraphNode, datetime]]:
    if not graph.nodes:
        return None
    node = graph.nodes[0]
    selected_date = parse_node_date(node.data.date)
    if selected_date is None:
        return None
    return node, selected_date


def filter_previous_correspondence(graph: GraphData) -> GraphData:
    selected = _selected(graph)
    if selected is None:
        return GraphData()
    node, selected_date = selected

    matrix, index_of, dates = create_adjacency_matrix(graph)
    visited = [False] * len(graph.nodes)
    indices = find_connected_nodes(
        matrix, index_of[node.id], visited, dates, lambda d: d <= selected_date
    )
    return _collect(graph, indices, dates)


def filter_next_correspondence(graph: GraphData) -> GraphData:
    selected = _selected(graph)
    if selected is None:
        return GraphData()
    node, selected_date = selected

    matrix, index_of, dates = create_adjacency_matrix(graph)
    visited = [False] * len(graph.nodes)
    future = find_connected_nodes(
        matrix, index_of[node.id], visited, dates, lambda d: d >= selected_date
    )

    # Expand to the full components of the later letters, then re-apply the date cut
    component_visited = [False] * len(graph.nodes)
    connected: Set[int] = set()
    for index in sorted(future):
        if not component_visited[index]:
            connected |= find_connected_nodes(matrix, index, component_visited, dates)

    indices = {i for i in connected if dates[i] >= selected_date}
    return _collect(graph, indices, dates)


def filter_all_correspondence(graph: GraphData) -> GraphData:
    if not graph.nodes:
        return GraphData()

    matrix, _, dates = create_adjacency_matrix(graph)
    visited = [False] * len(graph.nodes)
    indices: Set[int] = set()
    for index in range(len(graph.nodes)):
        if not visited[index]:
            indices |= find_connected_nodes(matrix, index, visited, dates)

    return _collect(graph, indices, dates)


FILTERS = {
    "previous": filter_previous_correspondence,
    "next": filter_next_correspondence,
    "all": filter_all_correspondence,
}
