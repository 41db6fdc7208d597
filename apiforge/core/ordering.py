"""Dependency ordering for entity generation."""
import heapq
import logging
from typing import Dict, Iterable, List, Set, Tuple

logger = logging.getLogger(__name__)


def strongly_connected_components(
    nodes: List[str],
    edges: Dict[str, Set[str]],
) -> List[List[str]]:
    """Tarjan's algorithm, iterative so deep FK chains cannot hit the recursion limit.

    Args:
        nodes: Node names in declaration order
        edges: Adjacency sets; ``edges[a]`` holds every node ``a`` depends on

    Returns:
        Components, each listing its members in declaration order
    """
    position = {name: i for i, name in enumerate(nodes)}
    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[str] = []
    components: List[List[str]] = []
    counter = 0

    for root in nodes:
        if root in index:
            continue

        work = [(root, iter(sorted(edges.get(root, ()), key=position.get)))]
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)

        while work:
            node, successors = work[-1]
            advanced = False
            for succ in successors:
                if succ not in position:
                    continue
                if succ not in index:
                    index[succ] = lowlink[succ] = counter
                    counter += 1
                    stack.append(succ)
                    on_stack.add(succ)
                    work.append((succ, iter(sorted(edges.get(succ, ()), key=position.get))))
                    advanced = True
                    break
                if succ in on_stack:
                    lowlink[node] = min(lowlink[node], index[succ])
            if advanced:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

            if lowlink[node] == index[node]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(sorted(component, key=position.get))

    return components


def generation_order(
    nodes: List[str],
    dependencies: Iterable[Tuple[str, str]],
) -> Tuple[List[str], List[Tuple[str, ...]]]:
    """Topologically order nodes so every dependency precedes its dependents.

    Self-dependencies are ignored. Nodes that depend on each other through a
    cycle are kept together in declaration order, and each such cycle is
    reported. Among independent nodes, declaration order breaks ties, so the
    result is deterministic.

    Args:
        nodes: Node names in declaration order
        dependencies: (dependent, dependency) pairs

    Returns:
        Tuple of (ordered nodes, cycles), each cycle in declaration order
    """
    position = {name: i for i, name in enumerate(nodes)}
    edges: Dict[str, Set[str]] = {name: set() for name in nodes}
    for dependent, dependency in dependencies:
        if dependent == dependency:
            continue
        if dependent in position and dependency in position:
            edges[dependent].add(dependency)

    components = strongly_connected_components(nodes, edges)
    component_of = {}
    for i, component in enumerate(components):
        for member in component:
            component_of[member] = i

    # Condensed graph: component -> components it depends on
    waiting_on: Dict[int, Set[int]] = {i: set() for i in range(len(components))}
    dependents: Dict[int, Set[int]] = {i: set() for i in range(len(components))}
    for dependent, targets in edges.items():
        for dependency in targets:
            a, b = component_of[dependent], component_of[dependency]
            if a != b:
                waiting_on[a].add(b)
                dependents[b].add(a)

    def rank(i: int) -> int:
        return position[components[i][0]]

    ready = [(rank(i), i) for i, deps in waiting_on.items() if not deps]
    heapq.heapify(ready)

    order: List[str] = []
    while ready:
        _, i = heapq.heappop(ready)
        order.extend(components[i])
        for j in sorted(dependents[i]):
            waiting_on[j].discard(i)
            if not waiting_on[j]:
                heapq.heappush(ready, (rank(j), j))

    cycles = [tuple(c) for c in components if len(c) > 1]
    cycles.sort(key=lambda c: position[c[0]])
    for cycle in cycles:
        logger.warning("Foreign key cycle among tables: %s", ", ".join(cycle))

    return order, cycles
