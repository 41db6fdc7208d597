"""Tests for dependency ordering."""
from apiforge.core.ordering import generation_order, strongly_connected_components


def test_dependencies_come_first():
    """Every dependency precedes its dependents."""
    order, cycles = generation_order(
        ['orders', 'customers', 'items'],
        [('orders', 'customers'), ('items', 'orders')],
    )
    assert order == ['customers', 'orders', 'items']
    assert cycles == []


def test_declaration_order_breaks_ties():
    """Independent nodes keep declaration order."""
    order, _ = generation_order(['c', 'b', 'a'], [])
    assert order == ['c', 'b', 'a']


def test_self_dependency_ignored():
    """Self edges are not cycles."""
    order, cycles = generation_order(['a'], [('a', 'a')])
    assert order == ['a']
    assert cycles == []


def test_cycle_reported_in_declaration_order():
    """A three-node cycle is reported once, members in declaration order."""
    order, cycles = generation_order(
        ['x', 'c', 'a', 'b'],
        [('a', 'b'), ('b', 'c'), ('c', 'a')],
    )
    assert order == ['x', 'c', 'a', 'b']
    assert cycles == [('c', 'a', 'b')]


def test_unknown_nodes_ignored():
    """Edges to nodes outside the list do not constrain ordering."""
    order, cycles = generation_order(['a'], [('a', 'missing')])
    assert order == ['a']
    assert cycles == []


def test_every_node_exactly_once():
    """Output is a permutation of the input."""
    nodes = [f"t{i}" for i in range(30)]
    deps = [(nodes[i], nodes[(i * 7) % 30]) for i in range(30)]
    order, _ = generation_order(nodes, deps)
    assert sorted(order) == sorted(nodes)


def test_deep_chain_does_not_recurse():
    """Long FK chains are handled iteratively."""
    nodes = [f"t{i}" for i in range(3000)]
    deps = [(nodes[i], nodes[i + 1]) for i in range(len(nodes) - 1)]
    order, cycles = generation_order(nodes, deps)
    assert order == list(reversed(nodes))
    assert cycles == []


def test_strongly_connected_components():
    """Components list members in declaration order."""
    components = strongly_connected_components(
        ['a', 'b', 'c', 'd'],
        {'a': {'b'}, 'b': {'a'}, 'c': {'d'}, 'd': set()},
    )
    assert sorted(components) == [['a', 'b'], ['c'], ['d']]
