import pytest
from graphviz import Digraph

from mikrograd.engine import Node, leaf, sum_nodes
from mikrograd.utils import draw_dot, trace


def test_trace():
    x = Node(2.0)
    y = Node(3.0)
    z = x * y + x
    nodes, edges = trace(z)
    assert len(nodes) == 4
    assert len(edges) == 4
    assert (x, z) in edges


def test_trace_dedupes_shared_storage():
    x = Node(2.0)
    nodes, edges = trace(x * x.copy())
    assert len(nodes) == 2
    assert len(edges) == 1


def test_trace_long_sum():
    values = [leaf(float(i)) for i in range(5000)]
    nodes, edges = trace(sum_nodes(values))
    # leaves, the zero accumulator and one add node per value
    assert len(nodes) == 2 * len(values) + 1
    assert len(edges) == 2 * len(values)

    dot = draw_dot(sum_nodes(values[:2000]))
    assert 'label=add' in dot.source


def test_draw_dot():
    x = Node(2.0, name='x')
    y = Node(-3.0, name='y')
    z = x * y
    z.name = 'z'
    z.backward()

    dot = draw_dot(z, rankdir='TB')
    assert isinstance(dot, Digraph)
    source = dot.source
    assert 'rankdir=TB' in source
    assert 'label=mul' in source
    assert 'data -6.0000 | grad 1.0000' in source
    assert 'data 2.0000 | grad -3.0000' in source


def test_draw_dot_rejects_bad_rankdir():
    with pytest.raises(AssertionError):
        draw_dot(Node(1.0), rankdir='RL')
