"""
Visualization utilities for mikrograd computation graphs.

Renders the graph behind a Node with Graphviz, showing each node's value and
gradient and the operation that produced it.
"""

from graphviz import Digraph


def trace(root):
    """
    Collect every node and edge reachable from ``root``.

    Nodes are deduplicated by storage, so several handles to one logical node
    appear once.

    Args:
        root: The Node to start from (typically the loss)

    Returns:
        tuple: (nodes, edges) where nodes is a set of Nodes and edges is a set
        of (child, parent) pairs

    Example:
        >>> from mikrograd.engine import Node
        >>> x = Node(2.0)
        >>> y = Node(3.0)
        >>> nodes, edges = trace(x * y + x)
        >>> len(nodes)
        4
    """
    nodes, edges = set(), set()

    # Explicit stack, like Node.backward, so long sums stay within the recursion limit
    stack = [root]
    while stack:
        v = stack.pop()
        if v in nodes:
            continue
        nodes.add(v)
        for child in v.children:
            edges.add((child, v))
            stack.append(child)

    return nodes, edges


def _node_id(n):
    # hash() of a Node is its storage identity
    return str(hash(n))


def draw_dot(root, format='svg', rankdir='LR'):
    """
    Build a Graphviz diagram of the graph behind ``root``.

    Each Node becomes a record box with its name, data and gradient; every
    derived Node also gets a small node for the operation that produced it.

    Args:
        root: A Node (typically the loss) to visualize from
        format: Output format ('svg', 'png', 'pdf', etc.)
        rankdir: 'LR' (left-right) or 'TB' (top-bottom)

    Returns:
        Digraph: a graphviz Digraph that can be rendered or displayed

    Note:
        Rendering needs the Graphviz system binaries; building the Digraph
        and reading its ``source`` does not.
    """
    assert rankdir in ['LR', 'TB'], "rankdir must be 'LR' (left-right) or 'TB' (top-bottom)"

    nodes, edges = trace(root)
    dot = Digraph(format=format, graph_attr={'rankdir': rankdir})

    for n in nodes:
        uid = _node_id(n)
        label = f'{{ {n.name} | data {n.data:.4f} | grad {n.grad:.4f} }}'
        dot.node(name=uid, label=label, shape='record')

        if n.op_label:
            dot.node(name=uid + n.op_label, label=n.op_label)
            dot.edge(uid + n.op_label, uid)

    for child, parent in edges:
        dot.edge(_node_id(child), _node_id(parent) + parent.op_label)

    return dot
