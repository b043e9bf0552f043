import logging
import numbers
import operator
import weakref
from collections import namedtuple

import numpy as np

logger = logging.getLogger(__name__)


def _float_semantics():
    """Let NaN and Infinity propagate silently, like plain float64 arithmetic."""
    return np.errstate(divide='ignore', over='ignore', invalid='ignore')


def _scalar(value):
    """Convert ``value`` to a float64 scalar, rejecting lists and arrays."""
    if np.ndim(value) != 0:
        raise ValueError(f"Node data must be a scalar, got {value!r}")
    return np.float64(value)


class _Cell:
    """Storage for one logical node: its value and its accumulated gradient."""

    __slots__ = ('data', 'grad', '__weakref__')

    def __init__(self, data):
        self.data = _scalar(data)
        self.grad = np.float64(0.0)


# Local derivative rule of a derived node.
#   op:       which rule to apply ('add', 'mul', 'pow', 'relu')
#   operands: weak references to the operand cells (one entry when both operands alias)
#   out:      weak reference to the cell of the node that owns this step
#   captured: scalars recorded at construction time
_BackwardStep = namedtuple('_BackwardStep', ['op', 'operands', 'out', 'captured'])


def _add_rule(operands, out, captured):
    if len(operands) == 1:
        operands[0].grad += 2.0 * out.grad
        return
    for cell in operands:
        cell.grad += out.grad


def _mul_rule(operands, out, captured):
    if len(operands) == 1:
        # d/dx(x*x) = 2x
        (x,) = captured
        operands[0].grad += 2.0 * (x * out.grad)
        return
    lhs, rhs = operands
    lhs_data, rhs_data = captured
    lhs.grad += rhs_data * out.grad
    rhs.grad += lhs_data * out.grad


def _pow_rule(operands, out, captured):
    (cell,) = operands
    base, exponent = captured
    cell.grad += (exponent * np.power(base, exponent - 1.0)) * out.grad


def _relu_rule(operands, out, captured):
    (cell,) = operands
    (accumulate,) = captured
    contribution = out.grad if out.data > 0 else np.float64(0.0)
    if accumulate:
        cell.grad += contribution
    else:
        cell.grad = np.float64(contribution)


_RULES = {
    'add': _add_rule,
    'mul': _mul_rule,
    'pow': _pow_rule,
    'relu': _relu_rule,
}


def _apply_step(step):
    """Run one backward step. Does nothing if any cell it targets is gone."""
    out = step.out()
    cells = tuple(ref() for ref in step.operands)
    if out is None or any(cell is None for cell in cells):
        return
    _RULES[step.op](cells, out, step.captured)


class Node:
    """
    One differentiable scalar in a dynamically built computation graph.

    Every arithmetic operation on Nodes allocates a new Node that remembers its
    operands (``children``) and how to push its gradient back into them. Calling
    ``backward()`` on the final Node fills in ``grad`` for everything it depends on.

    The value and the gradient live in a storage cell that is shared by every
    handle to the same logical node, so ``x + x`` accumulates into one place and
    ``x.copy()`` observes the same gradient as ``x``. Equality and hashing follow
    that storage, not the numeric value.

    Example:
        >>> x = Node(2.0)
        >>> y = Node(3.0)
        >>> z = x * y + x
        >>> z.backward()
        >>> print(x.grad)  # dz/dx = y + 1
        4.0
    """

    # numpy scalars defer to the reflected operators below
    __array_ufunc__ = None

    def __init__(self, data, _children=(), _op='', name=''):
        """
        Initialize a Node.

        Args:
            data: The scalar value (anything numpy can turn into a float64)
            _children: Operand Nodes that produced this one (internal use for autograd)
            _op: Label of the operation that produced this Node (internal)
            name: Optional name for debugging and visualization
        """
        self._cell = _Cell(data)
        self._prev = tuple(_children)
        self._op = _op
        self._backward = None
        self.name = name

    @property
    def data(self):
        """
        The scalar value, shared by every handle to this node.

        Assigning stores a float64 into the shared storage; lists and arrays
        raise ``ValueError``. Graphs built earlier keep the operand values they
        captured when they were constructed.
        """
        return self._cell.data

    @data.setter
    def data(self, value):
        self._cell.data = _scalar(value)

    @property
    def grad(self):
        """Accumulated derivative of the last backward root with respect to this node."""
        return self._cell.grad

    @property
    def children(self):
        """Operand Nodes that produced this one, in construction order (empty for leaves)."""
        return self._prev

    @property
    def op_label(self):
        """Debug label of the producing operation ('add', 'mul', 'pow', 'relu', 'sub', 'div', 'neg', or '')."""
        return self._op

    def copy(self):
        """Return another handle to the same logical node (same storage, same graph)."""
        clone = Node.__new__(Node)
        clone._cell = self._cell
        clone._prev = self._prev
        clone._op = self._op
        clone._backward = self._backward
        clone.name = self.name
        return clone

    __copy__ = copy

    def __deepcopy__(self, memo):
        # Backward steps hold weak references to the original cells; a deep
        # copy would keep writing gradients into the original graph.
        raise TypeError("Node does not support deepcopy; use copy() for another handle "
                        "or build a new graph from leaf values")

    def shares_storage(self, other):
        """Return True if ``other`` is a handle to the same logical node."""
        return self._cell is other._cell

    def zero_grad(self):
        """Reset this node's gradient to 0 (visible through every handle)."""
        self._cell.grad = np.float64(0.0)

    def _binary(self, other, op, forward):
        """
        Build the result of a primitive binary operation.

        When both operands are the same logical node, the result keeps a single
        child and its rule counts the contribution twice.
        """
        other = _as_node(other)
        if other is None:
            return NotImplemented

        aliased = self.shares_storage(other)
        children = (self,) if aliased else (self, other)
        with _float_semantics():
            out = Node(forward(self.data, other.data), children, op)

        if aliased:
            operands = (weakref.ref(self._cell),)
            captured = (self.data,)
        else:
            operands = (weakref.ref(self._cell), weakref.ref(other._cell))
            captured = (self.data, other.data)
        out._backward = _BackwardStep(op, operands, weakref.ref(out._cell), captured)
        return out

    def __add__(self, other):
        """
        Addition: d(a+b)/da = 1, d(a+b)/db = 1.

        Example:
            >>> print((Node(3.0) + 2).data)
            5.0
        """
        return self._binary(other, 'add', operator.add)

    def __mul__(self, other):
        """
        Multiplication: d(a*b)/da = b, d(a*b)/db = a.

        Example:
            >>> print((Node(3.0) * Node(4.0)).data)
            12.0
        """
        return self._binary(other, 'mul', operator.mul)

    def pow(self, exponent):
        """
        Raise to a constant real power: d(x^n)/dx = n * x^(n-1).

        A negative base with a fractional exponent gives NaN and a zero base
        with a negative exponent gives Infinity; neither raises.
        """
        assert isinstance(exponent, numbers.Real), "only supporting real-valued powers"
        exponent = np.float64(exponent)

        with _float_semantics():
            out = Node(np.power(self.data, exponent), (self,), 'pow')
        out._backward = _BackwardStep(
            'pow', (weakref.ref(self._cell),), weakref.ref(out._cell), (self.data, exponent))
        return out

    def __pow__(self, exponent):
        return self.pow(exponent)

    def relu(self, accumulate=True):
        """
        ReLU activation: max(0, x).

        The gradient passes through only where the output is positive. With
        ``accumulate=False`` the backward step assigns the operand's gradient
        instead of adding to it, discarding whatever other paths already
        contributed to that operand.
        """
        out = Node(np.maximum(0.0, self.data), (self,), 'relu')
        out._backward = _BackwardStep(
            'relu', (weakref.ref(self._cell),), weakref.ref(out._cell), (bool(accumulate),))
        return out

    def backward(self):
        """
        Backpropagate from this node through everything it was built from.

        Orders the reachable graph so that every node comes after all of its
        children, seeds this node's gradient with 1 and then applies each
        node's backward step from the root towards the leaves. Gradients are
        added to whatever is already stored; reset them with ``zero_grad``
        between passes.

        Example:
            >>> x = Node(2.0)
            >>> y = x * 3 + 1
            >>> y.backward()
            >>> print(x.grad)
            3.0
        """
        topo = []
        visited = set()

        # Iterative post-order walk; long chains would overflow the recursion limit.
        stack = [(self, False)]
        while stack:
            v, expanded = stack.pop()
            if expanded:
                topo.append(v)
                continue
            if v in visited:
                continue
            visited.add(v)
            stack.append((v, True))
            for child in reversed(v._prev):
                stack.append((child, False))

        logger.debug("backward pass over %d nodes", len(topo))

        self._cell.grad = np.float64(1.0)
        with _float_semantics():
            for v in reversed(topo):
                if v._backward is not None:
                    _apply_step(v._backward)

    # Derived operations, expressed through add, mul and pow

    def __neg__(self):
        """Negation: -x = x * -1"""
        out = self * -1
        out._op = 'neg'
        return out

    def __radd__(self, other):
        """Right addition: other + self (when other is a plain number)"""
        return self + other

    def __sub__(self, other):
        """Subtraction: a - b = a + b * -1"""
        other = _as_node(other)
        if other is None:
            return NotImplemented
        out = self + other * -1
        out._op = 'sub'
        return out

    def __rsub__(self, other):
        """Right subtraction: other - self"""
        other = _as_node(other)
        if other is None:
            return NotImplemented
        return other - self

    def __rmul__(self, other):
        """Right multiplication: other * self (when other is a plain number)"""
        return self * other

    def __truediv__(self, other):
        """Division: a / b = a * b^(-1)"""
        other = _as_node(other)
        if other is None:
            return NotImplemented
        out = self * other.pow(-1)
        out._op = 'div'
        return out

    def __rtruediv__(self, other):
        """Right division: other / self"""
        other = _as_node(other)
        if other is None:
            return NotImplemented
        return other / self

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return self._cell is other._cell

    def __hash__(self):
        return id(self._cell)

    def __repr__(self):
        return f"Node[data={self.data}, grad={self.grad}]"


def _as_node(value):
    if isinstance(value, Node):
        return value
    if isinstance(value, numbers.Real):
        return Node(value)
    return None


def leaf(value):
    """Create an independent leaf Node with zero gradient."""
    return Node(value)


def sum_nodes(nodes):
    """
    Add up a sequence of Nodes (or numbers), starting from a zero leaf.

    The zero accumulator is part of the resulting graph. An empty sequence
    gives a fresh zero leaf.
    """
    total = leaf(0.0)
    for node in nodes:
        total = total + node
    return total
