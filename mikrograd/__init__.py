"""
Mikrograd: a scalar reverse-mode automatic differentiation engine.

Every number is a Node in a graph built on the fly by ordinary arithmetic;
``backward()`` on the result fills in the gradient of every Node it depends
on. A small Neuron / Layer / MLP layer is built on top.
"""

from mikrograd.engine import Node, leaf, sum_nodes
from mikrograd import nn
from mikrograd.nn import MLP
from mikrograd.utils import draw_dot, trace

__version__ = "0.1.0"
__all__ = ["Node", "leaf", "sum_nodes", "nn", "MLP", "draw_dot", "trace"]
