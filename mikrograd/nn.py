"""
Neural network building blocks for mikrograd.

Neuron, Layer and MLP are plain compositions of engine Nodes: they own their
parameters as leaf Nodes and build a fresh graph on every evaluation.
"""

import logging
import numbers

import numpy as np

from mikrograd.engine import Node, sum_nodes

logger = logging.getLogger(__name__)


def _check_size(value, what):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise ValueError(f"{what} must be a positive integer, got {value!r}")


def _check_arity(inputs, expected, owner):
    if len(inputs) != expected:
        raise ValueError(f"{owner} expects {expected} inputs, got {len(inputs)}")


class Module:
    """
    Base class for all neural network modules.

    Provides common functionality for managing parameters and gradients.
    """

    def zero_grad(self):
        """
        Reset all gradients to zero.

        Call this before each backward pass; gradients from earlier passes
        are otherwise added to the new ones.
        """
        for p in self.parameters():
            p.zero_grad()

    def parameters(self):
        """
        Return a list of all trainable parameters (weights and biases).

        Override this in subclasses to return actual parameters.
        """
        return []

    def evaluate(self, x):
        """Run the forward pass on `x`; override in subclasses."""
        raise NotImplementedError(f"{self.__class__.__name__}.evaluate not implemented.")

    def __call__(self, x):
        return self.evaluate(x)


class Neuron(Module):
    """
    A single neuron: activation(w1*x1 + ... + wn*xn + b).

    Args:
        nin: Number of inputs
        nonlin: If True, apply ReLU; otherwise the output is linear
        weights: Optional initial weights, one per input
        bias: Optional initial bias (default 0)
        rng: Optional numpy Generator used for the random weights

    Example:
        >>> n = Neuron(2, nonlin=False, weights=[10, 100], bias=3)
        >>> print(n([1.2, 1.3]).data)
        145.0
    """

    def __init__(self, nin, nonlin=True, weights=None, bias=None, rng=None):
        _check_size(nin, "nin")

        if weights is not None:
            weights = np.asarray(weights, dtype=float)
            if weights.shape != (nin,):
                raise ValueError(f"Neuron with {nin} inputs needs {nin} weights, got shape {weights.shape}")
        else:
            rng = rng if rng is not None else np.random.default_rng()
            weights = rng.uniform(-1.0, 1.0, nin)

        self.w = [Node(wi) for wi in weights]
        if bias is not None and np.ndim(bias) != 0:
            raise ValueError(f"Neuron bias must be a scalar, got {bias!r}")
        self.b = Node(0.0 if bias is None else bias)
        self.nonlin = nonlin

    @property
    def nin(self):
        return len(self.w)

    def evaluate(self, x):
        """
        Forward pass: activation(w . x + b).

        Args:
            x: Sequence of Nodes or numbers, one per weight

        Returns:
            The output Node
        """
        x = list(x)
        _check_arity(x, self.nin, repr(self))
        act = sum_nodes(wi * xi for wi, xi in zip(self.w, x)) + self.b
        return act.relu() if self.nonlin else act

    def parameters(self):
        """Return the weights followed by the bias: [w1, ..., wn, b]."""
        return self.w + [self.b]

    def __repr__(self):
        return f"{'ReLU' if self.nonlin else 'Linear'}Neuron({len(self.w)})"


class Layer(Module):
    """
    A fully connected layer: ``nout`` neurons all fed the same inputs.

    Args:
        nin: Number of inputs to each neuron
        nout: Number of neurons (outputs)
        nonlin: Activation flag passed to every neuron
        weights: Optional initial weights with shape (nout, nin)
        biases: Optional initial biases with shape (nout,)
        rng: Optional numpy Generator used for the random weights
    """

    def __init__(self, nin, nout, nonlin=True, weights=None, biases=None, rng=None):
        _check_size(nin, "nin")
        _check_size(nout, "nout")

        if weights is not None:
            weights = np.asarray(weights, dtype=float)
            if weights.shape != (nout, nin):
                raise ValueError(f"Layer weights must have shape {(nout, nin)}, got {weights.shape}")
        if biases is not None:
            biases = np.asarray(biases, dtype=float)
            if biases.shape != (nout,):
                raise ValueError(f"Layer biases must have shape {(nout,)}, got {biases.shape}")

        rng = rng if rng is not None else np.random.default_rng()
        self._nin = nin
        self.neurons = [
            Neuron(
                nin,
                nonlin=nonlin,
                weights=weights[i] if weights is not None else None,
                bias=biases[i] if biases is not None else None,
                rng=rng,
            )
            for i in range(nout)
        ]

    @property
    def nin(self):
        return self._nin

    @property
    def nout(self):
        return len(self.neurons)

    def evaluate(self, x):
        """Return one output Node per neuron (always a list, even for a single neuron)."""
        x = list(x)
        _check_arity(x, self.nin, "Layer")
        return [n.evaluate(x) for n in self.neurons]

    def parameters(self):
        """Return all weights and biases, neuron by neuron."""
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        return f"Layer of [{', '.join(str(n) for n in self.neurons)}]"


class MLP(Module):
    """
    Multi-Layer Perceptron: a sequence of fully connected layers.

    Every layer but the last uses ReLU; the last one is linear so the outputs
    can be unbounded scores or regression targets.

    Args:
        nin: Number of input features
        nouts: Output size of each layer, e.g. [16, 16, 1] builds 2 -> 16 -> 16 -> 1
        weights: Optional list of per-layer weights, each shaped (nout, nin)
        biases: Optional list of per-layer biases
        rng: Optional numpy Generator used for the random weights

    Example:
        >>> mlp = MLP(2, [16, 16, 1])
        >>> scores = mlp([Node(0.5), Node(-1.0)])
        >>> loss = (scores[0] - 1) ** 2
        >>> mlp.zero_grad()
        >>> loss.backward()
        >>> for p in mlp.parameters():
        ...     p.data -= 0.01 * p.grad
    """

    def __init__(self, nin, nouts, weights=None, biases=None, rng=None):
        _check_size(nin, "nin")
        nouts = list(nouts)
        if not nouts:
            raise ValueError("MLP needs at least one layer size")
        for nout in nouts:
            _check_size(nout, "layer size")
        if weights is not None and len(weights) != len(nouts):
            raise ValueError(f"MLP with {len(nouts)} layers needs {len(nouts)} weight entries, got {len(weights)}")
        if biases is not None and len(biases) != len(nouts):
            raise ValueError(f"MLP with {len(nouts)} layers needs {len(nouts)} bias entries, got {len(biases)}")

        rng = rng if rng is not None else np.random.default_rng()
        layer_sizes = [nin] + nouts

        self.layers = []
        for i in range(len(nouts)):
            is_output_layer = (i == len(nouts) - 1)

            layer = Layer(
                layer_sizes[i],
                layer_sizes[i + 1],
                nonlin=not is_output_layer,
                weights=weights[i] if weights is not None else None,
                biases=biases[i] if biases is not None else None,
                rng=rng,
            )
            self.layers.append(layer)

        logger.debug("built MLP %s with %d parameters", layer_sizes, len(self.parameters()))

    @property
    def nin(self):
        return self.layers[0].nin

    @property
    def nout(self):
        return self.layers[-1].nout

    def evaluate(self, x):
        """
        Forward pass: feed `x` through every layer in turn.

        Args:
            x: Sequence of Nodes or numbers, one per input feature

        Returns:
            List of output Nodes from the last layer
        """
        x = list(x)
        _check_arity(x, self.nin, "MLP")
        for layer in self.layers:
            x = layer.evaluate(x)
        return x

    def parameters(self):
        """Return all trainable parameters from all layers, layer by layer."""
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self):
        return f"MLP of [{', '.join(str(layer) for layer in self.layers)}]"
