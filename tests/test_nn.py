import numpy as np
import pytest

from mikrograd.engine import Node
from mikrograd.nn import MLP, Layer, Module, Neuron


def test_create_neuron():
    neuron = Neuron(2)
    assert len(neuron.w) == 2
    assert neuron.nin == 2
    assert len(neuron.parameters()) == 3
    assert neuron.nonlin


def test_neuron_initialization():
    neuron = Neuron(50, rng=np.random.default_rng(0))
    assert all(-1.0 <= w.data <= 1.0 for w in neuron.w)
    assert len({w for w in neuron.w}) == 50
    assert neuron.b.data == 0.0


def test_create_layer():
    layer = Layer(3, 4, nonlin=False)
    assert len(layer.neurons) == 4
    assert layer.nin == 3
    assert layer.nout == 4
    assert len(layer.parameters()) == 16


def test_create_mlp():
    mlp = MLP(2, [16, 16, 1])
    assert len(mlp.layers) == 3
    assert len(mlp.parameters()) == 337
    assert mlp.nin == 2
    assert mlp.nout == 1
    assert [layer.neurons[0].nonlin for layer in mlp.layers] == [True, True, False]


def test_process_data_in_neuron():
    neuron = Neuron(2, nonlin=False, weights=[10.0, 100.0], bias=3.0)
    result = neuron([Node(1.2), Node(1.3)])
    assert result.data == 145.0
    assert result.grad == 0.0


def test_neuron_relu_activation():
    neuron = Neuron(1, weights=[-1.0])
    assert neuron([2.0]).data == 0.0
    assert neuron([-2.0]).data == 2.0


def test_layer_returns_list():
    layer = Layer(2, 1)
    out = layer([1.0, 2.0])
    assert isinstance(out, list)
    assert len(out) == 1


def test_mlp_evaluate_with_explicit_weights():
    mlp = MLP(
        2, [2, 1],
        weights=[[[1.0, 0.0], [0.0, -1.0]], [[2.0, 3.0]]],
        biases=[[0.0, 0.0], [1.0]],
    )
    # hidden: relu(x0) = 3, relu(-x1) = 0; output: 2 * 3 + 3 * 0 + 1
    out = mlp([3.0, 4.0])
    assert len(out) == 1
    assert out[0].data == 7.0


def test_parameter_order():
    layer = Layer(2, 2)
    n0, n1 = layer.neurons
    assert layer.parameters() == n0.w + [n0.b] + n1.w + [n1.b]

    mlp = MLP(2, [3, 1])
    assert mlp.parameters() == mlp.layers[0].parameters() + mlp.layers[1].parameters()


def test_arity_mismatch():
    with pytest.raises(ValueError):
        Neuron(2)([1.0])
    with pytest.raises(ValueError):
        Layer(3, 2)([1.0, 2.0])
    with pytest.raises(ValueError):
        MLP(2, [4, 1])([1.0, 2.0, 3.0])


def test_invalid_construction():
    with pytest.raises(ValueError):
        MLP(2, [])
    with pytest.raises(ValueError):
        MLP(2, [4, 0])
    with pytest.raises(ValueError):
        MLP(0, [1])
    with pytest.raises(ValueError):
        Neuron(2, weights=[1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        Layer(2, 2, weights=[[1.0, 2.0]])
    with pytest.raises(ValueError):
        Layer(2, 2, biases=[1.0])
    with pytest.raises(ValueError):
        MLP(2, [2, 1], weights=[[[1.0, 2.0], [3.0, 4.0]]])
    with pytest.raises(ValueError):
        Neuron(2, bias=[1.0, 2.0])
    with pytest.raises(ValueError):
        MLP(2, [1], biases=[[[1.0]]])


def _squared_output(mlp, x):
    out = mlp(x)
    return sum(o * o for o in out)


def test_zero_grad_idempotence():
    mlp = MLP(3, [4, 4, 2], rng=np.random.default_rng(7))
    x = [0.5, -1.5, 2.0]

    _squared_output(mlp, x).backward()
    first = [p.grad for p in mlp.parameters()]
    assert any(g != 0.0 for g in first)

    mlp.zero_grad()
    assert all(p.grad == 0.0 for p in mlp.parameters())

    _squared_output(mlp, x).backward()
    second = [p.grad for p in mlp.parameters()]
    assert second == pytest.approx(first)


def test_gradients_accumulate_without_zero_grad():
    mlp = MLP(3, [4, 2], rng=np.random.default_rng(3))
    x = [1.0, 2.0, -0.5]

    _squared_output(mlp, x).backward()
    first = [p.grad for p in mlp.parameters()]
    _squared_output(mlp, x).backward()
    second = [p.grad for p in mlp.parameters()]
    assert second == pytest.approx([2 * g for g in first])


def test_weight_sharing():
    neuron = Neuron(1, nonlin=False, weights=[2.0], bias=1.0)
    y = neuron([3.0]) + neuron([4.0])
    y.backward()
    assert y.data == 16.0
    assert neuron.w[0].grad == 7.0
    assert neuron.b.grad == 2.0


def test_module_base():
    module = Module()
    assert module.parameters() == []
    module.zero_grad()
    with pytest.raises(NotImplementedError):
        module([1.0])


def test_repr():
    assert repr(Neuron(2)) == "ReLUNeuron(2)"
    assert repr(Neuron(3, nonlin=False)) == "LinearNeuron(3)"
    assert repr(MLP(2, [2, 1])) == "MLP of [Layer of [ReLUNeuron(2), ReLUNeuron(2)], Layer of [LinearNeuron(2)]]"
