"""
Train a small MLP on the two-moons toy dataset.

Uses an SVM max-margin loss with L2 regularization and plain SGD, reading
and updating parameters only through the public Node interface.
"""

import argparse
import logging

import numpy as np

from mikrograd import MLP, Node, sum_nodes

logger = logging.getLogger("moons")


def make_moons(n_samples, noise=0.0, rng=None):
    """Two interleaving half circles; labels are -1 and 1."""
    n_out = n_samples // 2
    n_in = n_samples - n_out

    outer = np.linspace(0, np.pi, n_out)
    inner = np.linspace(0, np.pi, n_in)
    X = np.vstack([
        np.column_stack([np.cos(outer), np.sin(outer)]),
        np.column_stack([1 - np.cos(inner), 1 - np.sin(inner) - 0.5]),
    ])
    y = np.concatenate([np.zeros(n_out), np.ones(n_in)]) * 2 - 1

    if noise:
        rng = rng if rng is not None else np.random.default_rng()
        X = X + rng.normal(scale=noise, size=X.shape)
    return X, y


def loss(model, X, y, alpha=1e-4):
    inputs = [[Node(v) for v in row] for row in X]
    scores = [model(x)[0] for x in inputs]

    # svm "max-margin" loss
    losses = [(1 + -float(yi) * scorei).relu() for yi, scorei in zip(y, scores)]
    data_loss = sum_nodes(losses) / len(losses)

    # L2 regularization
    reg_loss = alpha * sum_nodes(p * p for p in model.parameters())
    total_loss = data_loss + reg_loss

    accuracy = np.mean([(yi > 0) == (scorei.data > 0) for yi, scorei in zip(y, scores)])
    return total_loss, accuracy


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--samples", type=int, default=100)
    parser.add_argument("--steps", type=int, default=100)
    parser.add_argument("--hidden", type=int, nargs="+", default=[16, 16])
    parser.add_argument("--noise", type=float, default=0.1)
    parser.add_argument("--seed", type=int, default=1337)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    rng = np.random.default_rng(args.seed)
    X, y = make_moons(args.samples, noise=args.noise, rng=rng)

    model = MLP(2, args.hidden + [1], rng=rng)
    logger.info("%s", model)
    logger.info("number of parameters: %d", len(model.parameters()))

    for k in range(args.steps):
        total_loss, accuracy = loss(model, X, y)

        model.zero_grad()
        total_loss.backward()

        learning_rate = 1.0 - 0.9 * k / args.steps
        for p in model.parameters():
            p.data -= learning_rate * p.grad

        logger.info("step %d loss %.6f, accuracy %.2f%%", k, total_loss.data, accuracy * 100)


if __name__ == "__main__":
    main()
