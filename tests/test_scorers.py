import math

import pytest
import torch

from modules.sentiment import (
    ActivatedGeneralScorer,
    AdditiveScorer,
    MultiplicativeScorer,
    SCORERS,
    ShapeMismatchError,
    build_scorer,
)


def _set(linear, weight, bias):
    with torch.no_grad():
        linear.weight.fill_(weight)
        linear.bias.fill_(bias)


QUERY = torch.tensor([2.0])
KEYS = torch.tensor([[1.0], [3.0]])


def test_multiplicative_literal_scores():
    scorer = MultiplicativeScorer(features=1)
    _set(scorer.V, 1.0, 0.0)

    scores = scorer(QUERY, KEYS)

    assert scores.shape == (2,)
    assert torch.allclose(scores, torch.tensor([2.0, 6.0]))


def test_additive_literal_scores():
    scorer = AdditiveScorer(features=1, dense_units=1)
    _set(scorer.W1, 1.0, 0.25)
    _set(scorer.W2, 0.5, 0.0)
    _set(scorer.V, 2.0, 0.0)

    scores = scorer(QUERY, KEYS)

    # 2 * tanh(k + 0.5 * 2 + 0.25)
    expected = torch.tensor([2 * math.tanh(1 + 1 + 0.25), 2 * math.tanh(3 + 1 + 0.25)])
    assert torch.allclose(scores, expected)


def test_activated_general_literal_scores():
    scorer = ActivatedGeneralScorer(features=1, dense_units=1)
    _set(scorer.W, 0.5, -1.0)
    _set(scorer.V, 1.0, 0.0)

    scores = scorer(QUERY, KEYS)

    # tanh(0.5 * (2 * k) - 1)
    expected = torch.tensor([math.tanh(0.0), math.tanh(2.0)])
    assert torch.allclose(scores, expected)


@pytest.mark.parametrize("name", list(SCORERS))
def test_batched_scores_shape(name):
    scorer = build_scorer(name, features=6, dense_units=4)
    query = torch.randn(3, 6)
    keys = torch.randn(3, 5, 6)

    assert scorer(query, keys).shape == (3, 5)


@pytest.mark.parametrize("name", list(SCORERS))
def test_batched_matches_per_sequence(name):
    scorer = build_scorer(name, features=4, dense_units=3)
    query = torch.randn(2, 4)
    keys = torch.randn(2, 7, 4)

    batched = scorer(query, keys)
    for i in range(2):
        assert torch.allclose(batched[i], scorer(query[i], keys[i]), atol=1e-6)


def test_registry_names():
    assert set(SCORERS) == {"additive", "multiplicative", "activated_general"}


def test_unknown_scorer():
    with pytest.raises(ValueError, match="Unknown scorer"):
        build_scorer("dot", features=4, dense_units=2)


def test_feature_mismatch():
    scorer = build_scorer("additive", features=4, dense_units=2)
    with pytest.raises(ShapeMismatchError):
        scorer(torch.randn(2, 3), torch.randn(2, 5, 3))


def test_batch_mismatch():
    scorer = build_scorer("multiplicative", features=4, dense_units=2)
    with pytest.raises(ShapeMismatchError):
        scorer(torch.randn(2, 4), torch.randn(3, 5, 4))
