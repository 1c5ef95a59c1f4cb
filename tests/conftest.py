import numpy as np
import pytest
import torch

from modules.sentiment import ModelConfig, Vocabulary
from train.sentiment.config import TrainConfig


@pytest.fixture
def small_config():
    return ModelConfig(vocab_size=6, embedding_dim=4, recurrent_units=3, dense_units=5)


@pytest.fixture
def vocabulary():
    return Vocabulary({"<start>": 1, "great": 2, "battery": 3, "life": 4, "<end>": 5})


@pytest.fixture
def toy_data():
    """Tiny separable-ish dataset: positives contain id 2, negatives id 3."""
    rng = np.random.RandomState(0)
    n, max_len = 40, 6
    tokens = np.zeros((n, max_len), dtype=np.int64)
    labels = np.zeros(n, dtype=np.int64)
    for i in range(n):
        length = rng.randint(3, max_len + 1)
        label = i % 2
        body = np.full(length - 2, 4)
        body[rng.randint(0, length - 2)] = 2 if label else 3
        tokens[i, :length] = [1, *body, 5][:length]
        labels[i] = label
    return tokens[:32], labels[:32], tokens[32:], labels[32:]


@pytest.fixture
def train_config():
    return TrainConfig(
        vocab_size=6,
        embedding_dim=4,
        recurrent_units=3,
        dense_units=5,
        batch_size=8,
        n_epochs=2,
        learning_rate=0.01,
        device="cpu",
        show_progress=False,
        seed=7,
    )


@pytest.fixture(autouse=True)
def _seed():
    torch.manual_seed(0)
