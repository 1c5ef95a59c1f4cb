"""
Compatibility (Scoring) Functions

Each scorer maps a query vector and the per-position encoder outputs
(keys) to one raw, unnormalized relevance score per position. All three
variants share the same call signature so the attention decoder can take
any of them.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Type

import torch
import torch.nn as nn

from .errors import ShapeMismatchError


class CompatibilityScorer(nn.Module, ABC):
    """
    Base class for compatibility functions.

    Subclasses implement `score` for batched inputs:
    - query: (batch, features)
    - keys:  (batch, seq_len, features)
    and return raw scores of shape (batch, seq_len).
    """

    name: str = ""

    def __init__(self, features: int):
        super().__init__()
        self.features = features

    @abstractmethod
    def score(self, query: torch.Tensor, keys: torch.Tensor) -> torch.Tensor:
        pass

    def forward(self, query: torch.Tensor, keys: torch.Tensor) -> torch.Tensor:
        # Single sequence: (features,) and (seq_len, features) -> (seq_len,)
        unbatched = query.dim() == 1 and keys.dim() == 2
        if unbatched:
            query, keys = query.unsqueeze(0), keys.unsqueeze(0)

        if query.dim() != 2 or keys.dim() != 3:
            raise ShapeMismatchError(
                f"Expected query (B, D) and keys (B, L, D), "
                f"got {tuple(query.shape)} and {tuple(keys.shape)}"
            )
        if query.size(0) != keys.size(0):
            raise ShapeMismatchError(
                f"Batch size of query ({query.size(0)}) and keys ({keys.size(0)}) differ"
            )
        if query.size(-1) != self.features or keys.size(-1) != self.features:
            raise ShapeMismatchError(
                f"{type(self).__name__} expects {self.features} features, "
                f"got query {query.size(-1)} and keys {keys.size(-1)}"
            )

        scores = self.score(query, keys)
        return scores.squeeze(0) if unbatched else scores


class AdditiveScorer(CompatibilityScorer):
    """
    Additive attention: w . tanh(W1 keys + W2 query + b)

    W1 and W2 project keys and query into a shared space of `dense_units`,
    w collapses it to a scalar per position.
    """

    name = "additive"

    def __init__(self, features: int, dense_units: int):
        super().__init__(features)
        self.W1 = nn.Linear(features, dense_units)
        self.W2 = nn.Linear(features, dense_units)
        self.V = nn.Linear(dense_units, 1)

    def score(self, query, keys):
        # query: (B, D) -> (B, 1, D) so it broadcasts over positions
        hidden_with_time = query.unsqueeze(1)
        energy = torch.tanh(self.W1(keys) + self.W2(hidden_with_time))  # (B, L, units)
        return self.V(energy).squeeze(-1)


class MultiplicativeScorer(CompatibilityScorer):
    """Multiplicative attention: w . (query * keys), no nonlinearity."""

    name = "multiplicative"

    def __init__(self, features: int, dense_units: Optional[int] = None):
        super().__init__(features)
        self.V = nn.Linear(features, 1)

    def score(self, query, keys):
        return self.V(query.unsqueeze(1) * keys).squeeze(-1)


class ActivatedGeneralScorer(CompatibilityScorer):
    """Activated general attention: w . tanh(W (query * keys) + b)"""

    name = "activated_general"

    def __init__(self, features: int, dense_units: int):
        super().__init__(features)
        self.W = nn.Linear(features, dense_units)
        self.V = nn.Linear(dense_units, 1)

    def score(self, query, keys):
        energy = torch.tanh(self.W(query.unsqueeze(1) * keys))
        return self.V(energy).squeeze(-1)


SCORERS: Dict[str, Type[CompatibilityScorer]] = {
    cls.name: cls for cls in (AdditiveScorer, MultiplicativeScorer, ActivatedGeneralScorer)
}


def build_scorer(name: str, features: int, dense_units: int) -> CompatibilityScorer:
    """
    Create a scorer by name.

    Args:
        name: One of 'additive', 'multiplicative', 'activated_general'
        features: Size of query and key vectors (2 * recurrent_units)
        dense_units: Width of the internal projection (ignored by multiplicative)

    Returns:
        Freshly initialized scorer module
    """
    try:
        cls = SCORERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown scorer {name!r}. Available: {', '.join(SCORERS)}"
        ) from None
    return cls(features, dense_units)
