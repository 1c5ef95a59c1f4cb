"""
Sentiment Attention Classifier Model Architecture

This module contains the encoder/attention-decoder architecture used to
classify review sentences as positive or negative while exposing the
attention weights over input positions.
"""

import logging
from typing import NamedTuple, Tuple

import torch
import torch.nn as nn

from .config import ModelConfig
from .errors import OutOfVocabularyError, ShapeMismatchError
from .scorers import CompatibilityScorer, build_scorer


logger = logging.getLogger("sentiment.model")


class EncoderOutput(NamedTuple):
    """Result of one encoder invocation."""

    outputs: torch.Tensor         # (batch, seq_len, 2 * units)
    forward_state: torch.Tensor   # (batch, units)
    backward_state: torch.Tensor  # (batch, units)

    @property
    def query(self) -> torch.Tensor:
        """Decoder query: backward and forward final states, (batch, 2 * units)."""
        return torch.cat([self.backward_state, self.forward_state], dim=-1)


class Encoder(nn.Module):
    """
    Embedding + bidirectional GRU summarizer.

    The padding id gets an ordinary trainable embedding row; nothing
    downstream masks padded positions.
    """

    def __init__(self, vocab_size: int, embedding_dim: int, recurrent_units: int):
        """
        Initialize the encoder.

        Args:
            vocab_size: Size of the vocabulary, padding id included
            embedding_dim: Dimension of token embeddings
            recurrent_units: Hidden size of each GRU direction
        """
        super().__init__()

        self.vocab_size = vocab_size
        self.embedding_dim = embedding_dim
        self.recurrent_units = recurrent_units

        self.embedding = nn.Embedding(vocab_size, embedding_dim)
        self.gru = nn.GRU(
            embedding_dim,
            recurrent_units,
            batch_first=True,
            bidirectional=True,
        )

    def initialize_hidden_state(self, batch_size: int) -> torch.Tensor:
        """Zero initial state of shape (batch, units) on the encoder's device."""
        device = self.embedding.weight.device
        return torch.zeros(batch_size, self.recurrent_units, device=device)

    def forward(self, tokens: torch.Tensor, hidden: torch.Tensor) -> EncoderOutput:
        """
        Encode a batch of padded token id sequences.

        Args:
            tokens: Token ids, shape (batch, seq_len)
            hidden: Initial state shared by both directions, shape (batch, units)

        Returns:
            EncoderOutput with per-position outputs and both final states
        """
        if tokens.dim() != 2:
            raise ShapeMismatchError(f"Expected tokens (batch, seq_len), got {tuple(tokens.shape)}")
        if hidden.dim() != 2 or hidden.size(0) != tokens.size(0):
            raise ShapeMismatchError(
                f"Hidden state {tuple(hidden.shape)} does not match batch size {tokens.size(0)}"
            )
        if hidden.size(1) != self.recurrent_units:
            raise ShapeMismatchError(
                f"Hidden state has {hidden.size(1)} units, encoder has {self.recurrent_units}"
            )
        if tokens.numel() and (tokens.min() < 0 or tokens.max() >= self.vocab_size):
            bad = tokens[(tokens < 0) | (tokens >= self.vocab_size)]
            raise OutOfVocabularyError(
                f"Token id {int(bad[0])} outside vocabulary of size {self.vocab_size}"
            )

        # (batch, seq_len) -> (batch, seq_len, embedding_dim)
        x = self.embedding(tokens)

        # Both directions start from the same state: (2, batch, units)
        h0 = torch.stack([hidden, hidden]).contiguous()
        outputs, h_n = self.gru(x, h0)

        return EncoderOutput(outputs=outputs, forward_state=h_n[0], backward_state=h_n[1])


class AttentionDecoder(nn.Module):
    """
    Attention over encoder outputs followed by a small classification head.

    Architecture:
    - Compatibility scorer -> softmax over all positions (padding included)
    - Context vector: attention-weighted sum of encoder outputs
    - Linear(features, 50) + ReLU -> Linear(50, 1) + Sigmoid
    """

    def __init__(self, scorer: CompatibilityScorer, features: int, classifier_units: int = 50):
        super().__init__()

        self.scorer = scorer
        self.features = features

        self.head = nn.Sequential(
            nn.Linear(features, classifier_units),
            nn.ReLU(),
            nn.Linear(classifier_units, 1),
            nn.Sigmoid(),
        )

    @staticmethod
    def context_vector(attention_weights: torch.Tensor, keys: torch.Tensor) -> torch.Tensor:
        """(batch, seq_len) x (batch, seq_len, features) -> (batch, features)"""
        return torch.sum(attention_weights.unsqueeze(-1) * keys, dim=1)

    def forward(self, query: torch.Tensor, keys: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Args:
            query: Decoder query, shape (batch, features)
            keys: Encoder outputs, shape (batch, seq_len, features)

        Returns:
            Tuple of (probability (batch,), attention_weights (batch, seq_len))
        """
        raw_scores = self.scorer(query, keys)
        attention_weights = torch.softmax(raw_scores, dim=1)

        context = self.context_vector(attention_weights, keys)
        probability = self.head(context).squeeze(-1)

        return probability, attention_weights


class AttentionClassifier(nn.Module):
    """Encoder + attention decoder pair whose parameters train together."""

    def __init__(self, encoder: Encoder, decoder: AttentionDecoder):
        super().__init__()
        self.encoder = encoder
        self.decoder = decoder

    @property
    def scorer_name(self) -> str:
        return self.decoder.scorer.name

    def forward(self, tokens: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Full pass with a zero initial state.

        Args:
            tokens: Token ids, shape (batch, seq_len)

        Returns:
            Tuple of (probability (batch,), attention_weights (batch, seq_len))
        """
        if tokens.dim() != 2:
            raise ShapeMismatchError(f"Expected tokens (batch, seq_len), got {tuple(tokens.shape)}")
        hidden = self.encoder.initialize_hidden_state(tokens.size(0))
        encoded = self.encoder(tokens, hidden)
        return self.decoder(encoded.query, encoded.outputs)

    def get_num_parameters(self) -> int:
        """Get total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)


def build_model(config: ModelConfig, scorer_name: str) -> AttentionClassifier:
    """
    Create a freshly initialized classifier using the given scorer.

    Args:
        config: Model architecture configuration
        scorer_name: 'additive', 'multiplicative' or 'activated_general'

    Returns:
        AttentionClassifier with new parameters
    """
    encoder = Encoder(config.vocab_size, config.embedding_dim, config.recurrent_units)
    scorer = build_scorer(scorer_name, config.features, config.dense_units)
    decoder = AttentionDecoder(scorer, config.features, config.classifier_units)
    model = AttentionClassifier(encoder, decoder)
    logger.debug("Built %s model with %d parameters", scorer_name, model.get_num_parameters())
    return model
