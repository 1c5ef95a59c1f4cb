"""
Sentiment Classifier Inference

This module runs a trained encoder/attention-decoder pair on one indexed
sentence and returns the predicted label together with attention weights
rescaled for word-cloud style rendering.
"""

from dataclasses import dataclass, field
from typing import List, Sequence
import logging

import numpy as np
import torch

from .config import InferenceConfig, DEFAULT_CONFIG, PADDING_ID
from .errors import ShapeMismatchError
from .model import AttentionClassifier
from .vocabulary import Vocabulary


@dataclass
class EvaluationResult:
    label: int
    tokens: List[str] = field(default_factory=list)
    attention: List[int] = field(default_factory=list)
    probability: float = 0.0

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "tokens": list(self.tokens),
            "attention": list(self.attention),
            "probability": self.probability,
        }


def normalize_attention(weights: np.ndarray, max_value: int = 100) -> List[int]:
    """
    Rescale weights linearly so the largest becomes `max_value`, then round.

    Args:
        weights: Attention weights of the kept tokens
        max_value: Value the largest weight is mapped to

    Returns:
        List of integers in [0, max_value]
    """
    weights = np.asarray(weights, dtype=np.float64)
    if weights.size == 0:
        return []
    peak = weights.max()
    if peak <= 0:
        return [0] * int(weights.size)
    return [int(v) for v in np.rint(weights / peak * max_value)]


def model_device(model: torch.nn.Module) -> torch.device:
    """Device holding the model parameters, cpu for a parameterless model."""
    try:
        return next(model.parameters()).device
    except StopIteration:
        return torch.device("cpu")


class SentimentEvaluator:
    """
    Single-sentence evaluator for a trained AttentionClassifier.

    Sequences are expected to be wrapped in start/stop markers and right
    padded with id 0, exactly as produced by the preprocessing pipeline.
    """

    def __init__(
        self,
        model: AttentionClassifier,
        vocabulary: Vocabulary,
        config: InferenceConfig = None,
    ):
        """
        Initialize the evaluator.

        Args:
            model: Trained encoder/decoder pair
            vocabulary: Vocabulary used to index the sentences
            config: Inference configuration. If None, uses default config
                    and leaves the model on its current device; an explicit
                    config moves the model to `config.device` in place.
        """
        self.config = config or DEFAULT_CONFIG
        self.logger = logging.getLogger("sentiment.inference")
        if config is None:
            self.device = model_device(model)
        else:
            self.device = torch.device(config.device)
        self.model = model.to(self.device)
        self.vocabulary = vocabulary

    @torch.no_grad()
    def evaluate(self, sequence: Sequence[int]) -> EvaluationResult:
        """
        Classify one indexed, padded sentence.

        Args:
            sequence: Token ids of length max_len

        Returns:
            EvaluationResult with:
            - label: 1 for positive, 0 for negative
            - tokens: words between the start and stop markers
            - attention: matching weights rescaled to [0, max_attention]
            - probability: raw sigmoid output
        """
        tokens = torch.as_tensor(sequence, dtype=torch.long, device=self.device)
        if tokens.dim() != 1:
            raise ShapeMismatchError(
                f"Expected a single sequence, got shape {tuple(tokens.shape)}"
            )

        was_training = self.model.training
        self.model.eval()
        try:
            probability, attention_weights = self.model(tokens.unsqueeze(0))
        finally:
            self.model.train(was_training)

        probability = float(probability[0])
        label = int(probability > self.config.threshold)

        # Keep real tokens only, then drop the start and stop markers
        length = int((tokens != PADDING_ID).sum())
        ids = tokens[:length].tolist()[1:-1]
        weights = attention_weights[0, :length].cpu().numpy()[1:-1]

        words = self.vocabulary.decode(ids)
        attention = normalize_attention(weights, self.config.max_attention)

        self.logger.debug("Evaluated %d tokens: p=%.4f label=%d", len(words), probability, label)

        return EvaluationResult(
            label=label,
            tokens=words,
            attention=attention,
            probability=probability,
        )

    def evaluate_batch(self, sequences: Sequence[Sequence[int]]) -> List[EvaluationResult]:
        """
        Evaluate several sentences one by one.

        Args:
            sequences: List of indexed, padded sentences

        Returns:
            List of evaluation results
        """
        return [self.evaluate(seq) for seq in sequences]
