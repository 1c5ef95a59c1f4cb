"""
Sentiment Module - Attention-based Review Sentiment Classification

This module provides a binary sentiment classifier built as an encoder
(embedding + bidirectional GRU) and an attention decoder whose
compatibility function can be swapped between additive, multiplicative
and activated-general scoring.

Example usage:
    >>> from modules.sentiment import ModelConfig, build_model, SentimentEvaluator, Vocabulary
    >>> model = build_model(ModelConfig(vocab_size=6, embedding_dim=4, recurrent_units=3), "additive")
    >>> evaluator = SentimentEvaluator(model, Vocabulary({"<start>": 1, "good": 2, "<end>": 3}))
    >>> result = evaluator.evaluate([1, 2, 3, 0])
    >>> print(result.label, result.tokens, result.attention)
"""

from .config import ModelConfig, InferenceConfig, DEFAULT_CONFIG, DEFAULT_MODEL_CONFIG, PADDING_ID
from .errors import ShapeMismatchError, OutOfVocabularyError, NumericInstabilityError
from .scorers import (
    CompatibilityScorer,
    AdditiveScorer,
    MultiplicativeScorer,
    ActivatedGeneralScorer,
    SCORERS,
    build_scorer,
)
from .model import Encoder, EncoderOutput, AttentionDecoder, AttentionClassifier, build_model
from .vocabulary import Vocabulary
from .inference import SentimentEvaluator, EvaluationResult, normalize_attention

__all__ = [
    'ModelConfig',
    'InferenceConfig',
    'DEFAULT_CONFIG',
    'DEFAULT_MODEL_CONFIG',
    'PADDING_ID',
    'ShapeMismatchError',
    'OutOfVocabularyError',
    'NumericInstabilityError',
    'CompatibilityScorer',
    'AdditiveScorer',
    'MultiplicativeScorer',
    'ActivatedGeneralScorer',
    'SCORERS',
    'build_scorer',
    'Encoder',
    'EncoderOutput',
    'AttentionDecoder',
    'AttentionClassifier',
    'build_model',
    'Vocabulary',
    'SentimentEvaluator',
    'EvaluationResult',
    'normalize_attention',
]

__version__ = '1.0.0'
