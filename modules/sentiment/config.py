"""
Configuration for the Sentiment Attention Classifier

This module contains configuration classes and constants for building
the encoder/attention-decoder model and running inference with it.
"""

from dataclasses import dataclass, asdict
from typing import Optional


# Token id reserved for padding; never maps to a word
PADDING_ID = 0


@dataclass
class ModelConfig:
    """Architecture of the encoder + attention decoder pair."""
    
    # Vocabulary size, including the padding id
    vocab_size: int = 10000
    
    # Encoder
    embedding_dim: int = 256
    recurrent_units: int = 256  # Hidden size per GRU direction
    
    # Width of the scorer's internal projection (additive / activated-general)
    dense_units: int = 10
    
    # Classification head
    classifier_units: int = 50
    
    @property
    def features(self) -> int:
        """Size of encoder outputs, query and context vector."""
        return 2 * self.recurrent_units
    
    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return asdict(self)


@dataclass
class InferenceConfig:
    """Configuration for single-sentence evaluation."""
    
    # Probability above which a review is labelled positive
    threshold: float = 0.5
    
    # Largest normalized attention value handed to renderers
    max_attention: int = 100
    
    # Device configuration
    device: Optional[str] = None  # If None, will auto-detect (cuda > mps > cpu)
    
    def __post_init__(self):
        """Auto-detect device if not specified."""
        if self.device is None:
            self.device = detect_device()


def detect_device() -> str:
    """Auto-detect the best available device."""
    import torch
    if torch.cuda.is_available():
        return "cuda"
    elif getattr(torch.backends, "mps", None) and torch.backends.mps.is_available():
        return "mps"
    else:
        return "cpu"


# Default configuration instances
DEFAULT_MODEL_CONFIG = ModelConfig()
DEFAULT_CONFIG = InferenceConfig()
