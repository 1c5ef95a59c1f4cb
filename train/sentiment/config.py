"""
Training Configuration for the Sentiment Attention Classifier

This module contains configuration classes for training the
encoder/attention-decoder model with each compatibility function.
"""

from dataclasses import dataclass, asdict
from typing import Optional

from modules.sentiment.config import ModelConfig


@dataclass
class TrainConfig:
    """Configuration for training the Sentiment classifier."""
    
    # Model architecture
    vocab_size: int = 10000  # Will be determined from the data
    embedding_dim: int = 256
    recurrent_units: int = 256
    dense_units: int = 10
    classifier_units: int = 50
    
    # Training hyperparameters
    batch_size: int = 64
    n_epochs: int = 10
    learning_rate: Optional[float] = None  # None -> Adam default
    
    # Accuracy threshold on the sigmoid output
    threshold: float = 0.5
    
    # Device configuration
    device: Optional[str] = None  # If None, will auto-detect
    
    # Logging
    log_every_n_steps: int = 50
    log_dir: Optional[str] = None  # TensorBoard directory, disabled if None
    show_progress: bool = True
    
    # Random seed
    seed: int = 42
    
    def model_config(self) -> ModelConfig:
        """Architecture part of the config."""
        return ModelConfig(
            vocab_size=self.vocab_size,
            embedding_dim=self.embedding_dim,
            recurrent_units=self.recurrent_units,
            dense_units=self.dense_units,
            classifier_units=self.classifier_units,
        )
    
    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return asdict(self)


# Default training configuration
DEFAULT_TRAIN_CONFIG = TrainConfig()
