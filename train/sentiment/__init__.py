"""
Sentiment Training Module

This module contains the training loop used to fit and compare the
attention classifier under each compatibility function.
"""

from .config import TrainConfig, DEFAULT_TRAIN_CONFIG

__all__ = ['TrainConfig', 'DEFAULT_TRAIN_CONFIG']
