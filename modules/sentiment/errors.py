"""
Errors raised by the sentiment attention classifier.

None of these are recovered from internally: they surface to whoever
called the training loop or the evaluator.
"""


class ShapeMismatchError(ValueError):
    """Tensor rank, batch size or sequence length does not line up."""


class OutOfVocabularyError(ValueError):
    """A token id or word is not part of the vocabulary."""


class NumericInstabilityError(RuntimeError):
    """A loss, gradient or metric became NaN or infinite."""
