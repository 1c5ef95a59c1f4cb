"""
Vocabulary handed over by the preprocessing pipeline.

Building the vocabulary (cleaning, tokenizing, counting) happens upstream;
this class only holds the finished word <-> id mapping so the evaluator can
turn ids back into words.
"""

from typing import Dict, Iterable, List

from .config import PADDING_ID
from .errors import OutOfVocabularyError


class Vocabulary:
    """
    Bidirectional word <-> integer id map with id 0 reserved for padding.

    Example:
        >>> vocab = Vocabulary({"<start>": 1, "great": 2, "<end>": 3})
        >>> vocab.decode([1, 2, 3, 0])
        ['<start>', 'great', '<end>']
    """

    def __init__(self, word_index: Dict[str, int]):
        """
        Initialize the vocabulary.

        Args:
            word_index: Mapping word -> id produced by the tokenizer.
                        Ids must be positive and unique.
        """
        index_word = {}
        for word, idx in word_index.items():
            idx = int(idx)
            if idx == PADDING_ID:
                raise ValueError(f"Id {PADDING_ID} is reserved for padding, got word {word!r}")
            if idx < 0:
                raise ValueError(f"Negative id {idx} for word {word!r}")
            if idx in index_word:
                raise ValueError(f"Id {idx} assigned to both {index_word[idx]!r} and {word!r}")
            index_word[idx] = word

        self.word_index = dict(word_index)
        self.index_word = index_word

    def __len__(self) -> int:
        return self.size

    def __contains__(self, word: str) -> bool:
        return word in self.word_index

    @property
    def size(self) -> int:
        """Number of ids the embedding table needs, padding included."""
        return max(self.index_word, default=PADDING_ID) + 1

    def id_of(self, word: str) -> int:
        try:
            return self.word_index[word]
        except KeyError:
            raise OutOfVocabularyError(f"Unknown word: {word!r}") from None

    def word_of(self, idx: int) -> str:
        idx = int(idx)
        try:
            return self.index_word[idx]
        except KeyError:
            raise OutOfVocabularyError(f"Unknown token id: {idx}") from None

    def encode(self, words: Iterable[str]) -> List[int]:
        return [self.id_of(w) for w in words]

    def decode(self, ids: Iterable[int]) -> List[str]:
        """Map ids to words, skipping padding."""
        return [self.word_of(i) for i in ids if int(i) != PADDING_ID]
