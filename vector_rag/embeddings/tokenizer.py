"""Vocabulary loading and WordPiece-lite tokenization for local inference."""

from pathlib import Path

from vector_rag.exceptions import ConfigurationError

CLS_TOKEN = "[CLS]"
SEP_TOKEN = "[SEP]"
UNK_TOKEN = "[UNK]"


def load_vocabulary(path: str | Path) -> dict[str, int]:
    """Load a vocabulary file.

    One token per line; the 0-based line index is the token id. A token
    appearing twice keeps its first id.

    Args:
        path: Path to the vocabulary file.

    Returns:
        Mapping of token to id.

    Raises:
        ConfigurationError: If the file does not exist.
    """
    vocab_path = Path(path)
    if not vocab_path.is_file():
        raise ConfigurationError(
            f"Vocabulary file not found: {vocab_path}",
            details={"vocab_path": str(vocab_path)},
        )

    vocab: dict[str, int] = {}
    with vocab_path.open(encoding="utf-8") as f:
        for index, line in enumerate(f):
            vocab.setdefault(line.rstrip("\r\n"), index)
    return vocab


class WordPieceTokenizer:
    """Whitespace tokenizer with vocabulary lookup.

    Unknown words map to the [UNK] id and every sequence is wrapped
    in [CLS] ... [SEP]. No sub-word splitting is performed.
    """

    def __init__(self, vocab: dict[str, int]) -> None:
        missing = [t for t in (CLS_TOKEN, SEP_TOKEN, UNK_TOKEN) if t not in vocab]
        if missing:
            raise ConfigurationError(
                "Vocabulary is missing special tokens",
                details={"missing": missing},
            )
        self._vocab = vocab
        self._cls_id = vocab[CLS_TOKEN]
        self._sep_id = vocab[SEP_TOKEN]
        self._unk_id = vocab[UNK_TOKEN]

    @property
    def vocab_size(self) -> int:
        return len(self._vocab)

    def tokenize(self, text: str) -> tuple[list[int], list[int]]:
        """Convert text to model inputs.

        Args:
            text: Input text.

        Returns:
            Tuple of (input_ids, attention_mask), equal length.
        """
        input_ids = [self._cls_id]
        input_ids.extend(self._vocab.get(word, self._unk_id) for word in text.split())
        input_ids.append(self._sep_id)

        attention_mask = [1] * len(input_ids)
        return input_ids, attention_mask
