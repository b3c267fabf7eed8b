import random
import string

from sqlalchemy.orm import Session

SEPARATOR = "cfhuit"
SEED = "zalyxmqrbodsnpegjvwk"
_DIGITS = string.digits + string.ascii_lowercase


class ReferenceEncoder:
    """
    Reversible encoding of numeric ids into quotable references such as ``ab-cd-ef-gh``.

    The id is written in base 20 over a letter alphabet, reversed, padded with
    letters from a disjoint separator alphabet, and split into chunks.
    """

    def __init__(self, delimiter: str = "-", min_length: int = 8, chunk_size: int = 2):
        if len(delimiter) > 1:
            raise ValueError("delimiter length must be zero or one")
        if delimiter and delimiter.isalnum():
            raise ValueError("delimiter must not contain alphanumeric characters")
        if min_length < 1:
            raise ValueError("minimum length must be greater than zero")
        if chunk_size < 1:
            raise ValueError("chunk size must be greater than zero")
        self.delimiter = delimiter
        self.min_length = min_length
        self.chunk_size = chunk_size

    def _needs_padding(self, value: str) -> bool:
        return (
            len(value) < self.min_length
            or len(value) < self.chunk_size
            or len(value) % self.chunk_size > 0
        )

    def encode(self, value: int) -> str:
        if value < 0:
            raise ValueError("only non-negative ids can be encoded")
        digits = []
        while True:
            value, remainder = divmod(value, len(SEED))
            digits.append(SEED[remainder])
            if value == 0:
                break
        # least significant digit first, i.e. the base-20 string reversed
        hashed = "".join(digits)
        while self._needs_padding(hashed):
            hashed += random.choice(SEPARATOR)
        chunks = [hashed[i:i + self.chunk_size] for i in range(0, len(hashed), self.chunk_size)]
        return self.delimiter.join(chunks)

    def decode(self, encoded: str) -> int:
        hashed = encoded.replace(self.delimiter, "") if self.delimiter else encoded
        for separator in SEPARATOR:
            hashed = hashed.split(separator)[0]
        if not hashed or any(c not in SEED for c in hashed):
            raise ValueError(f"not a valid reference: {encoded}")
        return int("".join(_DIGITS[SEED.index(c)] for c in reversed(hashed)), len(SEED))


reference_encoder = ReferenceEncoder()


def assign_reference(db: Session, entity) -> str:
    """Flush to obtain the entity's id and derive its reference from it."""
    db.flush()
    entity.reference = reference_encoder.encode(entity.id)
    return entity.reference
