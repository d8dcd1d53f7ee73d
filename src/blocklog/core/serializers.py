"""
JSON Lines encoding of aggregate tables and labeled samples.
"""

from typing import Iterable, List

import msgspec

from .records import AggregateRow, ClassificationOutcome


class TableEncoder:
    """
    Fast JSON Lines encoder for classification output using msgspec.

    Aggregate rows are written as ``{"bucket", "category", "count"}``
    objects; sample rows are flattened to one object per labeled record.
    """

    __slots__ = ("_encoder", "_row_decoder")

    def __init__(self):
        self._encoder = msgspec.json.Encoder()
        self._row_decoder = msgspec.json.Decoder(AggregateRow)

    def encode_rows(self, rows: Iterable[AggregateRow]) -> bytes:
        """Encode aggregate rows, one JSON object per line."""
        return self._encoder.encode_lines(list(rows))

    def encode_sample(self, outcomes: Iterable[ClassificationOutcome]) -> bytes:
        """Encode labeled sample rows, one JSON object per line."""
        return self._encoder.encode_lines([outcome.to_dict() for outcome in outcomes])

    def decode_rows(self, data: bytes) -> List[AggregateRow]:
        """Decode aggregate rows written by encode_rows()."""
        return self._row_decoder.decode_lines(data)
