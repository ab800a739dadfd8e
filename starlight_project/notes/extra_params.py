import json
import logging
import math
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from dataclasses_json import dataclass_json, LetterCase, Undefined

from ..config import DEFAULTS

if TYPE_CHECKING:
    from .note import Note

logger = logging.getLogger(__name__)


def _decode(data_string: str, note: "Note | None") -> dict:
    if not data_string:
        return {}
    try:
        values = json.loads(data_string)
    except ValueError:
        values = None
    if not isinstance(values, dict):
        logger.warning(
            "Note %s has unreadable parameters %r, using defaults.",
            note.id if note is not None else "?",
            data_string,
        )
        return {}
    return values


@dataclass_json(letter_case=LetterCase.CAMEL, undefined=Undefined.EXCLUDE)
@dataclass
class NoteExtraParams:
    """Attributes carried by special notes, persisted as an opaque string.

    The string is the JSON form of this class. Unknown keys are ignored so
    documents written by newer editors still load. A string that is not a
    JSON object leaves the parameters unchanged.
    """

    new_bpm: float = DEFAULTS.bpm

    @classmethod
    def from_data_string(cls, data_string: str, note: "Note") -> "NoteExtraParams":
        params = cls()._merged(data_string, note)
        params._check(note)
        return params

    def update_by_data_string(self, data_string: str, note: "Note | None" = None):
        merged = self._merged(data_string, note)
        for f in fields(self):
            setattr(self, f.name, getattr(merged, f.name))
        if note is not None:
            self._check(note)

    def to_data_string(self) -> str:
        return self.to_json()

    def _merged(self, data_string: str, note: "Note | None") -> "NoteExtraParams":
        values = _decode(data_string, note)
        if not values:
            return self
        try:
            return type(self).from_dict({**self.to_dict(), **values})
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring parameters %r: %s", data_string, e)
            return self

    def _check(self, note: "Note"):
        from .note import NoteType

        if note.type != NoteType.VARIANT_BPM:
            return
        try:
            bpm = float(self.new_bpm)
        except (TypeError, ValueError):
            bpm = 0.0
        if bpm > 0 and math.isfinite(bpm):
            self.new_bpm = bpm
            return
        logger.warning(
            "Note %d has an invalid BPM (%r), using %s.",
            note.id,
            self.new_bpm,
            DEFAULTS.bpm,
        )
        self.new_bpm = DEFAULTS.bpm
