from dataclasses import dataclass

from ..config import ProjectDefaults, DEFAULTS


@dataclass
class ScoreSettings:
    global_bpm: float
    start_time_offset: float
    global_grid_per_signature: int
    global_signature: int

    @classmethod
    def from_defaults(cls, defaults: ProjectDefaults = DEFAULTS) -> "ScoreSettings":
        return cls(
            global_bpm=defaults.bpm,
            start_time_offset=defaults.start_time_offset,
            global_grid_per_signature=defaults.grid_per_signature,
            global_signature=defaults.signature,
        )

    @property
    def global_grid_count(self) -> int:
        return self.global_grid_per_signature * self.global_signature
