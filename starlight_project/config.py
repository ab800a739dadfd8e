from dataclasses import dataclass


@dataclass(frozen=True)
class ProjectDefaults:
    grid_per_signature: int = 24
    signature: int = 4
    bpm: float = 120.0
    start_time_offset: float = 0.0

    @property
    def grid_count(self) -> int:
        return self.grid_per_signature * self.signature


DEFAULTS = ProjectDefaults()
