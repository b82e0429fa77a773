"""Simulator configuration.

Start-up settings for the two engines, with the defaults a student sees
on first launch: four frames for paging and a 1024-unit address space
for partitioning.  Values can come from keyword arguments or from
``MEMSIM_*`` environment variables::

    MEMSIM_FRAMES=8 MEMSIM_MEMORY_SIZE=2048 MEMSIM_SEED=42 memsim

Everything here is checked up front, so a bad setting fails before any
engine is built.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from memsim.memory.errors import InvalidConfigurationError
from memsim.memory.paging import DEFAULT_FRAMES, MAX_FRAMES, MIN_FRAMES
from memsim.memory.partition import DEFAULT_MEMORY_SIZE

ENV_FRAMES = "MEMSIM_FRAMES"
ENV_MEMORY_SIZE = "MEMSIM_MEMORY_SIZE"
ENV_SEED = "MEMSIM_SEED"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        msg = f"{name} must be an integer, got '{raw}'"
        raise InvalidConfigurationError(msg) from None


@dataclass(frozen=True)
class SimulatorConfig:
    """Validated start-up settings.

    Attributes:
        frames: Physical frame count for paging, in ``[4, 64]``.
        memory_size: Address-space size for partitioning (> 0).
        seed: Seed for backing-store locators; None means random.

    """

    frames: int = DEFAULT_FRAMES
    memory_size: int = DEFAULT_MEMORY_SIZE
    seed: int | None = None

    def __post_init__(self) -> None:
        """Reject non-integer or out-of-range settings."""
        if not _is_int(self.frames) or not MIN_FRAMES <= self.frames <= MAX_FRAMES:
            msg = f"frames must be between {MIN_FRAMES} and {MAX_FRAMES}, got {self.frames!r}"
            raise InvalidConfigurationError(msg)
        if not _is_int(self.memory_size) or self.memory_size <= 0:
            msg = f"memory_size must be a positive integer, got {self.memory_size!r}"
            raise InvalidConfigurationError(msg)
        if self.seed is not None and not _is_int(self.seed):
            msg = f"seed must be an integer, got {self.seed!r}"
            raise InvalidConfigurationError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "SimulatorConfig":
        """Build a config from ``MEMSIM_*`` variables, defaulting the rest.

        Raises:
            InvalidConfigurationError: If a variable is not an integer or
                is out of range.

        """
        frames = DEFAULT_FRAMES
        memory_size = DEFAULT_MEMORY_SIZE
        seed: int | None = None
        if environ.get(ENV_FRAMES):
            frames = _parse_int(ENV_FRAMES, environ[ENV_FRAMES])
        if environ.get(ENV_MEMORY_SIZE):
            memory_size = _parse_int(ENV_MEMORY_SIZE, environ[ENV_MEMORY_SIZE])
        if environ.get(ENV_SEED):
            seed = _parse_int(ENV_SEED, environ[ENV_SEED])
        return cls(frames=frames, memory_size=memory_size, seed=seed)
