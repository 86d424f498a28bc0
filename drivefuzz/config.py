"""
Scenario configuration.

Environment Variables:
    DRIVEFUZZ_SEED: Seed string - default: hyperdrive
    DRIVEFUZZ_ITERATIONS: Operations per run - default: 20000
    DRIVEFUZZ_DEBUG: Per-operation debug logging (true/false) - default: false
    DRIVEFUZZ_REPLICATE: Validate against a live replica (true/false) - default: false
    DRIVEFUZZ_CHECK_LISTINGS: Compare directory listings in sweeps - default: true
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_SEED = "hyperdrive"
DEFAULT_ITERATIONS = 20000


def _env_int(key: str) -> Optional[int]:
    val = os.getenv(key)
    if not val:
        return None
    try:
        parsed = int(val)
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


def _env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None or not val.strip():
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class FuzzConfig:
    """
    Parameters of one fuzz scenario.

    Fields:
        seed: Seed string; the run is reproducible from it
        debugging: Emit a debug line per operation
        iteration_count: Number of operations to run
        replicate: Validate against a live replica instead of the primary
        check_listings: Compare directory listings in full sweeps
    """
    seed: str = DEFAULT_SEED
    debugging: bool = False
    iteration_count: int = DEFAULT_ITERATIONS
    replicate: bool = False
    check_listings: bool = True

    def __post_init__(self) -> None:
        if self.iteration_count < 0:
            raise ValueError(f"iteration_count must be >= 0, got {self.iteration_count}")

    @staticmethod
    def from_env() -> "FuzzConfig":
        iterations = _env_int("DRIVEFUZZ_ITERATIONS")
        return FuzzConfig(
            seed=os.getenv("DRIVEFUZZ_SEED") or DEFAULT_SEED,
            debugging=_env_bool("DRIVEFUZZ_DEBUG", False),
            iteration_count=DEFAULT_ITERATIONS if iterations is None else iterations,
            replicate=_env_bool("DRIVEFUZZ_REPLICATE", False),
            check_listings=_env_bool("DRIVEFUZZ_CHECK_LISTINGS", True),
        )
