"""
Fuzz engine: seeded, weighted, strictly sequential operation scheduling.

Each iteration draws one operation, awaits its drive interaction, lets the
handler update the shadow state and appends the result to the run log.
The first unexpected failure aborts the run; there are no retries, since
rerunning the same seed reproduces it exactly.
"""

from collections import Counter
from typing import Callable, Dict, List, Optional

from ..config import FuzzConfig
from ..core.errors import DriveError, FuzzRunError
from ..core.rng import SeededRandomSource
from ..drive.base import Drive
from ..drive.memory import MemoryDrive
from ..logging_config import get_logger
from .handlers import HANDLERS, FuzzContext
from .operations import DEFAULT_REGISTRY, OperationRegistry, OperationResult
from .oracle import ValidationOracle, ValidationReport
from .replication import ReplicationHarness
from .shadow import ShadowState

LOG_TAIL = 10


class DriveFuzzer:
    """
    Runs weighted random operations against a drive and validates it.

    Usage:
        async with DriveFuzzer("hyperdrive") as fuzz:
            report = await fuzz.run(20000)

    Args:
        seed: Seed string; identical seeds give identical runs
        debugging: Log one debug line per operation
        replicate: Validate through a live replica of the drive
        drive_factory: Builds drives; called with no arguments for the
            primary and with key=... for a replica
        registry: Operation weight table
        check_listings: Compare directory listings in full sweeps
    """

    def __init__(
        self,
        seed: str,
        debugging: bool = False,
        replicate: bool = False,
        drive_factory: Callable[..., Drive] = MemoryDrive,
        registry: OperationRegistry = DEFAULT_REGISTRY,
        check_listings: bool = True,
    ) -> None:
        missing = [kind.value for kind in registry.kinds if kind not in HANDLERS]
        if missing:
            raise ValueError(f"no handler for operations: {', '.join(missing)}")

        self.seed = seed
        self.debugging = debugging
        self.replicate = replicate
        self.drive_factory = drive_factory
        self.registry = registry
        self.check_listings = check_listings

        self.rng = SeededRandomSource(seed)
        self.shadow = ShadowState()
        self.log: List[OperationResult] = []
        self.iterations = 0
        self.last_report: Optional[ValidationReport] = None
        self.logger = get_logger(__name__, seed=seed)

        self.drive: Optional[Drive] = None
        self.harness: Optional[ReplicationHarness] = None
        self.oracle: Optional[ValidationOracle] = None
        self._ctx: Optional[FuzzContext] = None

    @classmethod
    def from_config(cls, config: FuzzConfig, **kwargs) -> "DriveFuzzer":
        return cls(
            config.seed,
            debugging=config.debugging,
            replicate=config.replicate,
            check_listings=config.check_listings,
            **kwargs,
        )

    @property
    def context(self) -> Optional[FuzzContext]:
        """Handler context; None until setup() has run."""
        return self._ctx

    @property
    def validation_drive(self) -> Optional[Drive]:
        return self._ctx.validation_drive if self._ctx is not None else None

    async def setup(self) -> None:
        """Create the drive (and replica) and wait for readiness. Idempotent."""
        if self._ctx is not None:
            return
        drive = self.drive_factory()
        await drive.ready()
        await drive.content_ready()
        self.drive = drive

        validation_drive = drive
        if self.replicate:
            self.harness = ReplicationHarness(drive, self.drive_factory)
            validation_drive = await self.harness.start()

        self.oracle = ValidationOracle(self.shadow, validation_drive, check_listings=self.check_listings)
        self._ctx = FuzzContext(
            rng=self.rng,
            shadow=self.shadow,
            drive=drive,
            validation_drive=validation_drive,
            oracle=self.oracle,
            debug=self._debug,
        )

    async def step(self) -> Optional[OperationResult]:
        """Run one iteration. Returns None for a no-op."""
        await self.setup()
        iteration = self.iterations
        kind = self.registry.draw(self.rng)
        try:
            result = await HANDLERS[kind](self._ctx)
            if self.harness is not None:
                self.harness.check()
        except Exception as ex:
            self._report_failure(ex, iteration, kind.value)
            raise FuzzRunError(self.seed, iteration, kind.value, list(self.log)) from ex

        self.iterations += 1
        if result is not None:
            self.log.append(result)
        return result

    async def run(self, n: int) -> ValidationReport:
        """Run exactly n iterations, then a full validation sweep."""
        await self.setup()
        self.logger.info("Starting %d operations (replicate=%s)", n, self.replicate)
        for _ in range(n):
            await self.step()
        report = await self.validate()
        self.logger.info(
            "Run finished: %d operations, %d files, %d directories validated",
            n,
            report.files,
            report.directories,
        )
        return report

    async def validate(self) -> ValidationReport:
        """
        Full sweep of the shadow state against the validation drive, then
        a hash chain recheck of every drive involved.
        """
        await self.setup()
        try:
            report = await self.oracle.sweep()
            self.drive.verify()
            if self.validation_drive is not self.drive:
                self.validation_drive.verify()
        except Exception as ex:
            self._report_failure(ex, None, None)
            raise FuzzRunError(self.seed, None, None, list(self.log)) from ex
        self.last_report = report
        return report

    def operation_counts(self) -> Dict[str, int]:
        return dict(Counter(result.type for result in self.log))

    async def close(self) -> None:
        """Close tracked descriptors, then tear down replication."""
        if self._ctx is not None:
            for fd, _ in list(self.shadow.descriptors.items()):
                self.shadow.release_descriptor(fd)
                try:
                    await self._ctx.validation_drive.close(fd)
                except DriveError as ex:
                    self.logger.warning("Could not close descriptor %d: %s", fd, ex)
        if self.harness is not None:
            await self.harness.close()

    async def __aenter__(self) -> "DriveFuzzer":
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _debug(self, msg: str, *args) -> None:
        if self.debugging:
            self.logger.debug(msg, *args)

    def _report_failure(self, ex: BaseException, iteration: Optional[int], operation: Optional[str]) -> None:
        # LoggerAdapter would replace extra, so go to the underlying logger
        self.logger.logger.error(
            "Run failed at %s: %s: %s",
            f"iteration {iteration} ({operation})" if iteration is not None else "final validation",
            type(ex).__name__,
            ex,
            extra={"seed": self.seed, "log_tail": [r.to_dict() for r in self.log[-LOG_TAIL:]]},
        )


async def run_scenario(config: FuzzConfig, **kwargs) -> DriveFuzzer:
    """
    Run one configured scenario to completion and return the closed fuzzer
    (its log, counts and last_report stay available).

    Raises:
        FuzzRunError: If any operation or the final sweep fails
    """
    fuzzer = DriveFuzzer.from_config(config, **kwargs)
    async with fuzzer:
        await fuzzer.run(config.iteration_count)
    return fuzzer
