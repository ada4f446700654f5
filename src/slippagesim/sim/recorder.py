"""Result recorder and simulation run.

The recorder is an append-only log of CycleRecords. With a sink path it
also appends one JSON line per record to disk as soon as the record is
made, so an aborted run leaves every completed cycle behind.

Line format: orjson dump of CycleRecord.model_dump(mode="json"), keys in
model field order.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, TYPE_CHECKING

import orjson

from slippagesim.contracts import CSV_COLUMNS, CycleRecord, DriverState

if TYPE_CHECKING:
    from slippagesim.errors import SlippageSimError
    from slippagesim.sim.config import SimulationConfig

logger = logging.getLogger(__name__)


def dump_record_line(record: CycleRecord) -> bytes:
    """One JSONL line (without newline) for a record."""
    return orjson.dumps(record.model_dump(mode="json"))


class ResultRecorder:
    """Append-only CycleRecord log with an optional JSONL sink."""

    def __init__(self, sink_path: Path | None = None) -> None:
        """Initialize recorder.

        Args:
            sink_path: JSONL file to append to. Parent directories are
                created on first write. Existing lines are kept.
        """
        self._records: list[CycleRecord] = []
        self._sink_path = sink_path
        self._sink: IO[bytes] | None = None
        self._closed = False

    @property
    def records(self) -> tuple[CycleRecord, ...]:
        return tuple(self._records)

    @property
    def sink_path(self) -> Path | None:
        return self._sink_path

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: CycleRecord) -> None:
        """Append a record and flush it to the sink.

        Raises:
            RuntimeError: If the recorder has been closed.
        """
        if self._closed:
            raise RuntimeError("recorder is closed, run already finalized")
        if self._sink_path is not None:
            if self._sink is None:
                self._sink_path.parent.mkdir(parents=True, exist_ok=True)
                self._sink = open(self._sink_path, "ab")  # noqa: SIM115 - closed in close()
            self._sink.write(dump_record_line(record) + b"\n")
            self._sink.flush()
        self._records.append(record)

    def close(self) -> None:
        """Stop accepting records and release the sink file."""
        self._closed = True
        if self._sink is not None:
            self._sink.close()
            self._sink = None

    def __enter__(self) -> ResultRecorder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def write_jsonl(self, path: Path) -> Path:
        """Write all records to a fresh JSONL file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            for record in self._records:
                f.write(dump_record_line(record) + b"\n")
        return path

    def write_csv(self, path: Path) -> Path:
        """Write records in slippage.csv column order, with a header row."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_COLUMNS)
            for record in self._records:
                writer.writerow(record.csv_row())
        return path


def read_jsonl(path: Path) -> list[CycleRecord]:
    """Load records written by ResultRecorder, skipping blank lines."""
    records = []
    with open(path, "rb") as f:
        for line in f:
            if line.strip():
                records.append(CycleRecord.model_validate(orjson.loads(line)))
    return records


@dataclass
class SimulationRun:
    """Run parameters plus the ordered records of every completed cycle.

    Owned by the driver while running; read-only once finalized.
    """

    config: SimulationConfig
    recorder: ResultRecorder = field(default_factory=ResultRecorder)
    final_state: DriverState | None = None
    error: SlippageSimError | None = None

    @property
    def records(self) -> tuple[CycleRecord, ...]:
        return self.recorder.records

    @property
    def finalized(self) -> bool:
        return self.final_state is not None

    @property
    def aborted(self) -> bool:
        return self.final_state == DriverState.ABORTED

    def append(self, record: CycleRecord) -> None:
        """Append a record.

        Raises:
            RuntimeError: If the run is finalized.
        """
        if self.finalized:
            raise RuntimeError("simulation run is finalized")
        self.recorder.append(record)

    def finalize(self, state: DriverState, error: SlippageSimError | None = None) -> None:
        """Freeze the run in a terminal state."""
        if self.finalized:
            raise RuntimeError(f"simulation run already finalized as {self.final_state}")
        self.final_state = state
        self.error = error
        self.recorder.close()
        logger.info(
            "Simulation run finalized",
            extra={
                "final_state": state.value,
                "cycles": len(self.recorder),
                "error_type": type(error).__name__ if error else None,
            },
        )
