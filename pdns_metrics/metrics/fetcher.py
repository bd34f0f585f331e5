import logging
import subprocess
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

RawCounterSet = Dict[str, float]


class ExecutionError(RuntimeError):
    """The control command could not be run or exited with a failure status."""


def parse_counters_with_drops(text: str) -> Tuple[RawCounterSet, List[str]]:
    """Parse ``name=value`` pairs separated by commas.

    Whitespace around each entry, name and value is stripped, so ``" a =1"``
    yields the counter ``a``. Values are read with ``float()``. Returns the
    parsed counters together with the fragments that were not clean pairs or
    whose value is not a number. Later duplicates win.
    """
    counters: RawCounterSet = {}
    dropped: List[str] = []
    for fragment in text.split(","):
        entry = fragment.strip()
        if not entry:
            continue
        name, sep, raw_value = entry.partition("=")
        name = name.strip()
        raw_value = raw_value.strip()
        if not sep or not name or not raw_value:
            dropped.append(fragment)
            continue
        try:
            counters[name] = float(raw_value)
        except ValueError:
            dropped.append(fragment)
    return counters, dropped


def parse_counters(text: str) -> RawCounterSet:
    counters, _ = parse_counters_with_drops(text)
    return counters


class CounterFetcher:
    """Runs ``pdns_control show *`` and returns its counters."""

    def __init__(self, command_path: str, report_dropped: bool = False) -> None:
        self.command_path = command_path
        self.report_dropped = report_dropped

    @property
    def command(self) -> List[str]:
        return [self.command_path, "show", "*"]

    def fetch(self) -> RawCounterSet:
        try:
            completed = subprocess.run(
                self.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
        except OSError as exc:
            raise ExecutionError(f"Unable to run {self.command_path}: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode(errors="replace").strip()
            raise ExecutionError(
                f"{self.command_path} exited with status {exc.returncode}: {stderr}"
            ) from exc

        output = completed.stdout.decode(errors="replace")
        counters, dropped = parse_counters_with_drops(output)
        if self.report_dropped and dropped:
            logger.debug(
                "Dropped %d malformed entries from %s output", len(dropped), self.command_path
            )
        return counters
