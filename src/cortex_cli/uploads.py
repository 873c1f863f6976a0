"""Recursive content upload with a bounded number of in-flight uploads."""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from cortex_cli.errors import ValidationError

DEFAULT_UPLOAD_CONCURRENCY = 4

_SIZE_UNITS = ("B", "K", "M", "G", "T", "P")


@dataclass(frozen=True)
class UploadFile:
    canonical: str
    relative: str
    size: int


@dataclass(frozen=True)
class UploadOutcome:
    item: UploadFile
    result: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class UploadReport:
    succeeded: list[UploadOutcome] = field(default_factory=list)
    failed: list[UploadOutcome] = field(default_factory=list)
    not_attempted: list[UploadFile] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.not_attempted


def human_readable_file_size(size: int) -> str:
    """Format ``size`` bytes with base-1000 units and one truncated decimal."""
    if size < 1000:
        return f"{size}B"
    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and size >= 1000 ** (exponent + 1):
        exponent += 1
    tenths = size * 10 // 1000**exponent
    whole, fraction = divmod(tenths, 10)
    number = f"{whole}.{fraction}" if fraction else f"{whole}"
    return f"{number}{_SIZE_UNITS[exponent]}"


def collect_upload_files(root: str | Path) -> list[UploadFile]:
    root_path = Path(root)
    if not root_path.exists():
        raise ValidationError(f"path not found: {root_path}")
    if root_path.is_file():
        resolved = root_path.resolve()
        return [UploadFile(str(resolved), root_path.name, resolved.stat().st_size)]

    files: list[UploadFile] = []
    for path in sorted(root_path.rglob("*")):
        if not path.is_file():
            continue
        files.append(
            UploadFile(
                canonical=str(path.resolve()),
                relative=path.relative_to(root_path).as_posix(),
                size=path.stat().st_size,
            )
        )
    files.sort(key=lambda item: item.relative)
    return files


def run_bounded(
    items: Iterable[UploadFile],
    worker: Callable[[UploadFile], Any],
    *,
    concurrency: int = DEFAULT_UPLOAD_CONCURRENCY,
    on_outcome: Callable[[UploadOutcome], None] | None = None,
) -> UploadReport:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    After the first failure no further items are started; uploads already in
    flight finish and are reported. Items never started end up in
    ``not_attempted``.
    """
    if concurrency < 1:
        raise ValidationError("concurrency must be >= 1")

    report = UploadReport()
    pending = iter(items)
    in_flight: dict[Future, UploadFile] = {}
    stopped = False

    with ThreadPoolExecutor(max_workers=concurrency) as executor:

        def _fill() -> None:
            while not stopped and len(in_flight) < concurrency:
                item = next(pending, None)
                if item is None:
                    return
                in_flight[executor.submit(worker, item)] = item

        _fill()
        while in_flight:
            done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
            for future in done:
                item = in_flight.pop(future)
                try:
                    outcome = UploadOutcome(item=item, result=future.result())
                except Exception as exc:
                    outcome = UploadOutcome(item=item, error=exc)
                    stopped = True
                if outcome.ok:
                    report.succeeded.append(outcome)
                else:
                    report.failed.append(outcome)
                if on_outcome is not None:
                    on_outcome(outcome)
            _fill()

    report.not_attempted.extend(pending)
    return report
