"""Progress reporting for long-running operations.

Resampling and filtering accept any object implementing
:class:`ProgressRecorder`. :class:`TqdmProgressRecorder` renders the progress
as a tqdm bar on the console.
"""

from typing import Protocol, runtime_checkable

from tqdm import tqdm


@runtime_checkable
class ProgressRecorder(Protocol):
    """Receives progress updates from a long-running operation.

    ``set_enabled`` is called once when the operation starts, then
    ``set_progress`` after each processed unit of work.
    """

    def set_enabled(self, current: int, maximum: int) -> None:
        """Start reporting progress out of ``maximum`` units."""
        ...

    def set_progress(self, current: int) -> None:
        """Report that ``current`` units have been processed."""
        ...


class TqdmProgressRecorder:
    """ProgressRecorder backed by a tqdm progress bar.

    Args:
        desc: Label shown in front of the bar.
        unit: Name of one unit of work.
        disable: Suppress the bar entirely.

    Examples:
        data.resample_at(0.001, progress=TqdmProgressRecorder("Resampling"))
    """

    def __init__(self, desc: str = "Processing", unit: str = "channel", disable: bool = False):
        self.desc = desc
        self.unit = unit
        self.disable = disable
        self._bar: tqdm | None = None

    def set_enabled(self, current: int, maximum: int) -> None:
        self.close()
        self._bar = tqdm(
            total=maximum,
            initial=current,
            desc=self.desc,
            unit=self.unit,
            disable=self.disable,
        )

    def set_progress(self, current: int) -> None:
        if self._bar is None:
            raise RuntimeError("set_enabled must be called before set_progress")
        self._bar.update(current - self._bar.n)
        if self._bar.total is not None and current >= self._bar.total:
            self.close()

    @property
    def current(self) -> int | None:
        return None if self._bar is None else int(self._bar.n)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
