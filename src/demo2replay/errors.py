from __future__ import annotations

from pathlib import Path


class BundleError(RuntimeError):
    """An assembly failed; `stage` names the step, `written` lists artifacts left on disk."""

    def __init__(self, stage: str, message: str, *, written: tuple[Path, ...] = ()) -> None:
        self.stage = str(stage)
        self.message = str(message)
        self.written = tuple(written)
        super().__init__(self._describe())

    def _describe(self) -> str:
        text = f"{self.stage}: {self.message}" if self.stage else self.message
        if self.written:
            names = ", ".join(path.name for path in self.written)
            text += f" (partial replay left on disk: {names})"
        return text


class BundlePreconditionError(BundleError):
    pass


class ReplayExistsError(BundlePreconditionError):
    pass


class BundleIOError(BundleError):
    pass


class BundleCodecError(BundleError):
    pass


__all__ = [
    "BundleCodecError",
    "BundleError",
    "BundleIOError",
    "BundlePreconditionError",
    "ReplayExistsError",
]
