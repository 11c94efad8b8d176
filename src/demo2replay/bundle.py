from __future__ import annotations

"""
Replay bundle assembly.

A bundle is four files sharing one sanitized stem `S`:

  tf/replay/client/replays/S.dmx                 replay descriptor (KeyValues text)
  tf/replay/client/replays/S.dem                 copy of the source demo
  tf/materials/vgui/replay/thumbnails/S.vmt      thumbnail material
  tf/materials/vgui/replay/thumbnails/S.vtf      512x512 RGB888 thumbnail texture

Every check, decode and encode happens before the first write. Writes happen in
the order above; each file is renamed into place from a temp file, but a failure
partway through leaves the earlier files of the bundle on disk.
"""

from dataclasses import dataclass
import datetime as dt
from enum import Enum
from pathlib import Path
from typing import Callable, Final, Protocol

from PIL import Image

from srcfmt.dem import DemoHeader
from srcfmt.vtf import ImageFormat, VtfEncoder

from .console import ConsoleLog
from .errors import BundleCodecError, BundleError, BundleIOError, BundlePreconditionError, ReplayExistsError
from .fsio import copy_file_atomic, write_file_atomic
from .handles import count_descriptor_names, list_replay_folder
from .naming import sanitize_stem
from .templates import DEFAULT_TEMPLATES, ReplayTemplates, render_descriptor, render_material
from .thumbnail import ImageDecoder, PillowImageDecoder, ThumbnailDecodeError, compose_canvas, load_thumbnail
from .timestamp import TimestampFields, UnsupportedClockError, encode_timestamp, local_now

DIR_THUMBNAIL: Final[Path] = Path("tf/materials/vgui/replay/thumbnails")
DIR_REPLAY: Final[Path] = Path("tf/replay/client/replays")
DIR_DEMOS: Final[Path] = Path("tf/demos")


class TextureEncoder(Protocol):
    def encode(self, image: Image.Image) -> bytes: ...


class AssemblyState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ALLOCATING = "allocating"
    COMPOSING = "composing"
    RENDERING = "rendering"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReplayRequest:
    install_root: Path | None
    demo_file_path: Path | None
    replay_display_name: str
    header: DemoHeader | None
    thumbnail_bytes: bytes | None = None


@dataclass(frozen=True, slots=True)
class BundleArtifacts:
    stem: str
    descriptor: Path
    demo: Path
    material: Path
    texture: Path
    handle: int = 0
    timestamp: TimestampFields | None = None

    def paths(self) -> tuple[Path, Path, Path, Path]:
        return (self.descriptor, self.demo, self.material, self.texture)


def replay_dir(install_root: Path) -> Path:
    return install_root / DIR_REPLAY


def thumbnail_dir(install_root: Path) -> Path:
    return install_root / DIR_THUMBNAIL


def demos_dir(install_root: Path) -> Path:
    return install_root / DIR_DEMOS


def bundle_paths(install_root: Path, stem: str) -> BundleArtifacts:
    replays = replay_dir(install_root)
    thumbnails = thumbnail_dir(install_root)
    return BundleArtifacts(
        stem=stem,
        descriptor=replays / f"{stem}.dmx",
        demo=replays / f"{stem}.dem",
        material=thumbnails / f"{stem}.vmt",
        texture=thumbnails / f"{stem}.vtf",
    )


class ReplayAssembler:
    """Runs one bundle assembly: validate, allocate, compose, render, write.

    `state` follows the run and ends at DONE or FAILED. `written` lists the
    artifacts already on disk, which is the whole bundle on success and a
    prefix of it when writing failed.
    """

    def __init__(
        self,
        request: ReplayRequest,
        *,
        templates: ReplayTemplates = DEFAULT_TEMPLATES,
        image_decoder: ImageDecoder | None = None,
        texture_encoder: TextureEncoder | None = None,
        clock: Callable[[], dt.datetime] = local_now,
        log: ConsoleLog | None = None,
    ) -> None:
        self.request = request
        self.templates = templates
        self.image_decoder = image_decoder if image_decoder is not None else PillowImageDecoder()
        self.texture_encoder = texture_encoder if texture_encoder is not None else VtfEncoder(ImageFormat.RGB888)
        self.clock = clock
        self.log = log if log is not None else ConsoleLog()
        self.state = AssemblyState.IDLE
        self.written: list[Path] = []

    def _enter(self, state: AssemblyState) -> None:
        self.state = state

    def run(self) -> BundleArtifacts:
        if self.state is not AssemblyState.IDLE:
            raise RuntimeError(f"assembly already ran (state={self.state.value})")
        try:
            self._enter(AssemblyState.VALIDATING)
            install_root, demo_path, header, stem = self._validate()

            self._enter(AssemblyState.ALLOCATING)
            paths = bundle_paths(install_root, stem)
            handle, timestamp = self._allocate(paths)

            self._enter(AssemblyState.COMPOSING)
            texture = self._compose()

            self._enter(AssemblyState.RENDERING)
            descriptor = render_descriptor(
                self.templates,
                stem=stem,
                title=self.request.replay_display_name,
                map_name=header.map,
                duration_seconds=header.duration_seconds,
                date_field=timestamp.date_field,
                time_field=timestamp.time_field,
                handle=handle,
            )
            material = render_material(self.templates, stem=stem)

            self._enter(AssemblyState.WRITING)
            self._write(paths, demo_path, descriptor, material, texture)
        except BundleError as exc:
            self._enter(AssemblyState.FAILED)
            self.log.log(f"replay: failed: {exc}")
            raise
        except Exception as exc:
            self._enter(AssemblyState.FAILED)
            self.log.log(f"replay: failed: {type(exc).__name__}: {exc}")
            raise

        self._enter(AssemblyState.DONE)
        self.log.log(f"replay: created {stem!r} (handle {handle})")
        return BundleArtifacts(
            stem=stem,
            descriptor=paths.descriptor,
            demo=paths.demo,
            material=paths.material,
            texture=paths.texture,
            handle=handle,
            timestamp=timestamp,
        )

    def _validate(self) -> tuple[Path, Path, DemoHeader, str]:
        request = self.request
        header = request.header
        if not isinstance(header, DemoHeader):
            raise BundlePreconditionError("validating request", "No valid demo")
        if request.install_root is None:
            raise BundlePreconditionError("validating request", "No TF2 directory set")
        if request.demo_file_path is None:
            raise BundlePreconditionError("validating request", "No demo provided")
        install_root = Path(request.install_root)
        demo_path = Path(request.demo_file_path)
        if not install_root.is_dir():
            raise BundlePreconditionError("validating request", f"TF2 directory not found: {install_root}")
        if not demo_path.is_file():
            raise BundlePreconditionError("validating request", f"demo file not found: {demo_path}")
        stem = sanitize_stem(request.replay_display_name)
        if not stem:
            raise BundlePreconditionError(
                "validating request",
                f"replay name {request.replay_display_name!r} has no characters usable in a file name",
            )
        return install_root, demo_path, header, stem

    def _allocate(self, paths: BundleArtifacts) -> tuple[int, TimestampFields]:
        replay_names = list_replay_folder(paths.descriptor.parent)
        handle = count_descriptor_names(replay_names)

        thumbnails = paths.material.parent
        if not thumbnails.is_dir():
            raise BundleIOError("checking thumbnail folder", f"{thumbnails} does not exist")
        try:
            thumbnail_names = {entry.name for entry in thumbnails.iterdir()}
        except OSError as exc:
            raise BundleIOError("reading thumbnail folder", f"{thumbnails}: {exc.strerror or exc}") from exc

        existing = set(replay_names) | thumbnail_names
        taken = [path.name for path in paths.paths() if path.name in existing]
        if taken:
            raise ReplayExistsError(
                "checking replay name",
                f"a replay named {paths.stem!r} already exists ({', '.join(taken)})",
            )

        try:
            now = self.clock()
        except Exception as exc:
            raise BundlePreconditionError("reading clock", f"{type(exc).__name__}: {exc}") from exc
        try:
            timestamp = encode_timestamp(now)
        except UnsupportedClockError as exc:
            raise BundlePreconditionError("reading clock", str(exc)) from exc

        self.log.log(
            f"replay: handle={handle} date={timestamp.date_field} time={timestamp.time_field}"
        )
        return handle, timestamp

    def _compose(self) -> bytes:
        try:
            source = load_thumbnail(self.request.thumbnail_bytes, self.image_decoder)
        except ThumbnailDecodeError as exc:
            raise BundleCodecError("decoding thumbnail", str(exc)) from exc
        try:
            canvas = compose_canvas(source)
        except ThumbnailDecodeError as exc:
            raise BundleCodecError("composing thumbnail", str(exc)) from exc
        try:
            return self.texture_encoder.encode(canvas)
        except ValueError as exc:
            raise BundleCodecError("creating thumbnail VTF", str(exc)) from exc
        except Exception as exc:
            raise BundleCodecError("creating thumbnail VTF", f"{type(exc).__name__}: {exc}") from exc

    def _write_step(self, stage: str, dest: Path, action: Callable[[], None]) -> None:
        try:
            action()
        except OSError as exc:
            raise BundleIOError(stage, f"{dest}: {exc.strerror or exc}", written=tuple(self.written)) from exc
        self.written.append(dest)
        self.log.log(f"replay: wrote {dest}")

    def _write(
        self,
        paths: BundleArtifacts,
        demo_path: Path,
        descriptor: str,
        material: str,
        texture: bytes,
    ) -> None:
        self._write_step(
            "writing replay DMX",
            paths.descriptor,
            lambda: write_file_atomic(paths.descriptor, descriptor.encode("utf-8")),
        )
        self._write_step(
            "copying demo file",
            paths.demo,
            lambda: copy_file_atomic(demo_path, paths.demo),
        )
        self._write_step(
            "writing thumbnail VMT",
            paths.material,
            lambda: write_file_atomic(paths.material, material.encode("utf-8")),
        )
        self._write_step(
            "writing thumbnail VTF",
            paths.texture,
            lambda: write_file_atomic(paths.texture, texture),
        )


def assemble_replay(
    request: ReplayRequest,
    *,
    templates: ReplayTemplates = DEFAULT_TEMPLATES,
    image_decoder: ImageDecoder | None = None,
    texture_encoder: TextureEncoder | None = None,
    clock: Callable[[], dt.datetime] = local_now,
    log: ConsoleLog | None = None,
) -> BundleArtifacts:
    return ReplayAssembler(
        request,
        templates=templates,
        image_decoder=image_decoder,
        texture_encoder=texture_encoder,
        clock=clock,
        log=log,
    ).run()


__all__ = [
    "AssemblyState",
    "BundleArtifacts",
    "DIR_DEMOS",
    "DIR_REPLAY",
    "DIR_THUMBNAIL",
    "ReplayAssembler",
    "ReplayRequest",
    "TextureEncoder",
    "assemble_replay",
    "bundle_paths",
    "demos_dir",
    "replay_dir",
    "thumbnail_dir",
]
