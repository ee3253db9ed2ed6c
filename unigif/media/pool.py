"""Temporary storage pool for per-request staging files."""

import re
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator

from loguru import logger

OUTPUT_SUFFIX = ".mp4"
_REF_SLUG_LENGTH = 16
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class StagingRole(str, Enum):
    raw_input = "raw_input"
    processed_output = "processed_output"


@dataclass(frozen=True)
class StagingFile:
    """A temporary file owned by a single request."""

    path: Path
    role: StagingRole
    created_at: float = field(default_factory=time.time)

    def exists(self) -> bool:
        return self.path.is_file()

    def size(self) -> int:
        """Size in bytes, 0 when the file is missing."""
        try:
            return self.path.stat().st_size
        except OSError:
            return 0


@dataclass(frozen=True)
class RequestStaging:
    """The raw-input / processed-output pair allocated for one request."""

    token: str
    raw: StagingFile
    output: StagingFile

    @property
    def files(self) -> tuple[StagingFile, StagingFile]:
        return (self.raw, self.output)

    def with_raw_suffix(self, suffix: str) -> "RequestStaging":
        """Return a copy whose raw path carries *suffix* (e.g. ".png").

        Only valid before the raw file has been written.
        """
        raw = replace(self.raw, path=self.raw.path.with_suffix(suffix))
        return replace(self, raw=raw)


def make_token(reference: str = "") -> str:
    """Build a filename token unique per request.

    Millisecond timestamp plus random hex keeps concurrent requests apart;
    the tail of the file reference is appended to make files recognisable.
    """
    token = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
    slug = _UNSAFE_CHARS.sub("", reference)[-_REF_SLUG_LENGTH:]
    return f"{token}_{slug}" if slug else token


class TempPool:
    """Owns the flat directory that holds every staging file.

    Directory layout::

        temp_dir/
        ├── p_1738934400123_1a2b3c4d_AgACAgIAAxkB_raw.jpg
        ├── out_1738934400123_1a2b3c4d_AgACAgIAAxkB.mp4
        └── link_1738934400456_9f8e7d6c_raw.gif
    """

    def __init__(self, directory: Path):
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    def allocate(self, prefix: str, reference: str = "", raw_suffix: str = ".bin") -> RequestStaging:
        """Reserve a unique raw/output path pair. No file is created."""
        token = make_token(reference)
        now = time.time()
        staging = RequestStaging(
            token=token,
            raw=StagingFile(
                path=self._directory / f"{prefix}_{token}_raw{raw_suffix}",
                role=StagingRole.raw_input,
                created_at=now,
            ),
            output=StagingFile(
                path=self._directory / f"out_{token}{OUTPUT_SUFFIX}",
                role=StagingRole.processed_output,
                created_at=now,
            ),
        )
        logger.debug(f"Allocated staging {token} in {self._directory}")
        return staging

    def release(self, files: Iterable[StagingFile]) -> int:
        """Delete staging files. Missing files are not an error.

        Returns the number of files actually removed.
        """
        removed = 0
        for staging_file in files:
            try:
                if staging_file.path.exists():
                    staging_file.path.unlink()
                    removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not delete {staging_file.path.name}: {e}")
        return removed

    def stale_files(self, max_age_s: float, now: float | None = None) -> Iterator[Path]:
        """Yield regular files whose mtime is older than *max_age_s*."""
        now = time.time() if now is None else now
        try:
            entries = list(self._directory.iterdir())
        except OSError as e:
            logger.warning(f"Cannot list temp pool {self._directory}: {e}")
            return
        for path in entries:
            try:
                if not path.is_file():
                    continue
                age = now - path.stat().st_mtime
            except OSError:
                continue
            if age > max_age_s:
                yield path
