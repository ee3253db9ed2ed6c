"""Media acquisition, transcoding and temporary storage."""

from unigif.media.errors import (
    DeliveryError,
    FetchError,
    MediaError,
    ResolveError,
    TranscodeError,
    TranscodeTimeout,
)
from unigif.media.fetcher import Fetcher
from unigif.media.janitor import StorageJanitor
from unigif.media.pool import RequestStaging, StagingFile, StagingRole, TempPool
from unigif.media.resolver import LinkResolver
from unigif.media.transcoder import TranscodeSpec, Transcoder

__all__ = [
    "DeliveryError",
    "FetchError",
    "Fetcher",
    "LinkResolver",
    "MediaError",
    "RequestStaging",
    "ResolveError",
    "StagingFile",
    "StagingRole",
    "StorageJanitor",
    "TempPool",
    "TranscodeError",
    "TranscodeSpec",
    "TranscodeTimeout",
    "Transcoder",
]
