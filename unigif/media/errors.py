"""Error taxonomy for the media pipeline."""


class MediaError(Exception):
    """Pipeline failure with a short message and optional diagnostic detail."""

    def __init__(self, short_message: str, detail: str = ""):
        self.short_message = short_message
        self.detail = detail
        super().__init__(detail or short_message)


class FetchError(MediaError):
    """Network, HTTP status or stream failure while downloading."""


class ResolveError(MediaError):
    """No downloadable media could be determined for a link."""


class TranscodeError(MediaError):
    """ffmpeg failed, or the input was unusable."""


class TranscodeTimeout(TranscodeError):
    """ffmpeg exceeded the wall-clock limit and was killed."""


class DeliveryError(MediaError):
    """The chat channel could not deliver the result."""
