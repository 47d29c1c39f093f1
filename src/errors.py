class ProxyError(Exception):
    """Base error carrying the HTTP status it should be reported with."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BadRequest(ProxyError):
    status_code = 400


class InvalidUrl(ProxyError):
    """Raised when a URL cannot be parsed or is not a recognized video link."""

    status_code = 400

    def __init__(self, url):
        self.url = url
        super().__init__(f"Invalid video URL: {url!r}")


class MissingVideoId(ProxyError):
    """Raised when a recognized video link carries no video id."""

    status_code = 400

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No video id found in URL: {url}")


class NoTrackFound(ProxyError):
    """Raised when no subtitle track matches the language preferences."""

    status_code = 404

    def __init__(self, video_id: str, languages):
        self.video_id = video_id
        self.languages = tuple(languages)
        super().__init__(
            f"No subtitles in {', '.join(self.languages)} for video: {video_id}"
        )


class FormatUnavailable(ProxyError):
    """Raised when the selected track does not offer any of the needed formats."""

    status_code = 404

    def __init__(self, video_id: str, formats):
        self.video_id = video_id
        self.formats = tuple(formats)
        super().__init__(
            f"Subtitle format {'/'.join(self.formats)} not available for video: {video_id}"
        )


class UpstreamError(ProxyError):
    """Raised when a collaborator call fails or answers with a non-success status."""

    status_code = 500


class UpstreamTimeout(UpstreamError):
    def __init__(self, service: str, timeout: float):
        self.service = service
        self.timeout = timeout
        super().__init__(f"{service} did not respond within {timeout:g} seconds")


class ReductionError(ProxyError):
    status_code = 500


class NotFound(ProxyError):
    status_code = 404
