import importlib

import pytest
import requests

import config
from errors import FormatUnavailable, NoTrackFound, UpstreamError, UpstreamTimeout
from fakes import SUBTITLES_API_URL, FakeResponse, FakeSession, subtitles_payload, track
from transcripts import (
    SubtitleClient,
    SubtitleTrack,
    TIMECODE_FORMATS,
    parse_metadata,
    parse_tracks,
    select_track,
)


def _client(routes, **kwargs):
    return SubtitleClient(
        api_url=SUBTITLES_API_URL,
        api_key="secret",
        api_host="subtitles.test",
        session=FakeSession(routes),
        **kwargs,
    )


def test_select_track_falls_back_to_english():
    tracks = [SubtitleTrack("english", {"txt": "https://subs.test/en.txt"})]

    assert select_track(tracks, "abc123", "russian", "english") is tracks[0]


def test_select_track_prefers_primary_language():
    tracks = [
        SubtitleTrack("English"),
        SubtitleTrack("Russian (auto-generated)"),
        SubtitleTrack("russian"),
    ]

    assert select_track(tracks, "abc123", "russian", "english") is tracks[1]


@pytest.mark.parametrize("languages", [[], ["German", "French"]])
def test_select_track_without_match_raises(languages):
    tracks = [SubtitleTrack(language) for language in languages]

    with pytest.raises(NoTrackFound) as exc_info:
        select_track(tracks, "abc123", "russian", "english")
    assert exc_info.value.status_code == 404


def test_parse_tracks_accepts_mapping_and_list_formats():
    payload = {
        "subtitles": {
            "items": [
                {"name": "English", "urls": {"SRT": "https://subs.test/en.srt"}},
                track("Russian", txt="https://subs.test/ru.txt", vtt="https://subs.test/ru.vtt"),
                "garbage",
            ]
        }
    }

    tracks = parse_tracks(payload)

    assert [t.language for t in tracks] == ["English", "Russian"]
    assert tracks[0].formats == {"srt": "https://subs.test/en.srt"}
    assert tracks[1].url_for("vtt") == "https://subs.test/ru.vtt"
    assert tracks[1].url_for("srt") is None


def test_parse_metadata_picks_largest_thumbnail():
    meta = parse_metadata(subtitles_payload([]))

    assert meta == {
        "title": "Test video",
        "description": "A video used in tests",
        "author": "Test channel",
        "thumbnail": "https://img.test/large.jpg",
        "publishDate": "2024-05-01",
    }


def test_fetch_transcript_downloads_selected_format():
    payload = subtitles_payload(
        [
            track("English", txt="https://subs.test/en.txt"),
            track("Russian", txt="https://subs.test/ru.txt", srt="https://subs.test/ru.srt"),
        ]
    )
    client = _client(
        {
            SUBTITLES_API_URL: FakeResponse(payload=payload),
            "https://subs.test/ru.txt": FakeResponse(text="привет мир"),
        }
    )

    transcript = client.fetch_transcript_sync("abc123")

    assert transcript.text == "привет мир"
    assert transcript.format == "txt"
    assert transcript.track.language == "Russian"
    assert transcript.meta["title"] == "Test video"

    listing = client.session.calls[0]
    assert listing["params"] == {"url": "https://www.youtube.com/watch?v=abc123"}
    assert listing["headers"] == {
        "X-RapidAPI-Key": "secret",
        "X-RapidAPI-Host": "subtitles.test",
    }
    assert listing["timeout"] == client.timeout
    assert len(client.session.calls) == 2


def test_timecode_formats_fall_back_to_vtt():
    payload = subtitles_payload([track("English", txt="https://subs.test/en.txt", vtt="https://subs.test/en.vtt")])
    client = _client(
        {
            SUBTITLES_API_URL: FakeResponse(payload=payload),
            "https://subs.test/en.vtt": FakeResponse(text="WEBVTT"),
        }
    )

    transcript = client.fetch_transcript_sync("abc123", TIMECODE_FORMATS)

    assert transcript.format == "vtt"
    assert transcript.text == "WEBVTT"


def test_missing_format_raises_format_unavailable():
    payload = subtitles_payload([track("Russian", srt="https://subs.test/ru.srt")])
    client = _client({SUBTITLES_API_URL: FakeResponse(payload=payload)})

    with pytest.raises(FormatUnavailable):
        client.fetch_transcript_sync("abc123")
    assert len(client.session.calls) == 1


def test_no_tracks_raises_before_any_download():
    client = _client({SUBTITLES_API_URL: FakeResponse(payload=subtitles_payload([]))})

    with pytest.raises(NoTrackFound):
        client.fetch_transcript_sync("abc123")
    assert len(client.session.calls) == 1


@pytest.mark.parametrize(
    "route",
    [
        FakeResponse(status_code=502),
        FakeResponse(status_code=200, payload=None),
        requests.ConnectionError("connection refused"),
    ],
)
def test_listing_failures_raise_upstream_error(route):
    client = _client({SUBTITLES_API_URL: route})

    with pytest.raises(UpstreamError):
        client.fetch_transcript_sync("abc123")


def test_download_failure_raises_upstream_error():
    payload = subtitles_payload([track("Russian", txt="https://subs.test/ru.txt")])
    client = _client(
        {
            SUBTITLES_API_URL: FakeResponse(payload=payload),
            "https://subs.test/ru.txt": FakeResponse(status_code=500),
        }
    )

    with pytest.raises(UpstreamError):
        client.fetch_transcript_sync("abc123")


def test_request_timeout_is_reported_separately():
    client = _client({SUBTITLES_API_URL: requests.Timeout("read timed out")}, timeout=5)

    with pytest.raises(UpstreamTimeout) as exc_info:
        client.fetch_transcript_sync("abc123")
    assert exc_info.value.timeout == 5


def test_unconfigured_service_raises_upstream_error():
    client = SubtitleClient(api_url="", session=FakeSession())

    with pytest.raises(UpstreamError):
        client.fetch_transcript_sync("abc123")


@pytest.mark.asyncio
async def test_fetch_transcript_runs_off_the_event_loop():
    payload = subtitles_payload([track("english", txt="https://subs.test/en.txt")])
    client = _client(
        {
            SUBTITLES_API_URL: FakeResponse(payload=payload),
            "https://subs.test/en.txt": FakeResponse(text="hello"),
        }
    )

    transcript = await client.fetch_transcript("abc123")

    assert transcript.text == "hello"
    assert transcript.track.language == "english"


@pytest.mark.parametrize("fallback", ["", "   ", None])
def test_empty_fallback_does_not_match_every_track(fallback):
    tracks = [SubtitleTrack("German"), SubtitleTrack("French")]

    with pytest.raises(NoTrackFound):
        select_track(tracks, "abc123", "russian", fallback)


def test_empty_language_env_vars_keep_defaults(monkeypatch):
    monkeypatch.setenv("PRIMARY_LANGUAGE", "")
    monkeypatch.setenv("FALLBACK_LANGUAGE", "")
    try:
        importlib.reload(config)
        assert config.PRIMARY_LANGUAGE == "russian"
        assert config.FALLBACK_LANGUAGE == "english"
    finally:
        monkeypatch.undo()
        importlib.reload(config)
