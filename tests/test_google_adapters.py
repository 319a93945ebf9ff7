from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from adapters.base import AdapterError, UploadMetadata
from adapters.drive import DriveFileStorage, folder_name_for
from adapters.google_auth import GoogleOAuthConfig, build_credentials, load_google_oauth_config
from adapters.youtube import YouTubeVideoHost

OAUTH = GoogleOAuthConfig(client_id="id", client_secret="secret", refresh_token="refresh", access_token=None)


class _Request:
    def __init__(self, response=None, exc: Exception | None = None, chunks: int = 0) -> None:
        self.response = response
        self.exc = exc
        self.chunks = chunks

    def execute(self):
        if self.exc is not None:
            raise self.exc
        return self.response

    def next_chunk(self):
        if self.chunks > 0:
            self.chunks -= 1
            return _Progress(0.5), None
        return None, self.response


class _Progress:
    def __init__(self, value: float) -> None:
        self.value = value

    def progress(self) -> float:
        return self.value


class _Resource:
    def __init__(self, **methods) -> None:
        self.calls: list[tuple[str, dict]] = []
        self._methods = methods

    def __getattr__(self, name):
        if name.startswith("_") or name not in self._methods:
            raise AttributeError(name)

        def _call(**kwargs):
            self.calls.append((name, kwargs))
            return self._methods[name]

        return _call


class _Client:
    def __init__(self, **resources) -> None:
        self._resources = resources

    def __getattr__(self, name):
        if name.startswith("_") or name not in self._resources:
            raise AttributeError(name)
        return lambda: self._resources[name]


@pytest.fixture()
def video_file(tmp_path) -> Path:
    path = tmp_path / "video.mp4"
    path.write_bytes(b"\x00" * 16)
    return path


def test_youtube_upload_loops_until_response(video_file) -> None:
    videos = _Resource(insert=_Request(response={"id": "yt-1"}, chunks=2))
    host = YouTubeVideoHost(OAUTH, {"defaultPrivacy": "unlisted"}, client=_Client(videos=videos))

    video_id = host.upload_video(video_file, UploadMetadata(title="T" * 150, description="d", tags=["x"]))

    assert video_id == "yt-1"
    body = videos.calls[0][1]["body"]
    assert len(body["snippet"]["title"]) == 100
    assert body["snippet"]["categoryId"] == "25"
    assert body["status"]["privacyStatus"] == "unlisted"


def test_youtube_upload_error_is_wrapped(video_file) -> None:
    videos = _Resource(insert=_Request(response={}))
    host = YouTubeVideoHost(OAUTH, client=_Client(videos=videos))
    with pytest.raises(AdapterError, match="missing video id"):
        host.upload_video(video_file, UploadMetadata(title="t", description="d"))


def test_youtube_stats_and_health() -> None:
    videos = _Resource(list=_Request(response={"items": [{"statistics": {"viewCount": "12", "likeCount": "3"}}]}))
    channels = _Resource(list=_Request(exc=RuntimeError("401")))
    host = YouTubeVideoHost(OAUTH, client=_Client(videos=videos, channels=channels))

    assert host.get_video_stats("yt-1") == {"views": 12, "likes": 3, "comments": 0}
    assert host.check_health() is False


def test_drive_folder_name() -> None:
    today = datetime(2026, 5, 10, tzinfo=UTC)
    assert folder_name_for("x" * 80, today) == "2026-05-10 - " + "x" * 50


def test_drive_reuses_prefix_folder(video_file) -> None:
    files = _Resource(
        list=_Request(response={"files": [{"id": "root-1"}]}),
        create=_Request(response={"id": "new-1"}),
    )
    drive = DriveFileStorage(OAUTH, {"folderPrefix": "AutoTube_Videos"}, client=_Client(files=files))

    folder_id = drive.organize_video_files(7, "Breaking: Rover")
    drive.organize_video_files(8, "Breaking: Other")

    assert folder_id == "new-1"
    assert [name for name, _ in files.calls].count("list") == 1
    create_body = files.calls[1][1]["body"]
    assert create_body["parents"] == ["root-1"]
    assert create_body["mimeType"] == "application/vnd.google-apps.folder"

    uploaded = drive.upload_video_assets("new-1", video_path=video_file)
    assert uploaded == {"video_file_id": "new-1"}


def test_credentials_require_refresh_token(monkeypatch) -> None:
    for name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REFRESH_TOKEN", "GOOGLE_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("YOUTUBE_CLIENT_ID", "yt-id")
    monkeypatch.setenv("YOUTUBE_CLIENT_SECRET", "yt-secret")
    monkeypatch.delenv("YOUTUBE_REFRESH_TOKEN", raising=False)

    config = load_google_oauth_config("drive")
    assert config.client_id == "yt-id"
    with pytest.raises(AdapterError):
        build_credentials(config, ["scope"], "drive")
