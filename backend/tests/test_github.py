"""Tests for the GitHub playlist publisher, against an in-memory contents API."""
import httpx
import pytest

from seedsync.core.exceptions import PublishError
from seedsync.services.github import GitHubPublisher


async def test_first_publish_creates_file(publisher, github) -> None:
    url = await publisher.publish("#EXTM3U\n", "user-1.m3u8")

    assert url == "https://raw.githubusercontent.com/octo/playlists/main/user-1.m3u8"
    assert github.files["user-1.m3u8"]["content"] == "#EXTM3U\n"
    assert github.files["user-1.m3u8"]["message"] == "Add user-1.m3u8"


async def test_republish_overwrites_with_same_url(publisher, github) -> None:
    first = await publisher.publish("#EXTM3U\n#EXTINF:-1,a.mp4\nhttps://x/a\n", "user-1.m3u8")
    second = await publisher.publish("#EXTM3U\n", "user-1.m3u8")

    assert first == second
    assert github.files["user-1.m3u8"]["content"] == "#EXTM3U\n"
    assert github.files["user-1.m3u8"]["message"] == "Update user-1.m3u8"
    puts = [r for r in github.requests if r.method == "PUT"]
    assert len(puts) == 2


async def test_requests_carry_token_and_branch(publisher, github) -> None:
    await publisher.publish("#EXTM3U\n", "user-1.m3u8")

    get = github.requests[0]
    assert get.method == "GET"
    assert get.url.path == "/repos/octo/playlists/contents/user-1.m3u8"
    assert get.url.params["ref"] == "main"
    assert get.headers["Authorization"] == "Bearer gh-token"


async def test_write_failure_raises(publisher, github) -> None:
    github.fail_status = 500

    with pytest.raises(PublishError) as exc_info:
        await publisher.publish("#EXTM3U\n", "user-1.m3u8")

    assert exc_info.value.status_code == 500


async def test_put_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(404)
        return httpx.Response(422, json={"message": "Invalid request"})

    publisher = GitHubPublisher(token="t", owner="o", repo="r", transport=httpx.MockTransport(handler))

    with pytest.raises(PublishError, match="Failed to write"):
        await publisher.publish("#EXTM3U\n", "user-1.m3u8")


async def test_unconfigured_publisher(mocker) -> None:
    mocker.patch("seedsync.services.github.settings.GITHUB_TOKEN", None)
    handler = mocker.Mock()
    publisher = GitHubPublisher(owner="o", repo="r", transport=httpx.MockTransport(handler))

    with pytest.raises(PublishError, match="not configured"):
        await publisher.publish("#EXTM3U\n", "user-1.m3u8")
    handler.assert_not_called()
