"""Tests for video eligibility and playlist assembly."""
import httpx
import pytest

from seedsync.core.exceptions import NoContentError, ProviderRequestError
from seedsync.services.playlist import (
    M3U_HEADER,
    Playlist,
    PlaylistAssembler,
    PlaylistEntry,
    is_eligible,
)
from seedsync.services.seedr import SeedrClient

from conftest import video


@pytest.mark.parametrize(
    "name, playable, expected",
    [
        ("movie.mp4", True, True),
        ("Movie.MP4", True, True),
        ("show.S01E01.mkv", True, True),
        ("clip.avi", True, True),
        ("home.mov", True, True),
        ("movie.mp4x", True, False),
        ("subs.srt", True, False),
        ("noextension", True, False),
        ("movie.mkv", False, False),
        ("movie.mkv", None, False),
    ],
)
def test_is_eligible(name, playable, expected) -> None:
    assert is_eligible(video(1, name, playable=playable)) is expected


def test_playlist_rendering() -> None:
    playlist = Playlist(entries=[
        PlaylistEntry(title="movie.mkv", url="https://x/1"),
        PlaylistEntry(title="other.mp4", url="https://x/2"),
    ])

    assert playlist.content == (
        "#EXTM3U\n"
        "#EXTINF:-1,movie.mkv\nhttps://x/1\n"
        "#EXTINF:-1,other.mp4\nhttps://x/2\n"
    )
    assert playlist.video_count == 2


def test_empty_playlist_is_header_only() -> None:
    playlist = Playlist(entries=[])

    assert playlist.content == M3U_HEADER
    assert playlist.video_count == 0


class TestAssemble:
    async def test_single_folder_end_to_end(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.add_folder("tok", 11, "Movie.Pack", [video(501, "movie.mkv"), video(502, "subs.srt")])
        seedr.urls[501] = "https://cdn/movie.mkv"

        playlist = await PlaylistAssembler(seedr).assemble([account])

        assert playlist.content == "#EXTM3U\n#EXTINF:-1,movie.mkv\nhttps://cdn/movie.mkv\n"
        assert playlist.video_count == 1
        # ineligible files are never resolved
        assert seedr.resolved == [501]

    async def test_no_accounts(self, seedr) -> None:
        playlist = await PlaylistAssembler(seedr).assemble([])

        assert playlist.content == "#EXTM3U\n"
        assert playlist.video_count == 0

    async def test_order_follows_accounts_then_folders_then_files(self, seedr, make_identity, make_account) -> None:
        identity = make_identity()
        first = make_account(identity, token="a")
        second = make_account(identity, token="b")
        seedr.add_folder("a", 1, "A1", [video(10, "a1.mp4"), video(11, "a2.mp4")])
        seedr.add_folder("a", 2, "A2", [video(20, "a3.mkv")])
        seedr.add_folder("b", 3, "B1", [video(30, "b1.avi")])
        for file_id in (10, 11, 20, 30):
            seedr.urls[file_id] = f"https://cdn/{file_id}"

        playlist = await PlaylistAssembler(seedr).assemble([second, first])

        assert [e.title for e in playlist.entries] == ["b1.avi", "a1.mp4", "a2.mp4", "a3.mkv"]

    async def test_broken_account_is_skipped(self, seedr, make_identity, make_account) -> None:
        identity = make_identity()
        broken = make_account(identity, token="bad")
        healthy = make_account(identity, token="good")
        seedr.broken_tokens.add("bad")
        seedr.add_folder("good", 5, "Ok", [video(50, "fine.mp4")])
        seedr.urls[50] = "https://cdn/fine.mp4"

        playlist = await PlaylistAssembler(seedr).assemble([broken, healthy])

        assert playlist.video_count == 1
        assert playlist.entries[0].url == "https://cdn/fine.mp4"

    async def test_malformed_listing_skips_only_that_account(self, make_identity, make_account) -> None:
        identity = make_identity()
        bad = make_account(identity, token="bad")
        good = make_account(identity, token="good")

        def handler(request: httpx.Request) -> httpx.Response:
            token = request.url.params.get("access_token")
            if request.url.path == "/api/folder":
                if token == "bad":
                    return httpx.Response(200, json={"folders": [{"name": "Broken"}]})
                return httpx.Response(200, json={"folders": [{"id": 5, "name": "Ok"}]})
            if request.url.path == "/api/folder/5":
                return httpx.Response(200, json={"files": [
                    {"folder_file_id": 50, "name": "fine.mp4", "play_video": True},
                ]})
            return httpx.Response(200, json={"url": "https://cdn/fine.mp4"})

        client = SeedrClient(base_url="https://seedr.test", transport=httpx.MockTransport(handler))

        playlist = await PlaylistAssembler(client).assemble([bad, good])

        assert playlist.video_count == 1
        assert playlist.entries[0].url == "https://cdn/fine.mp4"

    async def test_broken_folder_is_skipped(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.add_folder("tok", 1, "Broken", [video(10, "lost.mp4")])
        seedr.add_folder("tok", 2, "Fine", [video(20, "kept.mp4")])
        seedr.broken_folders.add(1)
        seedr.urls[10] = "https://cdn/10"
        seedr.urls[20] = "https://cdn/20"

        playlist = await PlaylistAssembler(seedr).assemble([account])

        assert [e.title for e in playlist.entries] == ["kept.mp4"]

    async def test_unresolved_urls_are_excluded(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.add_folder("tok", 1, "Pack", [video(10, "one.mp4"), video(11, "two.mp4")])
        seedr.urls[11] = "https://cdn/11"

        playlist = await PlaylistAssembler(seedr).assemble([account])

        assert [e.title for e in playlist.entries] == ["two.mp4"]
        assert seedr.resolved == [10, 11]

    async def test_resolution_failure_keeps_earlier_entries(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.add_folder("tok", 1, "Pack", [video(10, "first.mp4"), video(11, "second.mp4")])
        seedr.urls[10] = "https://cdn/10"
        original = seedr.resolve_file_url

        async def flaky(access_token, file_id):
            if file_id == 11:
                raise ProviderRequestError("Failed to get file", 500)
            return await original(access_token, file_id)

        seedr.resolve_file_url = flaky

        playlist = await PlaylistAssembler(seedr).assemble([account])

        assert [e.title for e in playlist.entries] == ["first.mp4"]


class TestAssembleFolder:
    async def test_folder_playlist(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.add_folder("tok", 7, "Pack", [video(70, "a.mp4"), video(71, "b.txt"), video(72, "c.mov")])
        seedr.urls[70] = "https://cdn/70"
        seedr.urls[72] = "https://cdn/72"

        playlist = await PlaylistAssembler(seedr).assemble_folder(account, 7)

        assert playlist.video_count == 2
        assert playlist.content.startswith("#EXTM3U\n#EXTINF:-1,a.mp4\n")

    async def test_folder_without_videos(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.add_folder("tok", 7, "Docs", [video(70, "readme.txt"), video(71, "notes.txt")])

        with pytest.raises(NoContentError):
            await PlaylistAssembler(seedr).assemble_folder(account, 7)
        assert seedr.resolved == []

    async def test_folder_where_nothing_resolves(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.add_folder("tok", 7, "Pack", [video(70, "a.mp4")])

        with pytest.raises(NoContentError):
            await PlaylistAssembler(seedr).assemble_folder(account, 7)

    async def test_folder_errors_propagate(self, seedr, make_identity, make_account) -> None:
        account = make_account(make_identity(), token="tok")
        seedr.broken_folders.add(7)

        with pytest.raises(ProviderRequestError):
            await PlaylistAssembler(seedr).assemble_folder(account, 7)
