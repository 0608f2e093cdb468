"""Tests for FileManager."""

import pytest

from gemini_query.errors import APIError, FileError
from gemini_query.files import FileManager, FileState, parse_file_id

BASE = "https://example.test/v1beta"


def file_json(name="files/abc123", state="ACTIVE", display_name="notes.txt"):
    return {
        "name": name,
        "displayName": display_name,
        "mimeType": "text/plain",
        "sizeBytes": "11",
        "createTime": "2024-01-01T00:00:00Z",
        "updateTime": "2024-01-01T00:00:00Z",
        "uri": f"https://example.test/v1beta/{name}",
        "state": state,
    }


@pytest.fixture
def files(transport, config):
    return FileManager(config=config, transport=transport)


class TestUpload:
    """Tests for the resumable upload."""

    @pytest.mark.asyncio
    async def test_upload_file(self, files, transport, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello world")
        transport.queue({}, headers={"X-Goog-Upload-URL": "https://upload.test/s/1"})
        transport.queue({"file": file_json(state="PROCESSING")})

        info = await files.upload_file(path)

        start, finalize = transport.calls
        assert start.url == "https://example.test/upload/v1beta/files"
        assert start.params == {"key": "test-key"}
        assert start.headers == {
            "X-Goog-Upload-Protocol": "resumable",
            "X-Goog-Upload-Command": "start",
            "X-Goog-Upload-Header-Content-Length": "11",
            "X-Goog-Upload-Header-Content-Type": "text/plain",
        }
        assert start.json == {"file": {"displayName": "notes.txt"}}

        assert finalize.url == "https://upload.test/s/1"
        assert finalize.data == b"hello world"
        assert finalize.headers["X-Goog-Upload-Command"] == "upload, finalize"
        assert finalize.headers["X-Goog-Upload-Offset"] == "0"

        assert info.name == "files/abc123"
        assert info.state is FileState.PROCESSING
        assert info.size_bytes == 11

    @pytest.mark.asyncio
    async def test_unknown_mime_type(self, files, tmp_path):
        path = tmp_path / "blob.unknownext"
        path.write_bytes(b"x")
        with pytest.raises(FileError, match="Unknown MIME type"):
            await files.upload_file(path)

    @pytest.mark.asyncio
    async def test_missing_upload_url(self, files, transport, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello world")
        transport.queue({})
        with pytest.raises(FileError, match="Missing upload URL"):
            await files.upload_file(path, display_name="Notes")

    @pytest.mark.asyncio
    async def test_missing_file(self, files, tmp_path):
        with pytest.raises(FileError):
            await files.upload_file(tmp_path / "nope.txt")


class TestFileOperations:
    @pytest.mark.asyncio
    async def test_get_file_accepts_prefixed_name(self, files, transport):
        transport.queue(file_json())
        info = await files.get_file("files/abc123")
        assert transport.calls[0].url == f"{BASE}/files/abc123"
        assert info.state is FileState.ACTIVE

    @pytest.mark.asyncio
    async def test_list_files_follows_pages(self, files, transport):
        transport.queue({"files": [file_json("files/a")], "nextPageToken": "t"})
        transport.queue({"files": [file_json("files/b")]})
        result = await files.list_files()
        assert [f.name for f in result] == ["files/a", "files/b"]
        assert transport.calls[1].params["pageToken"] == "t"

    @pytest.mark.asyncio
    async def test_list_files_empty(self, files, transport):
        transport.queue({})
        assert await files.list_files() == []

    @pytest.mark.asyncio
    async def test_delete_files_by_display_name(self, files, transport):
        transport.queue(
            {
                "files": [
                    file_json("files/a", display_name="report"),
                    file_json("files/b", display_name="other"),
                    file_json("files/c", display_name="report"),
                ]
            }
        )
        transport.queue(None)
        transport.queue(None)

        assert await files.delete_files_by_display_name("report") == 2
        deletes = [c for c in transport.calls if c.method == "DELETE"]
        assert [c.url for c in deletes] == [f"{BASE}/files/a", f"{BASE}/files/c"]

    @pytest.mark.asyncio
    async def test_delete_error_raises(self, files, transport):
        transport.queue({"error": {}}, status=404)
        with pytest.raises(APIError):
            await files.delete_file("files/gone")


class TestWaitForProcessing:
    @pytest.mark.asyncio
    async def test_becomes_active(self, files, transport):
        transport.queue(file_json(state="PROCESSING"))
        transport.queue(file_json(state="STATE_UNSPECIFIED"))
        transport.queue(file_json(state="ACTIVE"))
        info = await files.wait_for_file_processing("files/abc123", delay=0)
        assert info.state is FileState.ACTIVE
        assert len(transport.calls) == 3

    @pytest.mark.asyncio
    async def test_failed(self, files, transport):
        transport.queue(file_json(state="FAILED"))
        with pytest.raises(FileError, match="processing failed"):
            await files.wait_for_file_processing("files/abc123", delay=0)

    @pytest.mark.asyncio
    async def test_timeout(self, files, transport):
        for _ in range(3):
            transport.queue(file_json(state="PROCESSING"))
        with pytest.raises(FileError, match="Timeout"):
            await files.wait_for_file_processing("files/abc123", max_retries=3, delay=0)


class TestParseFileId:
    def test_strips_prefix(self):
        assert parse_file_id("files/abc") == "abc"
        assert parse_file_id("abc") == "abc"

    def test_rejects_empty(self):
        with pytest.raises(FileError):
            parse_file_id("")
        with pytest.raises(FileError):
            parse_file_id("files/")

    def test_unknown_state_is_unspecified(self):
        assert FileState.parse("SOMETHING_NEW") is FileState.UNSPECIFIED
