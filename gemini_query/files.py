"""File upload and management for the Gemini Files API."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Union

from gemini_query.config import ClientConfig, resolve_config
from gemini_query.errors import FileError
from gemini_query.transport import HTTPTransport, get_default_transport

logger = logging.getLogger(__name__)


class FileState(str, Enum):
    UNSPECIFIED = "STATE_UNSPECIFIED"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, value: Union[str, None]) -> "FileState":
        try:
            return cls(value)
        except ValueError:
            return cls.UNSPECIFIED


@dataclass
class FileInfo:
    name: str
    uri: str = ""
    mime_type: str = ""
    size_bytes: int = 0
    state: FileState = FileState.UNSPECIFIED
    display_name: Union[str, None] = None
    create_time: Union[str, None] = None
    update_time: Union[str, None] = None
    expiration_time: Union[str, None] = None
    sha256_hash: Union[str, None] = None
    error: Union[dict[str, Any], None] = None
    video_metadata: Union[dict[str, Any], None] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileInfo":
        return cls(
            name=data["name"],
            uri=data.get("uri", ""),
            mime_type=data.get("mimeType", ""),
            size_bytes=int(data.get("sizeBytes") or 0),
            state=FileState.parse(data.get("state")),
            display_name=data.get("displayName"),
            create_time=data.get("createTime"),
            update_time=data.get("updateTime"),
            expiration_time=data.get("expirationTime"),
            sha256_hash=data.get("sha256Hash"),
            error=data.get("error"),
            video_metadata=data.get("videoMetadata"),
        )


def parse_file_id(file_id: str) -> str:
    """Return the bare id of a file given as "files/<id>" or "<id>"."""
    stripped = file_id.removeprefix("files/")
    if not stripped:
        raise FileError("File ID must not be empty")
    return stripped


class FileManager:
    """Upload, inspect and delete files for use in prompts."""

    def __init__(
        self,
        api_key: Union[str, None] = None,
        *,
        config: Union[ClientConfig, None] = None,
        transport: Union[HTTPTransport, None] = None,
    ) -> None:
        self.config = resolve_config(api_key, config)
        self._owns_transport = transport is None
        self.transport = transport or get_default_transport(self.config.timeout)

    @property
    def _params(self) -> dict[str, str]:
        return {"key": self.config.api_key}

    def _file_url(self, name: str) -> str:
        return f"{self.config.api_url}/files/{parse_file_id(name)}"

    async def upload_file(
        self,
        path: Union[str, Path],
        display_name: Union[str, None] = None,
        mime_type: Union[str, None] = None,
    ) -> FileInfo:
        """Upload a local file using the resumable upload protocol.

        Args:
            path: File to upload.
            display_name: Name shown in listings. Defaults to the file name.
            mime_type: MIME type. Guessed from the extension when omitted.

        Returns:
            The remote file, usually still PROCESSING.

        Raises:
            FileError: If the file cannot be read, its type is unknown or
                the upload is rejected.
        """
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise FileError(f"Failed to read file {path}: {exc}") from exc

        mime_type = mime_type or mimetypes.guess_type(path.name)[0]
        if not mime_type:
            raise FileError(f"Unknown MIME type for {path}")

        start_url = (
            f"{self.config.base_url.rstrip('/')}/upload/{self.config.api_version}/files"
        )
        start_headers = {
            "X-Goog-Upload-Protocol": "resumable",
            "X-Goog-Upload-Command": "start",
            "X-Goog-Upload-Header-Content-Length": str(len(content)),
            "X-Goog-Upload-Header-Content-Type": mime_type,
        }
        metadata = {"file": {"displayName": display_name or path.name}}

        logger.debug("Starting upload of %s (%d bytes)", path, len(content))
        resp = await self.transport.request(
            "POST", start_url, params=self._params, json=metadata, headers=start_headers
        )
        if not resp.ok:
            raise FileError(f"Upload start failed with status {resp.status}: {resp.text}")
        upload_url = resp.header("x-goog-upload-url")
        if not upload_url:
            raise FileError("Missing upload URL")

        finalize_headers = {
            "Content-Length": str(len(content)),
            "X-Goog-Upload-Offset": "0",
            "X-Goog-Upload-Command": "upload, finalize",
        }
        resp = await self.transport.request(
            "POST", upload_url, data=content, headers=finalize_headers
        )
        if not resp.ok:
            raise FileError(f"Upload failed with status {resp.status}: {resp.text}")

        try:
            file_info = FileInfo.from_dict(resp.json()["file"])
        except (KeyError, TypeError) as exc:
            raise FileError(f"Failed to parse response: {exc}. Response: {resp.text}") from exc
        logger.info("Uploaded %s as %s", path, file_info.name)
        return file_info

    async def get_file(self, name: str) -> FileInfo:
        data = await self.transport.get(self._file_url(name), params=self._params)
        return FileInfo.from_dict(data)

    async def list_files(self, page_size: Union[int, None] = None) -> list[FileInfo]:
        """List every uploaded file, following pagination."""
        files: list[FileInfo] = []
        params = dict(self._params)
        if page_size is not None:
            params["pageSize"] = str(page_size)
        while True:
            data = await self.transport.get(f"{self.config.api_url}/files", params=params)
            files.extend(FileInfo.from_dict(f) for f in data.get("files", []))
            token = data.get("nextPageToken")
            if not token:
                return files
            params["pageToken"] = token

    async def delete_file(self, name: str) -> None:
        await self.transport.delete(self._file_url(name), params=self._params)
        logger.info("Deleted file %s", name)

    async def delete_files_by_display_name(self, display_name: str) -> int:
        """Delete every file with the given display name; returns how many."""
        deleted = 0
        for file_info in await self.list_files():
            if file_info.display_name == display_name:
                await self.delete_file(file_info.name)
                deleted += 1
        return deleted

    async def wait_for_file_processing(
        self, name: str, max_retries: int = 10, delay: float = 1.0
    ) -> FileInfo:
        """Poll a file until it is ACTIVE.

        Raises:
            FileError: If processing fails or the file is still not active
                after `max_retries` checks.
        """
        for _ in range(max_retries):
            file_info = await self.get_file(name)
            if file_info.state is FileState.ACTIVE:
                return file_info
            if file_info.state is FileState.FAILED:
                raise FileError(f"File {name} processing failed")
            logger.debug("File %s is %s; waiting %.1fs", name, file_info.state.value, delay)
            await asyncio.sleep(delay)
        raise FileError(f"Timeout waiting for file {name} to process")

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    async def __aenter__(self) -> "FileManager":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

