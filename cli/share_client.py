"""HTTP client for communicating with a file share server."""

import mimetypes
import time
import uuid
from contextlib import ExitStack
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import httpx

from common.constants import ARCHIVE_FILE_NAME
from common.logging_config import get_logger
from cli.constants import (
    DEFAULT_TIMEOUT,
    DOWNLOAD_CHUNK_SIZE,
    MAX_RETRIES,
    RETRY_BACKOFF_MULTIPLIER,
)
from cli.utils import (
    end_progress,
    filename_from_disposition,
    format_file_size,
    resolve_output_path,
    show_progress,
)

logger = get_logger(__name__)


def _parse_timestamp(value: str) -> datetime:
    # fromisoformat only accepts a trailing 'Z' from Python 3.11 on.
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return datetime.fromisoformat(value)


def _file_endpoint(action: str, storage_name: str) -> str:
    # Display names may contain '#', '%' or spaces.
    return f"/api/{action}/{quote(storage_name, safe='~')}"


class ShareClient:
    """HTTP client for the file share API with retry logic and error handling."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_backoff_multiplier: float = RETRY_BACKOFF_MULTIPLIER,
        transport: Optional[httpx.BaseTransport] = None,
        show_progress: bool = True,
    ):
        """
        Initialize share client.

        Args:
            base_url: Server URL, e.g. http://192.168.1.20:3000
            timeout: Request timeout in seconds
            max_retries: Retries after a network error or 5xx response
            retry_backoff_multiplier: Delay before retry n is multiplier ** n seconds
            transport: Optional httpx transport (tests pass a MockTransport)
            show_progress: Print transfer progress to stdout
        """
        self.base_url = base_url.rstrip('/')
        self.max_retries = max_retries
        self.retry_backoff_multiplier = retry_backoff_multiplier
        self.show_progress = show_progress
        self.session = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport
        )
        self.request_id = None
        logger.info(f"Initialized ShareClient [base_url={self.base_url}]")

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses client default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        max_retries = max_retries if max_retries is not None else self.max_retries
        backoff = self.retry_backoff_multiplier

        last_exception = None

        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                    )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        raise ConnectionError("Cannot connect to file share server. Is it running?")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map HTTP errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            User-friendly error message
        """
        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except (ValueError, AttributeError):
            detail = response.text if response.text else 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'FILE_NOT_FOUND': 'File not found on server.',
            'IO_FAILURE': 'The server could not read or write its shared directory.',
        }

        if code in error_messages:
            return error_messages[code]

        # These carry the file name and limit, which the user needs to see.
        if code in ('UNSUPPORTED_TYPE', 'PAYLOAD_TOO_LARGE', 'TOO_MANY_FILES'):
            return detail

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            413: 'File too large',
            500: 'Server error',
            503: 'Service unavailable',
        }

        message = status_messages.get(response.status_code, detail)
        return f"{message} (Code: {code})" if code != 'UNKNOWN' else message

    def list_files(self) -> str:
        """
        List shared files.

        Returns:
            Formatted table of files, newest first
        """
        try:
            response = self._request_with_retry('GET', '/api/files')
            if response.status_code != 200:
                return f"Error: {self._format_error(response)}"

            files = response.json()['files']
            if not files:
                return "No files shared yet."

            output = [f"Found {len(files)} file(s):\n"]
            for item in files:
                modified = _parse_timestamp(item['modifiedAt']).strftime('%Y-%m-%d %H:%M')
                output.append(f"  {item['displayName']}")
                output.append(f"    Storage name: {item['storageName']}")
                output.append(
                    f"    Size: {format_file_size(item['size'])}  Type: {item['contentType']}  Modified: {modified}"
                )
            return '\n'.join(output)

        except ConnectionError as e:
            return f"Error: {e}"

    def upload_files(self, file_paths: List[str]) -> str:
        """
        Upload local files as one all-or-nothing batch.

        Args:
            file_paths: Paths of local files

        Returns:
            Formatted result message
        """
        errors = []
        paths = []
        for file_path in file_paths:
            path = Path(file_path).expanduser()
            if not path.exists():
                errors.append(f"Error: File not found: {file_path}")
            elif not path.is_file():
                errors.append(f"Error: Not a file: {file_path}")
            else:
                paths.append(path)

        if errors:
            return '\n'.join(errors)

        total_size = sum(p.stat().st_size for p in paths)
        logger.info(f"Uploading {len(paths)} file(s), {total_size} bytes")

        try:
            with ExitStack() as stack:
                files = []
                for path in paths:
                    content_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
                    handle = stack.enter_context(open(path, 'rb'))
                    files.append(('files', (path.name, handle, content_type)))

                # File handles cannot be replayed, so uploads are sent once.
                response = self._request_with_retry('POST', '/api/upload', max_retries=0, files=files)

            if response.status_code != 200:
                return f"Upload failed: {self._format_error(response)}"

            stored = response.json()['files']
            output = [f"Uploaded {len(stored)} file(s):"]
            for item in stored:
                output.append(f"  {item['displayName']} ({format_file_size(item['size'])}) -> {item['storageName']}")
            return '\n'.join(output)

        except ConnectionError as e:
            return f"Error: {e}"
        except OSError as e:
            return f"Error reading file: {e}"

    def delete_file(self, storage_name: str) -> str:
        """
        Delete a shared file.

        Args:
            storage_name: Storage name as shown by list

        Returns:
            Success or error message
        """
        try:
            # Not retried: a resend after a lost reply would report the file as missing.
            response = self._request_with_retry('DELETE', _file_endpoint('delete', storage_name), max_retries=0)
            if response.status_code == 200:
                return f"Deleted: {storage_name}"
            return f"Error: {self._format_error(response)}"
        except ConnectionError as e:
            return f"Error: {e}"

    def download(self, storage_name: str, output_path: Optional[str] = None) -> str:
        """
        Download one file, named after its display name by default.

        Args:
            storage_name: Storage name as shown by list
            output_path: Optional target file or directory

        Returns:
            Success message with download details
        """
        return self._download_to(_file_endpoint('download', storage_name), storage_name, output_path)

    def download_all(self, output_path: Optional[str] = None) -> str:
        """
        Download every shared file as one ZIP archive.

        Args:
            output_path: Optional target file or directory

        Returns:
            Success message with download details
        """
        return self._download_to('/api/download-all', ARCHIVE_FILE_NAME, output_path)

    def _download_to(self, endpoint: str, fallback_name: str, output_path: Optional[str]) -> str:
        try:
            with self.session.stream('GET', endpoint) as response:
                if response.status_code != 200:
                    response.read()
                    return f"Error: {self._format_error(response)}"

                filename = filename_from_disposition(
                    response.headers.get('Content-Disposition'), fallback_name
                )
                output_file = resolve_output_path(output_path, filename)
                total_size = int(response.headers.get('Content-Length', 0))
                downloaded = 0

                with open(output_file, 'wb') as f:
                    for chunk in response.iter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
                        downloaded += len(chunk)
                        if self.show_progress:
                            show_progress(f"Downloading {filename}", downloaded, total_size)

                if self.show_progress:
                    end_progress()

            logger.info(f"Downloaded {endpoint} to {output_file} ({downloaded} bytes)")
            return f"Downloaded: {filename} ({format_file_size(downloaded)})\nSaved to: {output_file.absolute()}"

        except httpx.ConnectError:
            return "Error: Cannot connect to file share server. Is it running?"
        except httpx.TimeoutException:
            return "Error: Request timed out. Server may be overloaded."
        except OSError as e:
            return f"Error writing file: {e}"

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
