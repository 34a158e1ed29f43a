"""Command handler functions for CLI operations."""

import os
from typing import Optional

from common.discovery_client import discover_servers
from common.logging_config import get_logger
from cli.models import (
    CommandRequest,
    DeleteCommand,
    DiscoverCommand,
    DownloadAllCommand,
    DownloadCommand,
    ListCommand,
    ServerCommand,
    UploadCommand,
)
from cli.share_client import ShareClient

logger = get_logger(__name__)


_client: Optional[ShareClient] = None
_server_url: Optional[str] = os.environ.get("SHARE_SERVER_URL")


def set_server_url(url: Optional[str]) -> None:
    """
    Point later commands at a different server.

    Args:
        url: Server URL, or None to fall back to discovery
    """
    global _client, _server_url
    if _client is not None:
        _client.close()
        _client = None
    _server_url = url.rstrip('/') if url else None


def get_client() -> ShareClient:
    """
    Get or create global ShareClient instance.

    Without a configured server URL the first server answering a discovery
    broadcast is used.

    Returns:
        ShareClient instance

    Raises:
        ConnectionError: If no server is configured and none answers discovery
    """
    global _client, _server_url
    if _client is None:
        if not _server_url:
            servers = discover_servers()
            if not servers:
                raise ConnectionError("No file share server found on the local network. Use --server URL.")
            _server_url = servers[0].url
            logger.info(f"Using discovered server {servers[0].name} at {_server_url}")
        logger.debug("Creating new ShareClient instance")
        _client = ShareClient(_server_url)
    return _client


def current_server_url() -> Optional[str]:
    """Server URL in use, or None while it is left to discovery."""
    return _server_url


def connect() -> str:
    """
    Settle on a server for the session, discovering one if none is set.

    Returns:
        Status line naming the server, or an error message
    """
    discovering = not _server_url
    try:
        client = get_client()
    except ConnectionError as e:
        return f"Error: {e}"
    except OSError as e:
        return f"Error: Network discovery failed ({e.strerror or e}). Use 'server URL'."
    if discovering:
        return f"Using discovered server: {client.base_url}"
    return f"Using server: {client.base_url}"


def handle_discover(cmd: DiscoverCommand) -> str:
    """
    Handle 'discover' command.

    Returns:
        One line per server found
    """
    servers = discover_servers()
    if not servers:
        return "No file share servers found on the local network."
    lines = [f"Found {len(servers)} server(s):"]
    for server in servers:
        lines.append(f"  {server.name}: {server.url}")
    return '\n'.join(lines)


def handle_list(cmd: ListCommand, client: Optional[ShareClient] = None) -> str:
    """
    Handle 'list' command.

    Args:
        cmd: ListCommand
        client: Optional ShareClient for dependency injection (testing)

    Returns:
        Formatted list of files
    """
    logger.info("Executing list command")
    if client is None:
        client = get_client()
    return client.list_files()


def handle_upload(cmd: UploadCommand, client: Optional[ShareClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file_list
        client: Optional ShareClient for dependency injection (testing)

    Returns:
        Success or error message with upload results
    """
    logger.info(f"Executing upload command: {len(cmd.file_list)} files")
    if client is None:
        client = get_client()
    return client.upload_files(list(cmd.file_list))


def handle_download(cmd: DownloadCommand, client: Optional[ShareClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with storage_name and optional output_path
        client: Optional ShareClient for dependency injection (testing)

    Returns:
        Success or error message with download results
    """
    logger.info(f"Executing download command: storage_name={cmd.storage_name} output_path={cmd.output_path}")
    if client is None:
        client = get_client()
    return client.download(cmd.storage_name, cmd.output_path)


def handle_delete(cmd: DeleteCommand, client: Optional[ShareClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.delete_file(cmd.storage_name)


def handle_download_all(cmd: DownloadAllCommand, client: Optional[ShareClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.download_all(cmd.output_path)


def handle_server(cmd: ServerCommand) -> str:
    """
    Handle 'server' command: show the current server or switch to another.
    """
    if cmd.server_url:
        set_server_url(cmd.server_url)
        return f"Using server: {_server_url}"
    return f"Using server: {_server_url or '(auto-discover)'}"


def dispatch_command(cmd_obj: CommandRequest) -> str:
    """Dispatch parsed command to appropriate handler."""
    try:
        if isinstance(cmd_obj, DiscoverCommand):
            return handle_discover(cmd_obj)
        elif isinstance(cmd_obj, ListCommand):
            return handle_list(cmd_obj)
        elif isinstance(cmd_obj, UploadCommand):
            return handle_upload(cmd_obj)
        elif isinstance(cmd_obj, DownloadCommand):
            return handle_download(cmd_obj)
        elif isinstance(cmd_obj, DeleteCommand):
            return handle_delete(cmd_obj)
        elif isinstance(cmd_obj, DownloadAllCommand):
            return handle_download_all(cmd_obj)
        elif isinstance(cmd_obj, ServerCommand):
            return handle_server(cmd_obj)
        else:
            return f"Unknown command type: {type(cmd_obj)}"
    except ConnectionError as e:
        return f"Error: {e}"
    except OSError as e:
        logger.warning(f"Network error running {type(cmd_obj).__name__}: {e}")
        return f"Error: Network unavailable ({e.strerror or e})"
