"""Command parser for CLI input."""

import shlex
from typing import Sequence, Union

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


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(user_input: Union[str, Sequence[str]]) -> CommandRequest:
    """Parse user input into a command object.

    Args:
        user_input: Raw REPL line, or already split command-line arguments

    Returns:
        One of the command dataclasses in cli.models

    Raises:
        ParseError: If command syntax is invalid
    """
    if isinstance(user_input, str):
        try:
            tokens = shlex.split(user_input)
        except ValueError as e:
            raise ParseError(f"Invalid syntax: {e}")
    else:
        tokens = list(user_input)

    if not tokens:
        raise ParseError("Empty command")

    command_name, args = tokens[0], tokens[1:]

    if command_name == "discover":
        _expect_no_args(command_name, args)
        return DiscoverCommand()
    elif command_name == "list":
        _expect_no_args(command_name, args)
        return ListCommand()
    elif command_name == "upload":
        return _parse_upload(args)
    elif command_name == "download":
        return _parse_download(args)
    elif command_name == "delete":
        return _parse_delete(args)
    elif command_name == "download-all":
        return _parse_download_all(args)
    elif command_name == "server":
        return _parse_server(args)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _expect_no_args(command_name: str, args: list[str]) -> None:
    if args:
        raise ParseError(f"{command_name} takes no arguments")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <file> [<file> ...]' command."""
    if not args:
        raise ParseError("upload requires at least one file")
    return UploadCommand(file_list=tuple(args))


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <storage_name> [output_path]' command."""
    if not 1 <= len(args) <= 2:
        raise ParseError("download requires 1 or 2 arguments: <storage_name> [output_path]")
    return DownloadCommand(storage_name=args[0], output_path=args[1] if len(args) > 1 else None)


def _parse_delete(args: list[str]) -> DeleteCommand:
    """Parse 'delete <storage_name>' command."""
    if len(args) != 1:
        raise ParseError("delete requires exactly 1 argument: <storage_name>")
    return DeleteCommand(storage_name=args[0])


def _parse_download_all(args: list[str]) -> DownloadAllCommand:
    if len(args) > 1:
        raise ParseError("download-all takes at most 1 argument: [output_path]")
    return DownloadAllCommand(output_path=args[0] if args else None)


def _parse_server(args: list[str]) -> ServerCommand:
    if len(args) > 1:
        raise ParseError("server takes at most 1 argument: [url]")
    return ServerCommand(server_url=args[0] if args else None)
