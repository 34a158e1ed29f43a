"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["discover", "list", "upload", "download", "delete", "download-all", "server", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E9E5B bold",
        "command": "#0088ff bold",
    }
)

GREEN = "\033[92m"
RESET = "\033[0m"

WELCOME_TITLE = "LAN File Share CLI"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEMPLATE = "share [{server}]> "
AUTO_DISCOVER_LABEL = "auto"

HELP_TEXT = """Available commands:
  discover                               Find file share servers on the local network
  list                                   List shared files, newest first
  upload <file> [<file> ...]             Upload one or more files as a single batch
  download <storage_name> [output_path]  Download a file (default: current directory)
  delete <storage_name>                  Delete a shared file
  download-all [output_path]             Download every file as one ZIP archive
  server [url]                           Show or change the server in use
  clear                                  Clear the screen
  help                                   Show this help
  exit                                   Exit REPL

Storage names are shown by 'list'.
Examples:
  discover
  upload report.pdf photo.jpg
  download 1700000000000~report.pdf
  download-all backup.zip
  server http://192.168.1.20:3000"""

DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
RETRY_BACKOFF_MULTIPLIER = 2
DOWNLOAD_CHUNK_SIZE = 64 * 1024
