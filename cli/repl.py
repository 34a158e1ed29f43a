"""REPL with prompt_toolkit for user interaction."""

from urllib.parse import urlparse

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.shortcuts import clear

from cli import commands
from cli.constants import (
    AUTO_DISCOVER_LABEL,
    COMMANDS,
    HELP_TEXT,
    PROMPT_TEMPLATE,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.parser import ParseError, parse_command


def prompt_message():
    """Prompt showing host:port of the active server."""
    url = commands.current_server_url()
    server = (urlparse(url).netloc or url) if url else AUTO_DISCOVER_LABEL
    return [("class:prompt", PROMPT_TEMPLATE.format(server=server))]


def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit."""
    session: PromptSession = PromptSession(
        completer=WordCompleter(COMMANDS, ignore_case=True),
        history=InMemoryHistory(),
        style=STYLE,
    )

    print(WELCOME_TITLE)
    print(commands.connect())
    print(WELCOME_HELP)

    while True:
        try:
            # Callable message, so a 'server' switch shows up immediately.
            user_input = session.prompt(prompt_message).strip()

            if not user_input:
                continue
            if user_input == "exit":
                print("Goodbye!")
                break
            if user_input == "help":
                print(HELP_TEXT)
                continue
            if user_input == "clear":
                clear()
                continue

            print(commands.dispatch_command(parse_command(user_input)))

        except ParseError as e:
            print(f"Error: {e}")
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break
