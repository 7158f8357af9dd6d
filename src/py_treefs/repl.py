"""Interactive REPL (Read-Eval-Print Loop) for the file store.

The REPL is the terminal interface.  It loads the configuration, mounts
the store, creates a shell, and enters the classic loop:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the line to ``shell.execute()``.
    3. **Print** — display the result.
    4. **Loop** — repeat until the shell returns the exit sentinel.

Leaving by end-of-input or Ctrl+C still saves the tree, so every way
out of the loop ends with the store rewritten.

The helper functions (``build_prompt``, ``format_banner``) are pure and
testable.  The ``run()`` function is the I/O entrypoint.
"""

import readline
import sys
from pathlib import Path

from py_treefs import __version__
from py_treefs.completer import Completer
from py_treefs.config import ConfigError, load_config
from py_treefs.fs.errors import FsError, StoreUnavailableError
from py_treefs.session import Session
from py_treefs.shell import Shell

_BANNER_WIDTH = 38
_INPUT_PROMPT = "> "


def format_banner(boot_log: list[str]) -> str:
    """Format the startup messages into a displayable banner string.

    Args:
        boot_log: Messages recorded while mounting the store.

    Returns:
        A formatted string suitable for printing to the console.

    """
    border = "=" * _BANNER_WIDTH
    header = (
        f"\n  {border}\n            py-treefs v{__version__}\n"
        f"      An in-memory file store\n  {border}\n\n"
    )
    body = "\n".join(f"  {msg}" for msg in boot_log)
    footer = "\nType 'help' for commands, 'exit' to save and quit.\n"
    return header + body + footer


def build_prompt(shell: Shell) -> str:
    """Build the prompt: the current path, or ``> `` while collecting input.

    Args:
        shell: The shell whose session supplies the current path.

    Returns:
        A prompt string like ``treefs:/docs $ ``.

    """
    if shell.awaiting_input:
        return _INPUT_PROMPT
    return f"treefs:{shell.session.cwd_path} $ "


def final_save(session: Session) -> bool:
    """Save on the way out; a failure is printed but not raised.

    Returns:
        Whether the store was written.

    """
    if not session.config.autosave:
        return False
    try:
        session.save()
    except StoreUnavailableError as e:
        print(f"Error: {e}")  # noqa: T201
        return False
    return True


def run(config_path: Path | None = None) -> None:
    """Mount the store and run the interactive REPL.

    This is the main entrypoint.  It handles:
    - Configuration and store loading (a bad store aborts startup).
    - Shell creation and readline tab completion.
    - The read-eval-print loop.
    - Graceful handling of Ctrl+C and Ctrl+D, with a final save.
    """
    try:
        config = load_config(config_path)
        session = Session.mount(config)
    except (ConfigError, FsError) as e:
        print(f"Startup failed: {e}")  # noqa: T201
        raise SystemExit(1) from e

    shell = Shell(session=session)

    # Wire up tab completion via readline.
    completer = Completer(shell)
    readline.set_completer(completer.complete)
    readline.set_completer_delims(" \t")
    readline.parse_and_bind("tab: complete")

    print(format_banner(session.dmesg()))  # noqa: T201

    exited = False
    try:
        while True:
            try:
                command = input(build_prompt(shell))
            except EOFError:
                # Ctrl+D — graceful exit
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                exited = True
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        # Ctrl+C — graceful exit
        print("\nInterrupted.")  # noqa: T201

    finally:
        # ``exit`` has already saved (or been told not to).
        if not exited:
            final_save(session)
        print("Goodbye!")  # noqa: T201


def main() -> None:
    """Console entry point: ``py-treefs [config.json]``."""
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    run(config_path)
