import argparse
import sys
from pathlib import Path

from slat.slat_marshal import ValueType
from slat.slat_printer import Printer
from slat.slat_pyhost import PythonHost
from slat.slat_runtime import Session
from slat.slat_serialize import serialize


class Console:
    """Runs SLAT against the current process and prints results."""

    def __init__(self, session: Session, fmt: str = 'text'):
        self.session = session
        self.fmt = fmt
        self.printer = Printer()

    def _render(self, value) -> str:
        if self.fmt == 'text':
            return self.printer.pformat(value)
        return serialize(value, fmt=self.fmt).rstrip("\n")

    def run_command(self, line: str) -> bool:
        """Handles one console line; returns False when an error was reported."""
        if line.startswith(":fields "):
            return self._enumerate(self.session.static_fields, line[len(":fields "):].strip())
        if line.startswith(":object "):
            arg = line[len(":object "):].strip()
            try:
                object_id = int(arg)
            except ValueError:
                print(f"Error: object id must be an integer, got {arg!r}", file=sys.stderr)
                return False
            return self._enumerate(self.session.object_fields, object_id)

        result = self.session.handle_script(line)
        if result.error:
            print(result.format_error(), file=sys.stderr)
            return False
        if self.fmt != 'text':
            print(self._render(result))
        elif result.result.value_type is not ValueType.NOT_PRESENT:
            print(self._render(result.result))
        return True

    def _enumerate(self, fetch, arg) -> bool:
        try:
            fields = fetch(arg)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            return False
        if fields:
            print(self._render(fields))
        return True


def run_script_file(console: Console, file_path: str):
    """Run a SLAT script file non-interactively and exit with appropriate status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    if not console.run_command(source):
        raise SystemExit(1)


def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    ap = argparse.ArgumentParser(prog="slat", description="SLAT console for the running Python process")
    ap.add_argument("script", nargs="?", help="script file to run instead of the interactive console")
    ap.add_argument("--format", choices=("text", "json", "yaml"), default="text",
                    help="how results are printed")
    args = ap.parse_args(argv)

    session = Session(PythonHost())
    console = Console(session, args.format)
    try:
        if args.script:
            run_script_file(console, args.script)
            return

        print("SLAT REPL v0.1")
        print("Type 'exit' or press Ctrl+D to quit.")
        while True:
            try:
                line = input(">> ").strip()
            except EOFError:
                print("\nExiting.")
                break
            if not line:
                continue
            if line == "exit":
                break
            console.run_command(line)
    except KeyboardInterrupt:
        print("\nExiting.")
    finally:
        session.close()


if __name__ == "__main__":
    main()
