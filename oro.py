import sys
from pathlib import Path

from oro.oro_runtime import ScriptRunner

EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_SOFTWARE = 70


# A basic input prompt; replaceable in tests.
def rinput(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def print_effects(result, topic: str = 'stdout'):
    stream = sys.stdout if topic == 'stdout' else sys.stderr
    for effect in result.side_effects:
        if effect.get('topics') == [topic]:
            print(effect.get('message', ''), file=stream)


def run_script_file(file_path: str):
    """Run an Oro script file non-interactively and exit with the matching status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(EX_NOINPUT)
    runner = ScriptRunner(source_dir=str(p.parent.resolve()))
    result = runner.handle_script(source)
    # Output produced before a runtime error is still shown.
    print_effects(result)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(EX_SOFTWARE if result.error_kind in ('runtime', 'internal') else EX_DATAERR)


def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) > 1:
        print("Usage: oro [script]")
        raise SystemExit(EX_USAGE)
    if len(args) == 1:
        run_script_file(args[0])
        return

    print("Oro REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner(source_dir=str(Path.cwd()))
    printer = runner.evaluator.printer

    while True:
        try:
            raw = rinput("> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = runner.handle_script(line)
            print_effects(result)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            if result.value is not None:
                print(printer.stringify(result.value))

        except EOFError:
            print("\nExiting.")
            break


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
