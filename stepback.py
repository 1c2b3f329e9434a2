import sys

from stepback.stepback_runtime import ProgramRunner
from stepback.stepback_serialize import load_program_file
from stepback.stepback_datatypes import ProgramFormatError


def main(argv=None):
    """Load a program file, step through it, then inspect the final state."""
    args = sys.argv[1:] if argv is None else argv
    if not args or args[0].startswith("-"):
        print("usage: stepback.py PROGRAM.(json|yaml)", file=sys.stderr)
        raise SystemExit(2)

    file_path = args[0]
    try:
        program = load_program_file(file_path)
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    except OSError as e:
        print(f"Error: cannot read {file_path}: {e.strerror or e}", file=sys.stderr)
        raise SystemExit(1)
    except ProgramFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    runner = ProgramRunner()
    result = runner.run(program)
    if result.status == 'quit':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)

    # Post-mortem: look around the final state before exiting.
    runner.inspect(result.state)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
