import sys

from vibeagent.cli.handlers import main as run_main
from shared.errors import AgentError


def main():
    try:
        return run_main()
    except AgentError as exc:
        print("error:", exc, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
