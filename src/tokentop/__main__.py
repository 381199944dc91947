"""Entry point for `python -m tokentop`."""

import sys


def main():
    from tokentop.app import run
    sys.exit(run())


if __name__ == "__main__":
    main()
