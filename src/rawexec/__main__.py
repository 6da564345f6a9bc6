"""Module entry point for `python -m rawexec`."""

from rawexec.cli.main import main

if __name__ == "__main__":
    main()
