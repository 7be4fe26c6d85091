"""Allow running the bootstrap as `python -m newtboot`."""

from newtboot.cli import main

if __name__ == "__main__":
    main()
