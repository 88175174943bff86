"""
`python -m provision_toolkit` entrypoint.

The installed console script `provision-toolkit` calls the same
`provision_toolkit.cli:main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
