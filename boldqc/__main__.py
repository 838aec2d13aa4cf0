"""
Module entry-point that makes the package runnable with

    python -m boldqc
    python -m boldqc.cli

The behaviour is identical to the *boldqc-cli* console script because the
Click **group** object imported below performs all CLI dispatching.
"""

from boldqc.cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
