"""
Console Front End for Pocket Ledger

This is the entry point users run. It only hands over to the
interactive shell:

    python app/main.py [FILE]

The same shell is installed as the `pocket-ledger` command.
"""

import sys

from pocket_ledger.shell import main


if __name__ == "__main__":
    sys.exit(main())
