"""Development entrypoint for the diceconquest tools."""

from __future__ import annotations

from diceconquest.main import main

if __name__ == "__main__":
    main()
