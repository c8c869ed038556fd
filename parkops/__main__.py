"""Entry point for ``python -m parkops``."""

import asyncio

from parkops.app import main

if __name__ == "__main__":
    asyncio.run(main())
