"""
Entry point to run the cleanup worker on its own (outside the API process).
"""
import asyncio

from dotenv import load_dotenv

# Settings are read at import time, so .env must be loaded first.
load_dotenv(override=True)

from worker.cleanup import main as cleanup_main  # noqa: E402


if __name__ == "__main__":
    asyncio.run(cleanup_main())
