from __future__ import annotations

import logging
import os
import sys
from dotenv import load_dotenv

# Make the src/ packages importable when run from a checkout.
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from interface.api import app
from interface.cli import main as cli_main


def serve() -> None:
    import uvicorn

    uvicorn.run(app, host=os.getenv("BUDGET_HOST", "127.0.0.1"), port=int(os.getenv("BUDGET_PORT", "8000")))


if __name__ == "__main__":
    if sys.argv[1:2] == ["serve"]:
        serve()
    else:
        cli_main()
