#!/usr/bin/env python
"""Run the taskboard API with uvicorn."""
import os

import uvicorn

from taskboard.logging_setup import setup_logging

if __name__ == "__main__":
    setup_logging()
    uvicorn.run(
        "taskboard.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "false").lower() in ("1", "true", "yes"),
        log_config=None,
    )
