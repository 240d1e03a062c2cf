#!/usr/bin/env python
"""Script to run the Taskflow API server."""
import uvicorn

from taskflow.config import HOST, PORT

if __name__ == "__main__":
    uvicorn.run(
        "taskflow.main:app",
        host=HOST,
        port=PORT,
        reload=True
    )
