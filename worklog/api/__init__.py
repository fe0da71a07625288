"""HTTP API for activity sync and timesheet suggestions"""

from __future__ import annotations


def main() -> None:
    """Run the API with uvicorn (console script entry point)."""
    import uvicorn

    from worklog.config import API_HOST, API_PORT

    uvicorn.run("worklog.api.app:app", host=API_HOST, port=API_PORT)
