"""Entrypoint for running the API in development."""

from __future__ import annotations

import uvicorn

import moblog_auth.runtime as runtime


def main() -> None:
    uvicorn.run(
        "moblog_auth.main:app",
        host=runtime.settings.moblog_app_host,
        port=runtime.settings.moblog_app_port,
        log_level=runtime.settings.moblog_log_level.lower(),
    )


if __name__ == "__main__":
    main()
