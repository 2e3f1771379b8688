"""Tests for the server entry point."""

from __future__ import annotations

from unittest.mock import patch

from portfolio_api import main


def test_run_disables_server_header() -> None:
    with patch.object(main.uvicorn, "run") as uvicorn_run:
        main.run()

    args, kwargs = uvicorn_run.call_args
    assert args == (main.app,)
    assert kwargs["server_header"] is False
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 8000
