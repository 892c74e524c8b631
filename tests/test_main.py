"""Tests for the command-line entry point."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from whale_swap_tracker.__main__ import build_parser, main


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        args = build_parser().parse_args([])

        assert args.command == "run"
        assert args.dry_run is None
        assert args.log_level is None

    def test_once_with_flags(self) -> None:
        args = build_parser().parse_args(["--dry-run", "--log-level", "DEBUG", "once"])

        assert args.command == "once"
        assert args.dry_run is True
        assert args.log_level == "DEBUG"

    def test_unknown_command(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["serve"])


class TestMain:
    """Tests for main()."""

    def test_invalid_configuration_exits_with_2(self) -> None:
        with patch(
            "whale_swap_tracker.__main__.get_settings",
            side_effect=ValueError("DATABASE_URL missing"),
        ):
            assert main(["once"]) == 2

    def test_missing_token_exits_with_2(self) -> None:
        settings = MagicMock()
        settings.validate_requirements.side_effect = ValueError("TELEGRAM_BOT_TOKEN is required")
        with patch("whale_swap_tracker.__main__.get_settings", return_value=settings):
            assert main(["run"]) == 2

    def test_aborted_once_exits_with_1(self) -> None:
        settings = MagicMock()
        settings.get_logging_level.return_value = 20
        settings.model_copy.return_value = settings
        report = MagicMock(aborted=True, error="HTTP 502")
        pipeline = MagicMock()
        pipeline.run_once = AsyncMock(return_value=report)

        with (
            patch("whale_swap_tracker.__main__.get_settings", return_value=settings),
            patch("whale_swap_tracker.__main__.Pipeline", return_value=pipeline),
        ):
            assert main(["--dry-run", "once"]) == 1

        settings.model_copy.assert_called_once_with(update={"dry_run": True})

    def test_init_db_unreachable_exits_with_1(self) -> None:
        settings = MagicMock()
        settings.get_logging_level.return_value = 20
        settings.database.url = "postgresql://tracker@db.invalid/whales"
        db = MagicMock()
        db.ping = AsyncMock(return_value=False)
        db.init_schema_async = AsyncMock()
        db.dispose_async = AsyncMock()

        with (
            patch("whale_swap_tracker.__main__.get_settings", return_value=settings),
            patch("whale_swap_tracker.__main__.DatabaseManager", return_value=db),
        ):
            assert main(["init-db"]) == 1

        db.init_schema_async.assert_not_called()
        db.dispose_async.assert_awaited_once()
