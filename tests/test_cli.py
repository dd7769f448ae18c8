"""Tests for the command-line demo."""

from unittest.mock import patch

import pytest

from dispatch_advisor.cli import build_parser, run, run_pricing, sample_drop_offs, strip_markdown
from dispatch_advisor.domain.booking import Estimate
from dispatch_advisor.infrastructure.config import Settings
from dispatch_advisor.infrastructure.dispatch_client import DispatchClientError, MockDispatchClient


@pytest.fixture
def mock_settings() -> Settings:
    with patch.dict("os.environ", {"MOCK_LATENCY_SECONDS": "0"}, clear=True):
        return Settings(_env_file=None)


class TestParser:
    """Tests for argument parsing."""

    def test_pricing_defaults(self) -> None:
        args = build_parser().parse_args(["pricing"])
        assert args.command == "pricing"
        assert args.delivery_count == 2
        assert args.tier == "bronze"
        assert args.bulk is False

    def test_pricing_options(self) -> None:
        args = build_parser().parse_args(
            ["pricing", "--delivery-count", "10", "--tier", "gold", "--frequency", "6", "--bulk"]
        )
        assert args.delivery_count == 10
        assert args.tier == "gold"
        assert args.frequency == 6
        assert args.bulk is True

    def test_invalid_tier(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["pricing", "--tier", "platinum"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestHelpers:
    """Tests for output helpers and sample data."""

    def test_strip_markdown(self) -> None:
        text = "## Options\n**Bold** and *italic* with `code`"
        assert strip_markdown(text) == "Options\nBold and italic with code"

    def test_sample_drop_offs_alternate(self) -> None:
        drop_offs = sample_drop_offs(3)
        cities = [drop_off.location.address.city for drop_off in drop_offs]
        assert cities == ["Oakland", "Berkeley", "Oakland"]


class TestCommands:
    """Tests for command execution against the mock client."""

    @pytest.mark.asyncio
    async def test_pricing(self, capsys: pytest.CaptureFixture[str]) -> None:
        args = build_parser().parse_args(["pricing", "--delivery-count", "3"])

        exit_code = await run_pricing(MockDispatchClient(latency=0), args)

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "Base estimate: $45.99" in output
        assert "Best option: Multi-Delivery Discount" in output
        assert "- Loyalty Discount: Requires gold tier" in output

    @pytest.mark.asyncio
    async def test_pricing_without_options(
        self, mock_booking_client, capsys: pytest.CaptureFixture[str]
    ) -> None:
        mock_booking_client.create_estimate.return_value = Estimate()

        exit_code = await run_pricing(mock_booking_client, build_parser().parse_args(["pricing"]))

        assert exit_code == 1
        assert "No delivery options available" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_estimate_failure(
        self, mock_booking_client, mock_settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        mock_booking_client.create_estimate.side_effect = DispatchClientError("unreachable")

        with patch("dispatch_advisor.cli.create_booking_client", return_value=mock_booking_client):
            exit_code = await run(build_parser().parse_args(["estimate"]), mock_settings)

        assert exit_code == 1
        assert "Failed to create estimate: unreachable" in capsys.readouterr().out
        mock_booking_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_order(self, mock_settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = await run(build_parser().parse_args(["order"]), mock_settings)

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "Order ID: ORD-" in output
        assert "Total Cost: $45.99" in output

    @pytest.mark.asyncio
    async def test_status(self, mock_settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = await run(build_parser().parse_args(["status"]), mock_settings)

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "Booking Client: mock" in output
        assert "AI Replies: disabled" in output
