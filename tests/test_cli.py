"""Tests for the command line interface"""

import csv
import json
import logging
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from cloudcommit import __version__
from cloudcommit.cli.main import cli
from cloudcommit.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def recs_file(tmp_path):
    path = tmp_path / "recs.json"
    path.write_text(json.dumps([
        {"service": "redshift", "region": "us-east-1", "resource_type": "dc2.large", "count": 2},
        {"service": "redshift", "region": "us-east-1", "resource_type": "ra3.4xlarge", "count": 1},
    ]))
    return path


@pytest.fixture
def redshift_client(fake_client_cls, redshift_catalog):
    return fake_client_cls(pages=redshift_catalog)


@pytest.fixture
def fake_provider(redshift_client):
    provider = MagicMock()
    provider.client_for.return_value = redshift_client
    provider.get_service_client.return_value = redshift_client
    provider.get_default_region.return_value = "us-east-1"
    with patch("cloudcommit.cli.utils.registry.create", return_value=provider) as create:
        provider.create = create
        yield provider


def invoke(runner, temp_config_file, *args):
    return runner.invoke(cli, ["--config", str(temp_config_file), *args])


class TestCLI:
    """Test the top-level group"""

    def test_version_option(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_version_command(self, runner, temp_config_file):
        result = invoke(runner, temp_config_file, "version")
        assert result.exit_code == 0
        assert "cloudcommit" in result.output

    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("purchase:\n  delay_seconds: -1\n")

        result = runner.invoke(cli, ["--config", str(path), "version"])

        assert result.exit_code != 0
        assert "Invalid configuration" in result.output


class TestPurchaseCommand:
    """Test the purchase command"""

    def test_dry_run(self, runner, temp_config_file, recs_file, fake_provider, redshift_client):
        result = invoke(runner, temp_config_file, "purchase", str(recs_file), "--no-skip-duplicates")

        assert result.exit_code == 0, result.output
        assert "DRY RUN" in result.output
        assert "1 of 2 recommendations resolved" in result.output
        assert redshift_client.purchases == []
        fake_provider.create.assert_called_once()
        assert fake_provider.create.call_args.args[0] == "aws"

    def test_live_purchase(self, runner, temp_config_file, tmp_path, fake_provider, redshift_client):
        recs = tmp_path / "recs.json"
        recs.write_text(json.dumps([
            {"service": "redshift", "region": "us-east-1", "resource_type": "dc2.large", "count": 2},
        ]))
        output = tmp_path / "results.csv"

        result = invoke(runner, temp_config_file, "purchase", str(recs), "--no-dry-run", "--yes",
                        "--no-skip-duplicates", "--delay", "0", "-o", str(output))

        assert result.exit_code == 0, result.output
        assert "Successful: 1 / 1" in result.output
        assert len(redshift_client.purchases) == 1
        with open(output) as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["success"] == "True"
        assert rows[0]["reservation_id"] == "rn-1"

    def test_live_purchase_with_failures(self, runner, temp_config_file, recs_file, fake_provider):
        result = invoke(runner, temp_config_file, "purchase", str(recs_file), "--no-dry-run", "--yes",
                        "--no-skip-duplicates", "--delay", "0")

        assert result.exit_code == 1
        assert "Failed: 1" in result.output

    def test_confirmation_declined(self, runner, temp_config_file, recs_file, fake_provider, redshift_client):
        result = runner.invoke(
            cli, ["--config", str(temp_config_file), "purchase", str(recs_file), "--no-dry-run",
                  "--no-skip-duplicates"],
            input="n\n",
        )

        assert result.exit_code == 0
        assert "Purchase cancelled" in result.output
        assert redshift_client.purchases == []

    def test_skips_duplicates(self, runner, temp_config_file, tmp_path, fake_client_cls, redshift_catalog,
                              make_record, fake_provider):
        fake_provider.client_for.return_value = fake_client_cls(
            pages=redshift_catalog,
            commitment_pages=[[make_record(count=2, start_date=datetime.now() - timedelta(hours=1))]],
        )
        recs = tmp_path / "recs.json"
        recs.write_text(json.dumps([
            {"service": "redshift", "region": "us-east-1", "resource_type": "dc2.large", "count": 2},
        ]))

        result = invoke(runner, temp_config_file, "purchase", str(recs))

        assert result.exit_code == 0, result.output
        assert "Dropped 1 recommendations already purchased" in result.output
        assert "Nothing to purchase" in result.output

    def test_invalid_file(self, runner, temp_config_file, tmp_path):
        path = tmp_path / "recs.json"
        path.write_text(json.dumps([{"service": "mainframe", "region": "us-east-1", "resource_type": "x"}]))

        result = invoke(runner, temp_config_file, "purchase", str(path))

        assert result.exit_code != 0
        assert "mainframe" in result.output

    def test_provider_error(self, runner, temp_config_file, recs_file):
        with patch("cloudcommit.cli.utils.registry.create", side_effect=ConfigurationError("no sdk")):
            result = invoke(runner, temp_config_file, "purchase", str(recs_file))

        assert result.exit_code != 0
        assert "no sdk" in result.output


class TestQueryCommands:
    """Test the read-only commands"""

    def test_recommendations(self, runner, temp_config_file, tmp_path, fake_provider, make_recommendation):
        fake_provider.get_recommendations.return_value = [make_recommendation(estimated_savings=250.0)]
        output = tmp_path / "recs.csv"

        result = invoke(runner, temp_config_file, "recommendations", "-s", "redshift", "--term", "3yr",
                        "-r", "us-east-1", "-o", str(output))

        assert result.exit_code == 0, result.output
        assert "Recommendations: 1" in result.output
        assert "$250.00" in result.output
        assert output.exists()
        params = fake_provider.get_recommendations.call_args.args[0]
        assert params.term.value == "3yr"
        assert params.include_regions == ["us-east-1"]

    def test_recommendations_bad_service(self, runner, temp_config_file, fake_provider):
        result = invoke(runner, temp_config_file, "recommendations", "-s", "mainframe")
        assert result.exit_code == 2

    def test_commitments(self, runner, temp_config_file, fake_client_cls, make_record, fake_provider):
        fake_provider.get_service_client.return_value = fake_client_cls(
            commitment_pages=[[make_record(), make_record("rn-2", state="retired")]],
        )

        result = invoke(runner, temp_config_file, "commitments", "-s", "redshift")

        assert result.exit_code == 0, result.output
        assert "Total commitments: 1" in result.output

    def test_offering(self, runner, temp_config_file, fake_provider):
        result = invoke(runner, temp_config_file, "offering", "-s", "redshift", "--resource-type", "dc2.large",
                        "-c", "2")

        assert result.exit_code == 0, result.output
        assert "off-dc2" in result.output
        assert "$2,000.00" in result.output

    def test_resource_types(self, runner, temp_config_file, fake_provider, redshift_client):
        redshift_client.valid_resource_types = ("dc2.large", "ra3.xlplus")

        result = invoke(runner, temp_config_file, "resource-types", "-s", "redshift")

        assert result.exit_code == 0, result.output
        assert "ra3.xlplus" in result.output
        assert "2 resource types for Redshift" in result.output
