"""
Tests for mfi_config: packaged defaults, YAML overrides, environment
overrides and validation.
"""

from pathlib import Path

import pytest
import yaml

from mfi_config import get_active_config
from mfi_config.loader import merge_dicts, parse_account_def, parse_engine_config
from mfi_modules.loans import LoanConfig
from mfi_modules.loans.models import CalculationMethod


def _write_yaml(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_packaged_defaults(self):
        config = get_active_config(environ={})

        assert config.database.url.startswith("postgresql://")
        assert config.logging.level == "INFO"
        assert config.logging.format == "json"
        assert config.lending.ledger_posting_enabled is True
        assert config.lending.default_calculation_method == "flat"
        assert config.ledger_accounts.loan_portfolio == "1200"

    def test_seed_chart(self):
        config = get_active_config(environ={})

        codes = [a.code for a in config.chart_of_accounts]
        assert codes == ["1000", "1010", "1200", "2100", "3000", "4000", "4100", "5100", "5900"]
        assert config.account_def("1010").parent_code == "1000"
        assert config.account_def("2100").account_type == "liability"
        assert config.account_def("9999") is None

    def test_posting_accounts_exist_in_chart(self):
        config = get_active_config(environ={})
        accounts = config.ledger_accounts
        for code in (accounts.cash, accounts.loan_portfolio, accounts.client_deposits,
                     accounts.interest_income, accounts.fee_income):
            assert config.account_def(code) is not None


class TestOverrides:
    def test_yaml_override_merges(self, tmp_path):
        path = _write_yaml(tmp_path / "site.yaml", {
            "lending": {"default_calculation_method": "diminishing"},
            "database": {"pool_size": 3},
        })

        config = get_active_config(config_path=path, environ={})

        assert config.lending.default_calculation_method == "diminishing"
        assert config.lending.ledger_posting_enabled is True
        assert config.database.pool_size == 3
        assert config.database.url.startswith("postgresql://")

    def test_config_path_from_environment(self, tmp_path):
        path = _write_yaml(tmp_path / "site.yaml", {"lending": {"ledger_posting_enabled": False}})

        config = get_active_config(environ={"MFI_CONFIG_PATH": str(path)})

        assert config.lending.ledger_posting_enabled is False

    def test_override_replaces_chart(self, tmp_path):
        path = _write_yaml(tmp_path / "site.yaml", {
            "chart_of_accounts": [{"code": "1000", "name": "Cash", "type": "asset"}],
        })

        config = get_active_config(config_path=path, environ={})

        assert [a.code for a in config.chart_of_accounts] == ["1000"]

    def test_environment_variables_win(self, tmp_path):
        path = _write_yaml(tmp_path / "site.yaml", {"database": {"url": "postgresql://file/db"}})

        config = get_active_config(
            config_path=path,
            environ={"DATABASE_URL": "sqlite:///env.db", "MFI_LOG_LEVEL": "debug"},
        )

        assert config.database.url == "sqlite:///env.db"
        assert config.logging.level == "DEBUG"

    def test_missing_override_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(config_path=tmp_path / "absent.yaml", environ={})

    def test_load_is_logged(self, captured_logs):
        get_active_config(environ={})
        record = next(r for r in captured_logs() if r["message"] == "config_loaded")
        assert record["account_count"] == 9


class TestValidation:
    def test_unknown_calculation_method(self, tmp_path):
        path = _write_yaml(tmp_path / "bad.yaml", {"lending": {"default_calculation_method": "balloon"}})
        with pytest.raises(ValueError, match="balloon"):
            get_active_config(config_path=path, environ={})

    def test_unknown_log_format(self, tmp_path):
        path = _write_yaml(tmp_path / "bad.yaml", {"logging": {"format": "xml"}})
        with pytest.raises(ValueError, match="xml"):
            get_active_config(config_path=path, environ={})

    def test_unknown_account_type(self):
        with pytest.raises(ValueError, match="suspense"):
            parse_account_def({"code": "9000", "name": "Suspense", "type": "suspense"})

    def test_database_url_required(self):
        with pytest.raises(KeyError):
            parse_engine_config({"database": {}})

    def test_numeric_codes_become_strings(self):
        account = parse_account_def({"code": 1000, "name": "Cash", "type": "asset", "parent": 900})
        assert (account.code, account.parent_code) == ("1000", "900")


class TestMergeDicts:
    def test_nested_merge_does_not_mutate(self):
        base = {"a": {"x": 1, "y": 2}, "b": [1, 2]}
        merged = merge_dicts(base, {"a": {"y": 3}, "b": [9]})

        assert merged == {"a": {"x": 1, "y": 3}, "b": [9]}
        assert base == {"a": {"x": 1, "y": 2}, "b": [1, 2]}


class TestLoanConfig:
    def test_from_engine_config(self, tmp_path):
        path = _write_yaml(tmp_path / "site.yaml", {
            "lending": {"default_calculation_method": "diminishing"},
            "ledger_accounts": {"client_deposits": "2200"},
        })

        loan_config = LoanConfig.from_engine_config(get_active_config(config_path=path, environ={}))

        assert loan_config.default_calculation_method is CalculationMethod.DIMINISHING
        assert loan_config.accounts.client_deposits == "2200"
        assert loan_config.accounts.cash == "1000"

    def test_blank_account_code_rejected(self, tmp_path):
        path = _write_yaml(tmp_path / "site.yaml", {"ledger_accounts": {"cash": " "}})
        with pytest.raises(ValueError, match="cash"):
            LoanConfig.from_engine_config(get_active_config(config_path=path, environ={}))
