"""
Tests for signoff_config loading and validation.
"""

import pytest
import yaml

from signoff_config import DATABASE_URL_ENV, get_active_config
from signoff_config.loader import compute_checksum, load_workflow_config
from signoff_kernel.domain.signature import SignatureStatus, SignerRole


def _write(tmp_path, data):
    path = tmp_path / "signoff.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def _base():
    return {
        "config_id": "test-signoff",
        "version": 3,
        "required_roles": ["ADVISOR", "COORDINATOR"],
    }


class TestDefaultConfig:
    def test_loads_defaults(self, monkeypatch):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)

        config = get_active_config()

        assert config.config_id == "thesis-defense-signoff"
        assert config.required_roles == (SignerRole.ADVISOR, SignerRole.COORDINATOR)
        assert config.notifications.on_reject
        assert config.notifications.on_reconsideration
        assert config.replacement.allowed_source_statuses == (
            SignatureStatus.REJECTED,
            SignatureStatus.APPROVED,
        )
        assert config.database.url == "sqlite:///signoff.db"
        assert config.log_level == "INFO"
        assert len(config.checksum) == 64

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://signoff@db/signoff")

        config = get_active_config()

        assert config.database.url == "postgresql://signoff@db/signoff"

    def test_load_is_logged(self, monkeypatch, captured_logs):
        monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
        get_active_config()

        [record] = [r for r in captured_logs() if r["message"] == "signoff_config_loaded"]
        assert record["config_id"] == "thesis-defense-signoff"
        assert record["database_url_overridden"] is False


class TestLoader:
    def test_minimal_file(self, tmp_path):
        config = load_workflow_config(_write(tmp_path, _base()))

        assert config.version == 3
        assert config.notifications.dispatch_workers == 2
        assert config.database.url == "sqlite:///:memory:"

    def test_checksum_is_deterministic(self, tmp_path):
        first = load_workflow_config(_write(tmp_path, _base()))
        second = load_workflow_config(_write(tmp_path, _base()))

        assert first.checksum == second.checksum
        assert compute_checksum({"b": 1, "a": 2}) == compute_checksum({"a": 2, "b": 1})

    def test_checksum_tracks_content(self, tmp_path):
        changed = dict(_base(), version=4)

        assert compute_checksum(_base()) != compute_checksum(changed)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_missing_required_key(self, tmp_path):
        data = _base()
        del data["required_roles"]

        with pytest.raises(KeyError):
            load_workflow_config(_write(tmp_path, data))

    @pytest.mark.parametrize(
        "override, message",
        [
            ({"required_roles": []}, "at least one role"),
            ({"required_roles": ["ADVISOR", "ADVISOR"]}, "duplicates"),
            ({"replacement": {"allowed_source_statuses": ["PENDING"]}}, "cannot be replaced"),
            ({"notifications": {"dispatch_workers": 0}}, "dispatch_workers"),
        ],
    )
    def test_invalid_values(self, tmp_path, override, message):
        data = dict(_base(), **override)

        with pytest.raises(ValueError, match=message):
            load_workflow_config(_write(tmp_path, data))

    def test_unknown_role(self, tmp_path):
        data = dict(_base(), required_roles=["DEAN"])

        with pytest.raises(ValueError):
            load_workflow_config(_write(tmp_path, data))
