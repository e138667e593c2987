"""Tests for safemysql.config and safemysql.helpers modules."""

import os
import logging
import pytest
from unittest.mock import patch
from pydantic import ValidationError

from safemysql import (
    ConnectionOptions,
    InvalidOptionError,
    choose_allowed,
    keep_allowed_keys,
    load_options,
    setup_logging,
)


@pytest.fixture(autouse=True)
def no_dotenv():
    """Keep a developer's .env file out of the tests."""
    with patch("safemysql.config.load_dotenv"):
        yield


class TestConnectionOptions:
    """Tests for ConnectionOptions model."""

    def test_defaults(self):
        """Test default connection settings."""
        options = ConnectionOptions()
        assert options.host == "localhost"
        assert options.user == "root"
        assert options.password == ""
        assert options.database == "test"
        assert options.port is None
        assert options.charset == "utf8"

    def test_extra_fields_rejected(self):
        """Test that unknown options are rejected."""
        with pytest.raises(ValidationError):
            ConnectionOptions(hostname="typo")

    def test_empty_charset_rejected(self):
        """Test blank charset is invalid."""
        with pytest.raises(ValidationError):
            ConnectionOptions(charset="  ")

    def test_invalid_port_rejected(self):
        """Test out of range port is invalid."""
        with pytest.raises(ValidationError):
            ConnectionOptions(port=70000)

    def test_connect_kwargs_socket(self):
        """Test socket and port are only passed when set."""
        kwargs = ConnectionOptions(unix_socket="/run/mysqld/mysqld.sock").connect_kwargs()
        assert kwargs["unix_socket"] == "/run/mysqld/mysqld.sock"
        assert "port" not in kwargs
        assert "charset" not in kwargs


class TestLoadOptions:
    """Tests for load_options."""

    def test_from_environment(self):
        """Test MYSQL_* variables are read."""
        env = {
            "MYSQL_HOST": "db.internal",
            "MYSQL_USER": "app",
            "MYSQL_PASSWORD": "secret",
            "MYSQL_DATABASE": "shop",
            "MYSQL_PORT": "3307",
            "MYSQL_CHARSET": "utf8mb4",
        }
        with patch.dict(os.environ, env, clear=True):
            options = load_options()
        assert options.host == "db.internal"
        assert options.user == "app"
        assert options.database == "shop"
        assert options.port == 3307
        assert options.charset == "utf8mb4"

    def test_defaults_without_environment(self):
        """Test defaults apply when nothing is set."""
        with patch.dict(os.environ, {}, clear=True):
            options = load_options()
        assert options == ConnectionOptions()

    def test_yaml_overrides_environment(self, tmp_path):
        """Test file values win over environment values."""
        path = tmp_path / "db.yaml"
        path.write_text("host: yaml-host\nport: 3310\n")
        with patch.dict(os.environ, {"MYSQL_HOST": "env-host", "MYSQL_USER": "app"}, clear=True):
            options = load_options(str(path))
        assert options.host == "yaml-host"
        assert options.port == 3310
        assert options.user == "app"

    def test_empty_yaml(self, tmp_path):
        """Test empty file leaves environment values."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with patch.dict(os.environ, {"MYSQL_DATABASE": "shop"}, clear=True):
            options = load_options(str(path))
        assert options.database == "shop"

    def test_yaml_must_be_mapping(self, tmp_path):
        """Test list document is rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("- host\n- user\n")
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(InvalidOptionError, match="mapping"):
                load_options(str(path))

    def test_yaml_unknown_key(self, tmp_path):
        """Test typos in file are caught by validation."""
        path = tmp_path / "typo.yaml"
        path.write_text("hots: localhost\n")
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                load_options(str(path))


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_level_applied(self):
        """Test basicConfig receives the requested level."""
        with patch("safemysql.config.logging.basicConfig") as basic_config:
            setup_logging("debug")
        assert basic_config.call_args.kwargs["level"] == logging.DEBUG


class TestWhitelistHelpers:
    """Tests for choose_allowed and keep_allowed_keys."""

    def test_choose_allowed_match(self):
        """Test matching candidate returns the allowed variant."""
        assert choose_allowed("name", ["name", "price"]) == "name"

    def test_choose_allowed_default(self):
        """Test default False when nothing matches."""
        assert choose_allowed("1; DROP", ["ASC", "DESC"]) is False

    def test_choose_allowed_custom_default(self):
        """Test custom default is returned."""
        assert choose_allowed(None, ["ASC", "DESC"], default="ASC") == "ASC"

    def test_choose_allowed_returns_stored_variant(self):
        """Test the element from the allowed list is returned."""
        assert choose_allowed(1.0, [1, 2]) == 1
        assert type(choose_allowed(1.0, [1, 2])) is int

    def test_keep_allowed_keys(self):
        """Test disallowed keys are dropped and order kept."""
        data = {"title": "t", "is_admin": 1, "body": "b"}
        assert keep_allowed_keys(data, ["body", "title"]) == {"title": "t", "body": "b"}
        assert list(keep_allowed_keys(data, ["body", "title"])) == ["title", "body"]

    def test_keep_allowed_keys_does_not_mutate(self):
        """Test source mapping is left untouched."""
        data = {"a": 1, "b": 2}
        keep_allowed_keys(data, ["a"])
        assert data == {"a": 1, "b": 2}
