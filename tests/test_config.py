"""
Tests for utils/config.py - Configuration loading and token persistence.
"""

import os
import pytest
import yaml
from unittest.mock import patch

from utils.config import (
    credentials_from_config,
    get_config_section,
    get_primary_service,
    get_service_config,
    get_tracking_config,
    load_config,
    save_tokens,
)
from utils.tokens import Credentials


def write_yaml(path, data):
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f)


class TestGetConfigSection:
    """Tests for get_config_section function."""

    def test_returns_lowercase_key(self):
        """Test returns section with lowercase key."""
        config = {'simkl': {'client_id': 'abc'}}
        assert get_config_section(config, 'simkl') == {'client_id': 'abc'}

    def test_returns_uppercase_key(self):
        """Test returns section with uppercase key."""
        config = {'TRAKT': {'client_id': 'abc'}}
        assert get_config_section(config, 'trakt') == {'client_id': 'abc'}

    def test_returns_default_if_not_found(self):
        """Test returns default if key not found."""
        assert get_config_section({}, 'simkl', {'x': 1}) == {'x': 1}

    def test_none_section_returns_default(self):
        assert get_config_section({'simkl': None}, 'simkl') == {}


class TestLoadConfig:
    """Tests for load_config function."""

    def test_merges_module_files(self, tmp_path):
        """Test simkl.yml values override the main config section."""
        write_yaml(tmp_path / 'config.yml', {
            'primary_service': 'simkl',
            'simkl': {'client_id': 'from_main', 'redirect_uri': 'app://cb'},
        })
        write_yaml(tmp_path / 'simkl.yml', {'client_id': 'from_module', 'access_token': 'tok'})

        with patch.dict(os.environ, {}, clear=True):
            config = load_config(str(tmp_path / 'config.yml'), verbose=False)

        assert config['simkl'] == {
            'client_id': 'from_module',
            'redirect_uri': 'app://cb',
            'access_token': 'tok',
        }

    def test_env_overrides(self, tmp_path):
        """Test environment variables win over file values."""
        write_yaml(tmp_path / 'config.yml', {'trakt': {'client_id': 'file'}})

        with patch.dict(os.environ, {'TRAKT_CLIENT_ID': 'env_id', 'SIMKL_CLIENT_SECRET': 'env_secret'}):
            config = load_config(str(tmp_path / 'config.yml'), verbose=False)

        assert config['trakt']['client_id'] == 'env_id'
        assert config['simkl']['client_secret'] == 'env_secret'

    def test_empty_file(self, tmp_path):
        (tmp_path / 'config.yml').write_text('')
        with patch.dict(os.environ, {}, clear=True):
            assert load_config(str(tmp_path / 'config.yml'), verbose=False) == {}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'missing.yml'), verbose=False)

    def test_verbose_prints(self, tmp_path, capsys):
        write_yaml(tmp_path / 'config.yml', {})
        write_yaml(tmp_path / 'trakt.yml', {'client_id': 'x'})

        with patch.dict(os.environ, {}, clear=True):
            load_config(str(tmp_path / 'config.yml'))

        out = capsys.readouterr().out
        assert "Successfully loaded configuration" in out
        assert "Loaded trakt.yml" in out


class TestGetPrimaryService:
    """Tests for get_primary_service function."""

    def test_defaults_to_simkl(self):
        assert get_primary_service({}) == 'simkl'

    def test_case_insensitive(self):
        assert get_primary_service({'primary_service': 'Trakt'}) == 'trakt'

    def test_unsupported_raises(self):
        with pytest.raises(ValueError):
            get_primary_service({'primary_service': 'letterboxd'})


class TestGetServiceConfig:
    """Tests for get_service_config function."""

    def test_placeholders_are_unset(self):
        config = {'simkl': {'client_id': 'YOUR_SIMKL_CLIENT_ID', 'client_secret': ''}}
        result = get_service_config(config, 'simkl')
        assert result['client_id'] is None
        assert result['client_secret'] is None

    def test_reads_tokens(self):
        config = {'trakt': {
            'client_id': 'id', 'client_secret': 'secret',
            'access_token': 'a', 'refresh_token': 'r', 'token_expires_at': '1700000000.5',
        }}
        result = get_service_config(config, 'trakt')
        assert result['access_token'] == 'a'
        assert result['refresh_token'] == 'r'
        assert result['token_expires_at'] == 1700000000.5
        assert result['redirect_uri'] is None

    def test_bad_expiry_is_none(self):
        result = get_service_config({'trakt': {'token_expires_at': 'soon'}}, 'trakt')
        assert result['token_expires_at'] is None

    def test_credentials_from_config(self):
        creds = credentials_from_config({'access_token': 'a', 'refresh_token': None,
                                         'token_expires_at': 5.0})
        assert creds == Credentials('a', None, 5.0)


class TestGetTrackingConfig:
    """Tests for get_tracking_config function."""

    def test_defaults_to_both(self):
        assert get_tracking_config({}) == {'movies': True, 'tv_shows': True}

    def test_reads_toggles(self):
        config = {'tracking': {'movies': False}}
        assert get_tracking_config(config) == {'movies': False, 'tv_shows': True}


class TestSaveTokens:
    """Tests for save_tokens function."""

    def test_keeps_existing_keys(self, tmp_path):
        """Test client settings survive a token save."""
        write_yaml(tmp_path / 'simkl.yml', {'client_id': 'id', 'client_secret': 'secret'})

        path = save_tokens(str(tmp_path), 'simkl', Credentials('a', 'r', 123.0))

        with open(path, encoding='utf-8') as f:
            saved = yaml.safe_load(f)
        assert saved == {
            'client_id': 'id',
            'client_secret': 'secret',
            'access_token': 'a',
            'refresh_token': 'r',
            'token_expires_at': 123.0,
        }

    def test_creates_file(self, tmp_path):
        path = save_tokens(str(tmp_path / 'new'), 'trakt', Credentials('a'))
        assert path.endswith('trakt.yml')
        assert os.path.exists(path)

    def test_cleared_tokens_written_as_null(self, tmp_path):
        path = save_tokens(str(tmp_path), 'trakt', Credentials())
        with open(path, encoding='utf-8') as f:
            saved = yaml.safe_load(f)
        assert saved['access_token'] is None

    def test_round_trip_through_load(self, tmp_path):
        """Test saved tokens are picked up by the next load."""
        write_yaml(tmp_path / 'config.yml', {'primary_service': 'trakt'})
        save_tokens(str(tmp_path), 'trakt', Credentials('a', 'r', 99.0))

        with patch.dict(os.environ, {}, clear=True):
            config = load_config(str(tmp_path / 'config.yml'), verbose=False)

        result = get_service_config(config, 'trakt')
        assert (result['access_token'], result['refresh_token'], result['token_expires_at']) == ('a', 'r', 99.0)
