"""
Tests for environment configuration
"""

import pytest

from config import (
    Config,
    ConfigurationError,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
)


class TestGetConfig:

    @pytest.mark.parametrize('name,expected', [
        ('development', DevelopmentConfig),
        ('testing', TestingConfig),
        ('production', ProductionConfig),
        ('staging', DevelopmentConfig),
    ])
    def test_by_name(self, name, expected):
        assert get_config(name) is expected

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'testing')
        assert get_config() is TestingConfig

    def test_testing_defaults(self):
        assert TestingConfig.GEOCODING_ENABLED is False
        assert TestingConfig.CSV_UPLOAD_MAX_ROWS == 100
        assert TestingConfig.ADDRESS_MATCH_FLOOR == 0.7
        assert TestingConfig.MERGE_CONFIDENCE == 0.95


class TestValidateRequiredConfig:

    @pytest.fixture(autouse=True)
    def production_env(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'production')
        monkeypatch.delenv('SKIP_ENV_VALIDATION', raising=False)
        monkeypatch.delenv('POSTGRES_URI', raising=False)
        monkeypatch.setenv('DATABASE_URL', 'postgresql://crm@db/crm')
        monkeypatch.setenv('GEOCODING_ENABLED', 'true')
        monkeypatch.setenv('GEOCODING_PROVIDER', 'google')
        monkeypatch.setenv('GOOGLE_MAPS_API_KEY', 'key')

    def test_complete_configuration(self):
        Config.validate_required_config()

    def test_missing_database(self, monkeypatch):
        monkeypatch.delenv('DATABASE_URL')

        with pytest.raises(ConfigurationError, match='DATABASE_URL'):
            Config.validate_required_config()

    def test_missing_google_key(self, monkeypatch):
        monkeypatch.delenv('GOOGLE_MAPS_API_KEY')

        with pytest.raises(ConfigurationError, match='GOOGLE_MAPS_API_KEY'):
            Config.validate_required_config()

    def test_key_not_needed_when_geocoding_off(self, monkeypatch):
        monkeypatch.delenv('GOOGLE_MAPS_API_KEY')
        monkeypatch.setenv('GEOCODING_ENABLED', 'false')

        Config.validate_required_config()

    def test_skipped_in_testing(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'testing')
        monkeypatch.delenv('DATABASE_URL')

        Config.validate_required_config()

    def test_get_required_env(self, monkeypatch):
        monkeypatch.delenv('SECRET_TOKEN', raising=False)

        with pytest.raises(ConfigurationError, match='SECRET_TOKEN is not set'):
            Config.get_required_env('SECRET_TOKEN')
