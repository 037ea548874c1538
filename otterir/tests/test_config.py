"""Tests for configuration loading."""

import json

import pytest
import yaml

from otterir.config import GeneratorConfig, PassSettings, get_config
from otterir.exceptions import ConfigurationError
from otterir.model.types import NullableStrategy


class TestGeneratorConfig:
    def test_defaults(self):
        """Test the default configuration values."""
        config = GeneratorConfig()
        assert config.max_reference_depth == 64
        assert config.nullable_strategy is NullableStrategy.WRAP_OPTIONAL
        assert config.strict_mode is False
        assert config.passes == {}
        assert config.pass_timeout is None
        assert config.deadline is None
        assert config.max_workers == 1

    def test_camel_case_keys(self):
        """Test that camelCase keys are accepted."""
        config = GeneratorConfig(
            **{
                'maxReferenceDepth': 8,
                'nullableStrategy': 'SeparateNullableType',
                'strictMode': True,
            }
        )
        assert config.max_reference_depth == 8
        assert config.nullable_strategy is NullableStrategy.SEPARATE_NULLABLE_TYPE
        assert config.strict_mode is True

    def test_nullable_strategy_spellings(self):
        """Test that snake and upper case strategy names are accepted."""
        assert (
            GeneratorConfig(nullable_strategy='separate_nullable_type').nullable_strategy
            is NullableStrategy.SEPARATE_NULLABLE_TYPE
        )
        assert (
            GeneratorConfig(nullable_strategy='WRAP_OPTIONAL').nullable_strategy
            is NullableStrategy.WRAP_OPTIONAL
        )

    def test_environment_variables(self, monkeypatch):
        """Test that OTTERIR_ environment variables are read."""
        monkeypatch.setenv('OTTERIR_STRICT_MODE', 'true')
        monkeypatch.setenv('OTTERIR_MAX_REFERENCE_DEPTH', '12')
        config = GeneratorConfig()
        assert config.strict_mode is True
        assert config.max_reference_depth == 12

    def test_rejects_zero_depth(self):
        """Test that the reference depth must be positive."""
        with pytest.raises(ValueError):
            GeneratorConfig(max_reference_depth=0)

    def test_pass_settings(self):
        """Test per-pass enable flags and params."""
        config = GeneratorConfig(
            passes={
                'naming-convention': {'enabled': True, 'params': {'case': 'snake'}},
                'validation': False,
            }
        )
        assert config.pass_enabled('naming-convention', default=False) is True
        assert config.pass_enabled('validation') is False
        assert config.pass_enabled('type-inference') is True
        assert config.pass_params('naming-convention') == {'case': 'snake'}
        assert config.pass_params('type-inference') == {}

    def test_pass_settings_default_enabled_is_none(self):
        """Test that an unset enabled flag keeps the pass default."""
        config = GeneratorConfig(passes={'naming-convention': PassSettings(params={'case': 'kebab'})})
        assert config.pass_enabled('naming-convention', default=False) is False


class TestGetConfig:
    def test_defaults_without_files(self, tmp_path, monkeypatch):
        """Test that defaults are returned when no config is found."""
        monkeypatch.chdir(tmp_path)
        assert get_config() == GeneratorConfig()

    def test_explicit_yaml(self, tmp_path):
        """Test loading an explicit YAML file."""
        path = tmp_path / 'custom.yaml'
        path.write_text(yaml.dump({'strictMode': True, 'max_workers': 4}))
        config = get_config(str(path))
        assert config.strict_mode is True
        assert config.max_workers == 4

    def test_explicit_json(self, tmp_path):
        """Test loading an explicit JSON file."""
        path = tmp_path / 'custom.json'
        path.write_text(json.dumps({'passes': {'validation': {'enabled': False}}}))
        config = get_config(path)
        assert config.pass_enabled('validation') is False

    def test_default_filename(self, tmp_path, monkeypatch):
        """Test that otterir.yaml in the working directory is picked up."""
        (tmp_path / 'otterir.yaml').write_text('max_reference_depth: 5\n')
        monkeypatch.chdir(tmp_path)
        assert get_config().max_reference_depth == 5

    def test_pyproject(self, tmp_path, monkeypatch):
        """Test that [tool.otterir] in pyproject.toml is picked up."""
        (tmp_path / 'pyproject.toml').write_text(
            '[tool.otterir]\nstrict_mode = true\n'
        )
        monkeypatch.chdir(tmp_path)
        assert get_config().strict_mode is True

    def test_missing_file(self, tmp_path):
        """Test that a missing explicit file raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match='not found'):
            get_config(tmp_path / 'nope.yaml')

    def test_invalid_yaml(self, tmp_path):
        """Test that unparsable YAML raises ConfigurationError."""
        path = tmp_path / 'bad.yaml'
        path.write_text('strict_mode: [unclosed\n')
        with pytest.raises(ConfigurationError, match='Could not parse'):
            get_config(path)

    def test_invalid_value(self, tmp_path):
        """Test that invalid values name the offending field."""
        path = tmp_path / 'bad.yaml'
        path.write_text('max_reference_depth: 0\n')
        with pytest.raises(ConfigurationError) as exc_info:
            get_config(path)
        assert exc_info.value.field == 'max_reference_depth'

    def test_non_mapping(self, tmp_path):
        """Test that a non-mapping document is rejected."""
        path = tmp_path / 'list.yaml'
        path.write_text('- a\n- b\n')
        with pytest.raises(ConfigurationError, match='mapping'):
            get_config(path)
