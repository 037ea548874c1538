import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from otterir.exceptions import ConfigurationError
from otterir.model.types import NullableStrategy
from otterir.utils import convert_case

DEFAULT_FILENAMES = ['otterir.yaml', 'otterir.yml']

__all__ = [
    'DEFAULT_FILENAMES',
    'PassSettings',
    'GeneratorConfig',
    'load_yaml',
    'get_config',
]


class PassSettings(BaseModel):
    """Per-pass settings, keyed by pass name in :class:`GeneratorConfig`."""

    enabled: bool | None = Field(
        None,
        description='Enable or disable the pass. None keeps the pass default.',
    )

    params: dict[str, Any] = Field(
        default_factory=dict, description='Opaque parameters handed to the pass.'
    )

    @model_validator(mode='before')
    @classmethod
    def _accept_flag(cls, data: Any) -> Any:
        # `naming-convention: true` is shorthand for `{enabled: true}`.
        if isinstance(data, bool):
            return {'enabled': data}
        return data


class GeneratorConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='OTTERIR_')

    max_reference_depth: int = Field(
        64,
        ge=1,
        description='Maximum number of $ref hops on one resolution chain.',
    )

    nullable_strategy: NullableStrategy = Field(
        NullableStrategy.WRAP_OPTIONAL,
        description='How nullable values are represented in type expressions.',
    )

    strict_mode: bool = Field(
        False,
        description='Escalate unsupported constructs and merge conflicts to errors.',
    )

    passes: dict[str, PassSettings] = Field(
        default_factory=dict, description='Per-pass settings keyed by pass name.'
    )

    pass_timeout: float | None = Field(
        None, gt=0, description='Time budget in seconds for a single pass.'
    )

    deadline: float | None = Field(
        None, gt=0, description='Time budget in seconds for the whole run.'
    )

    max_workers: int = Field(
        1,
        ge=1,
        description='Worker threads for independent passes and top-level mappings.',
    )

    @model_validator(mode='before')
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {
            convert_case(key, 'snake') if key != 'passes' else key: value
            for key, value in data.items()
        }

    def pass_settings(self, name: str) -> PassSettings:
        return self.passes.get(name) or PassSettings()

    def pass_enabled(self, name: str, default: bool = True) -> bool:
        enabled = self.pass_settings(name).enabled
        return default if enabled is None else enabled

    def pass_params(self, name: str) -> dict[str, Any]:
        return dict(self.pass_settings(name).params)


def load_yaml(path: str | Path) -> Any:
    import yaml

    return yaml.load(Path(path).read_text(), Loader=yaml.FullLoader)


def _load_file(path: Path) -> Any:
    if not path.exists():
        raise ConfigurationError('Configuration file not found', config_path=str(path))
    try:
        if path.suffix == '.json':
            return json.loads(path.read_text())
        return load_yaml(path)
    except Exception as e:
        raise ConfigurationError(
            f'Could not parse configuration: {e}', config_path=str(path)
        ) from e


def _build(data: Any, source: str | None) -> GeneratorConfig:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError('Configuration must be a mapping', config_path=source)
    try:
        return GeneratorConfig(**data)
    except ValidationError as e:
        error = e.errors()[0]
        field = '.'.join(str(part) for part in error['loc']) or None
        raise ConfigurationError(
            f'Invalid configuration: {error["msg"]}', config_path=source, field=field
        ) from e


def get_config(path: str | Path | None = None) -> GeneratorConfig:
    """Load configuration from a file or return the default config.

    Lookup order: the explicit ``path``; ``otterir.yaml`` / ``otterir.yml``
    in the working directory; ``[tool.otterir]`` in ``pyproject.toml``.

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid.
    """
    if path:
        path = Path(path)
        return _build(_load_file(path), str(path))

    cwd = Path(os.getcwd())

    for filename in DEFAULT_FILENAMES:
        candidate = cwd / filename
        if candidate.exists():
            return _build(_load_file(candidate), str(candidate))

    pyproject_path = cwd / 'pyproject.toml'

    if pyproject_path.exists():
        import tomllib

        try:
            pyproject = tomllib.loads(pyproject_path.read_text())
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f'Could not parse configuration: {e}', config_path=str(pyproject_path)
            ) from e
        tools = pyproject.get('tool', {})

        if 'otterir' in tools:
            return _build(tools['otterir'], str(pyproject_path))

    return GeneratorConfig()
