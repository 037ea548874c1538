"""Loading of OpenAPI documents from files and URLs.

Grammar-level parsing and structural validation are delegated to
``openapi-pydantic``; the loader only reads the source, parses JSON or YAML
and hands back the raw document tree for the generator.
"""

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import yaml
from openapi_pydantic import parse_obj
from pydantic import ValidationError

from otterir.exceptions import SchemaLoadError, SchemaValidationError
from otterir.utils import is_url

logger = logging.getLogger(__name__)

__all__ = ['SchemaLoader', 'load']


class SchemaLoader:
    """Loads OpenAPI documents from URLs or file paths.

    Example:
        >>> loader = SchemaLoader()
        >>> document = loader.load('https://api.example.com/openapi.json')
        >>> # or
        >>> document = loader.load('/path/to/openapi.yaml')
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        base_path: str | Path | None = None,
        validate: bool = True,
    ):
        """Initialize the schema loader.

        Args:
            http_client: Optional HTTP client to use for URL requests.
                If not provided, ``httpx.get`` is used.
            base_path: Base path for relative file paths. Defaults to the
                current working directory.
            validate: Whether to validate the document with openapi-pydantic.
        """
        self._http_client = http_client
        self._base_path = Path(base_path) if base_path else Path.cwd()
        self._validate = validate

    def load(self, source: str | Path) -> dict[str, Any]:
        """Load and validate an OpenAPI document.

        Args:
            source: URL or file path of the document.

        Returns:
            The raw document as a dict.

        Raises:
            SchemaLoadError: If the document cannot be read or parsed.
            SchemaValidationError: If the document is not valid OpenAPI.
        """
        source = str(source)
        try:
            if is_url(source):
                content = self._load_from_url(source)
            else:
                content = self._load_from_file(source)
        except SchemaLoadError:
            raise
        except Exception as e:
            raise SchemaLoadError(source, cause=e) from e

        if not isinstance(content, dict):
            raise SchemaLoadError(
                source, cause=ValueError('Document root must be a mapping')
            )

        if self._validate:
            self._check(content, source)
        return content

    def _load_from_url(self, url: str) -> Any:
        try:
            if self._http_client:
                response = self._http_client.get(url)
            else:
                response = httpx.get(url, follow_redirects=True, timeout=30.0)

            response.raise_for_status()
            content_type = response.headers.get('content-type', '')
            if 'yaml' in content_type or url.endswith(('.yaml', '.yml')):
                return yaml.safe_load(response.text)
            return json.loads(response.text)

        except httpx.HTTPError as e:
            raise SchemaLoadError(url, cause=e) from e
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise SchemaLoadError(url, cause=e) from e

    def _load_from_file(self, file_path: str) -> Any:
        path = Path(file_path)
        if not path.is_absolute():
            path = self._base_path / path

        if not path.exists():
            raise SchemaLoadError(
                file_path, cause=FileNotFoundError(f'File not found: {path}')
            )

        try:
            content = path.read_text(encoding='utf-8')
            if path.suffix.lower() in ('.yaml', '.yml'):
                return yaml.safe_load(content)
            return json.loads(content)
        except (json.JSONDecodeError, yaml.YAMLError, OSError) as e:
            raise SchemaLoadError(file_path, cause=e) from e

    def _check(self, content: dict[str, Any], source: str) -> None:
        try:
            parse_obj(content)
        except ValidationError as e:
            errors = [
                f'{".".join(str(p) for p in err["loc"])}: {err["msg"]}'
                for err in e.errors()[:10]
            ]
            raise SchemaValidationError(source, errors=errors) from e
        except (ValueError, TypeError) as e:
            raise SchemaValidationError(source, errors=[str(e)]) from e
        logger.debug('Validated OpenAPI document %s', source)


def load(source: str | Path, validate: bool = True) -> dict[str, Any]:
    """Shortcut for ``SchemaLoader(validate=validate).load(source)``."""
    return SchemaLoader(validate=validate).load(source)
