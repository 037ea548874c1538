import re
import unicodedata
from urllib.parse import unquote, urlparse

__all__ = (
    'is_url',
    'escape_pointer_token',
    'unescape_pointer_token',
    'join_pointer',
    'split_pointer',
    'split_words',
    'convert_case',
)

COMPONENT_SCHEMAS_POINTER = '#/components/schemas'


def capitalize(input_string):
    if not input_string:
        return ''
    return input_string[0].upper() + input_string[1:]


def is_url(text):
    try:
        result = urlparse(text)
        return result.scheme in ('http', 'https') and bool(result.netloc)
    except (TypeError, ValueError, AttributeError):
        return False


def remove_accents(input_str):
    nfkd_form = unicodedata.normalize('NFKD', input_str)
    return ''.join(c for c in nfkd_form if not unicodedata.combining(c))


def escape_pointer_token(token: str) -> str:
    """Escape a single JSON pointer reference token (RFC 6901)."""
    return str(token).replace('~', '~0').replace('/', '~1')


def unescape_pointer_token(token: str) -> str:
    """Reverse :func:`escape_pointer_token`."""
    return token.replace('~1', '/').replace('~0', '~')


def join_pointer(base: str, *tokens: str | int) -> str:
    """Append escaped tokens to a JSON pointer.

    >>> join_pointer('#/components/schemas', 'a/b', 'properties')
    '#/components/schemas/a~1b/properties'
    """
    parts = [base.rstrip('/')] if base not in ('#', '#/') else ['#']
    parts.extend(escape_pointer_token(str(t)) for t in tokens)
    return '/'.join(parts)


def split_pointer(pointer: str) -> list[str]:
    """Split a local JSON pointer ('#/a/b') into unescaped tokens.

    URL-encoded fragments ('#/paths/~1pets%7Bid%7D') are decoded first.

    Raises:
        ValueError: If the pointer is not a local pointer.
    """
    if not pointer.startswith('#'):
        raise ValueError(f'Not a local JSON pointer: {pointer}')

    fragment = unquote(pointer[1:])
    if fragment in ('', '/'):
        return []
    if not fragment.startswith('/'):
        raise ValueError(f'Not a local JSON pointer: {pointer}')

    return [unescape_pointer_token(t) for t in fragment[1:].split('/')]


def schema_id_for_pointer(pointer: str) -> str:
    """Return the stable schema id for a document pointer.

    Component schemas are identified by their (escaped) name; any other
    location by its pointer without the leading '#/'.

    >>> schema_id_for_pointer('#/components/schemas/User')
    'User'
    >>> schema_id_for_pointer('#/components/schemas/User/properties/tags')
    'User/properties/tags'
    """
    prefix = COMPONENT_SCHEMAS_POINTER + '/'
    if pointer.startswith(prefix):
        return pointer[len(prefix) :]
    return pointer[2:] if pointer.startswith('#/') else pointer


def component_pointer(name: str) -> str:
    return join_pointer(COMPONENT_SCHEMAS_POINTER, name)


def split_words(name: str) -> list[str]:
    """Split an identifier into lowercase words.

    Handles separators (space, '-', '_', '.'), camelCase humps and acronym
    boundaries ('HTTPResponse' -> ['http', 'response']).
    """
    name = remove_accents(name)
    name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1 \2', name)
    name = re.sub(r'([a-z0-9])([A-Z])', r'\1 \2', name)
    return [w.lower() for w in re.split(r'[^A-Za-z0-9]+', name) if w]


def convert_case(name: str, case: str) -> str:
    """Convert an identifier to 'pascal', 'camel', 'snake' or 'kebab' case.

    Names with no alphanumeric characters are returned unchanged.

    Raises:
        ValueError: If ``case`` is not one of the supported conventions.
    """
    words = split_words(name)
    if not words:
        return name

    if case == 'pascal':
        return ''.join(capitalize(w) for w in words)
    if case == 'camel':
        return words[0] + ''.join(capitalize(w) for w in words[1:])
    if case == 'snake':
        return '_'.join(words)
    if case == 'kebab':
        return '-'.join(words)
    raise ValueError(f'Unknown naming convention: {case}')
