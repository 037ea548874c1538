import pytest

from otterir.utils import (
    component_pointer,
    convert_case,
    escape_pointer_token,
    is_url,
    join_pointer,
    schema_id_for_pointer,
    split_pointer,
    split_words,
)


class TestIsUrl:
    def test_http_and_https(self):
        """Test that http(s) URLs with a host are recognised."""
        assert is_url('http://example.com/openapi.json')
        assert is_url('https://api.example.com/v1/spec.yaml')

    def test_non_urls(self):
        """Test that paths, fragments and other schemes are not URLs."""
        assert not is_url('./openapi.yaml')
        assert not is_url('#/components/schemas/Pet')
        assert not is_url('ftp://example.com/spec.json')
        assert not is_url('https://')


class TestPointers:
    def test_escape(self):
        """Test RFC 6901 escaping of '~' and '/'."""
        assert escape_pointer_token('a/b~c') == 'a~1b~0c'

    def test_join(self):
        """Test joining escapes every token."""
        assert join_pointer('#/paths', '/pets/{id}', 'get') == '#/paths/~1pets~1{id}/get'
        assert join_pointer('#', 'components') == '#/components'

    def test_split_round_trip(self):
        """Test that split reverses join."""
        pointer = join_pointer('#/paths', '/pets', 'responses', 200)
        assert split_pointer(pointer) == ['paths', '/pets', 'responses', '200']

    def test_split_decodes_url_encoding(self):
        """Test that URL-encoded fragments are decoded."""
        assert split_pointer('#/components/schemas/My%20Pet') == [
            'components',
            'schemas',
            'My Pet',
        ]

    def test_split_root(self):
        """Test that the document root splits into no tokens."""
        assert split_pointer('#') == []
        assert split_pointer('#/') == []

    def test_split_rejects_non_local(self):
        """Test that non-local pointers are rejected."""
        with pytest.raises(ValueError):
            split_pointer('other.yaml#/Pet')
        with pytest.raises(ValueError):
            split_pointer('#components')


class TestSchemaIds:
    def test_component_id_is_name(self):
        """Test that a component schema id is its name."""
        assert schema_id_for_pointer('#/components/schemas/User') == 'User'
        assert schema_id_for_pointer(component_pointer('User')) == 'User'

    def test_inline_ids(self):
        """Test ids of inline schemas inside components and paths."""
        assert (
            schema_id_for_pointer('#/components/schemas/User/properties/profile')
            == 'User/properties/profile'
        )
        assert (
            schema_id_for_pointer('#/paths/~1pets/get/parameters/0/schema')
            == 'paths/~1pets/get/parameters/0/schema'
        )


class TestCaseConversion:
    @pytest.mark.parametrize(
        'name,words',
        [
            ('petStore', ['pet', 'store']),
            ('PetStore', ['pet', 'store']),
            ('pet_store', ['pet', 'store']),
            ('pet-store.v2', ['pet', 'store', 'v2']),
            ('HTTPResponse', ['http', 'response']),
        ],
    )
    def test_split_words(self, name, words):
        """Test word splitting across separators and case humps."""
        assert split_words(name) == words

    @pytest.mark.parametrize(
        'case,expected',
        [
            ('pascal', 'PetStore'),
            ('camel', 'petStore'),
            ('snake', 'pet_store'),
            ('kebab', 'pet-store'),
        ],
    )
    def test_convert_case(self, case, expected):
        """Test conversion to every supported convention."""
        assert convert_case('pet_store', case) == expected

    def test_unknown_case(self):
        """Test that an unknown convention raises ValueError."""
        with pytest.raises(ValueError, match='Unknown naming convention'):
            convert_case('pet', 'screaming')

    def test_name_without_words_is_unchanged(self):
        """Test that names with no alphanumerics are returned as-is."""
        assert convert_case('__', 'pascal') == '__'
