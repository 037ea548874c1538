"""Test fixtures for OtterIR tests.

This module provides sample OpenAPI documents used across the test suite.
"""

# Minimal OpenAPI 3.0 spec for basic testing
MINIMAL_OPENAPI_SPEC = {
    'openapi': '3.0.0',
    'info': {'title': 'Minimal API', 'version': '1.0.0'},
    'paths': {},
}


def spec_with_schemas(schemas: dict, paths: dict | None = None) -> dict:
    """Build a 3.0 document with the given component schemas."""
    if paths is None:
        paths = {'/ping': {'get': {'responses': {'200': {'description': 'OK'}}}}}
    return {
        'openapi': '3.0.0',
        'info': {'title': 'Test API', 'version': '1.0.0'},
        'paths': paths,
        'components': {'schemas': schemas},
    }


# Self-referential schema: TreeNode.children is an array of TreeNode
TREE_NODE_SPEC = spec_with_schemas(
    {
        'TreeNode': {
            'type': 'object',
            'required': ['value'],
            'properties': {
                'value': {'type': 'string'},
                'children': {
                    'type': 'array',
                    'items': {'$ref': '#/components/schemas/TreeNode'},
                },
            },
        }
    }
)

# Mutually referential schemas: Author.books -> Book, Book.author -> Author
MUTUAL_CYCLE_SPEC = spec_with_schemas(
    {
        'Author': {
            'type': 'object',
            'properties': {
                'name': {'type': 'string'},
                'books': {
                    'type': 'array',
                    'items': {'$ref': '#/components/schemas/Book'},
                },
            },
        },
        'Book': {
            'type': 'object',
            'properties': {
                'title': {'type': 'string'},
                'author': {'$ref': '#/components/schemas/Author'},
            },
        },
    }
)

# Dangling local reference
MISSING_REF_SPEC = spec_with_schemas(
    {
        'Order': {
            'type': 'object',
            'properties': {
                'customer': {'$ref': '#/components/schemas/Missing'},
            },
        }
    }
)

# Reference to another document
EXTERNAL_REF_SPEC = spec_with_schemas(
    {
        'Order': {
            'type': 'object',
            'properties': {
                'customer': {'$ref': 'https://example.com/schemas.json#/Customer'},
            },
        }
    }
)

# allOf members declaring the same field with different types
ALLOF_CONFLICT_SPEC = spec_with_schemas(
    {
        'Left': {'type': 'object', 'properties': {'x': {'type': 'string'}}},
        'Right': {'type': 'object', 'properties': {'x': {'type': 'number'}}},
        'Both': {
            'allOf': [
                {'$ref': '#/components/schemas/Left'},
                {'$ref': '#/components/schemas/Right'},
            ]
        },
    }
)

# allOf composition without conflicts
ALLOF_SPEC = spec_with_schemas(
    {
        'Named': {
            'type': 'object',
            'required': ['name'],
            'properties': {'name': {'type': 'string'}},
        },
        'Dated': {
            'type': 'object',
            'properties': {
                'created': {'type': 'string', 'format': 'date-time'},
                'name': {'type': 'string'},
            },
        },
        'Document': {
            'allOf': [
                {'$ref': '#/components/schemas/Named'},
                {'$ref': '#/components/schemas/Dated'},
            ],
            'required': ['created'],
            'properties': {'body': {'type': 'string'}},
        },
    }
)

# Required vs nullable, OpenAPI 3.0 form
NULLABLE_SPEC = spec_with_schemas(
    {
        'Profile': {
            'type': 'object',
            'required': ['a'],
            'properties': {
                'a': {'type': 'string'},
                'b': {'type': 'string', 'nullable': True},
            },
        }
    }
)

# Required vs nullable, OpenAPI 3.1 form
NULLABLE_31_SPEC = {
    'openapi': '3.1.0',
    'info': {'title': 'Test API', 'version': '1.0.0'},
    'paths': {'/ping': {'get': {'responses': {'200': {'description': 'OK'}}}}},
    'components': {
        'schemas': {
            'Profile': {
                'type': 'object',
                'required': ['a'],
                'properties': {
                    'a': {'type': 'string'},
                    'b': {'type': ['string', 'null']},
                },
            }
        }
    },
}

# Petstore-like API exercising parameters, bodies and responses
PETSTORE_SPEC = {
    'openapi': '3.0.0',
    'info': {'title': 'Petstore API', 'version': '1.0.0'},
    'paths': {
        '/pets/': {
            'get': {
                'operationId': 'listPets',
                'parameters': [
                    {'$ref': '#/components/parameters/Limit'},
                    {
                        'name': 'status',
                        'in': 'query',
                        'schema': {
                            'type': 'string',
                            'enum': ['available', 'pending', 'sold'],
                        },
                    },
                ],
                'responses': {
                    '200': {
                        'description': 'A list of pets',
                        'content': {
                            'application/json': {
                                'schema': {
                                    'type': 'array',
                                    'items': {'$ref': '#/components/schemas/Pet'},
                                }
                            }
                        },
                    },
                    'default': {'$ref': '#/components/responses/Error'},
                },
            },
            'post': {
                'operationId': 'createPet',
                'requestBody': {
                    'required': True,
                    'content': {
                        'application/json': {
                            'schema': {'$ref': '#/components/schemas/NewPet'}
                        }
                    },
                },
                'responses': {
                    '201': {
                        'description': 'Created',
                        'content': {
                            'application/json': {
                                'schema': {'$ref': '#/components/schemas/Pet'}
                            }
                        },
                    }
                },
            },
        },
        '/pets/{petId}': {
            'get': {
                'operationId': 'getPet',
                'parameters': [
                    {
                        'name': 'petId',
                        'in': 'path',
                        'required': True,
                        'schema': {'type': 'integer', 'format': 'int64'},
                    }
                ],
                'responses': {
                    '200': {
                        'description': 'A pet',
                        'content': {
                            'application/json': {
                                'schema': {'$ref': '#/components/schemas/Pet'}
                            }
                        },
                    }
                },
            }
        },
    },
    'components': {
        'schemas': {
            'Pet': {
                'allOf': [
                    {'$ref': '#/components/schemas/NewPet'},
                    {
                        'type': 'object',
                        'required': ['id'],
                        'properties': {'id': {'type': 'integer', 'format': 'int64'}},
                    },
                ]
            },
            'NewPet': {
                'type': 'object',
                'required': ['name'],
                'properties': {
                    'name': {'type': 'string'},
                    'tag': {'type': 'string', 'nullable': True},
                    'category': {'$ref': '#/components/schemas/Category'},
                    'attributes': {
                        'type': 'object',
                        'additionalProperties': {'type': 'string'},
                    },
                },
            },
            'Category': {
                'type': 'string',
                'enum': ['dog', 'cat', 'bird'],
            },
            'Error': {
                'type': 'object',
                'required': ['code', 'message'],
                'properties': {
                    'code': {'type': 'integer', 'format': 'int32'},
                    'message': {'type': 'string'},
                },
            },
        },
        'parameters': {
            'Limit': {
                'name': 'limit',
                'in': 'query',
                'schema': {'type': 'integer', 'format': 'int32', 'maximum': 100},
            }
        },
        'responses': {
            'Error': {
                'description': 'Unexpected error',
                'content': {
                    'application/json': {
                        'schema': {'$ref': '#/components/schemas/Error'}
                    }
                },
            }
        },
    },
}
