import pytest


@pytest.fixture
def person_schema():
    return {
        "type": "object",
        "properties": {
            "Name": {"type": "string"},
            "Age": {"type": "integer"},
        },
        "required": ["Name"],
    }


@pytest.fixture
def person_records():
    return [{"Name": "Alice", "Age": 25}, {"Name": "Bob", "Age": 30}]


@pytest.fixture
def order_schema():
    """Nested document exercising every compiled shape."""
    return {
        "type": "object",
        "description": "Customer order",
        "properties": {
            "id": {"type": "integer"},
            "customer": {"$ref": "#/$defs/Customer"},
            "status": {"type": "string", "enum": ["open", "shipped"]},
            "placed_on": {"type": "string", "format": "date"},
            "total": {"type": "number"},
            "discount": {"type": ["number", "null"]},
            "paid": {"type": "boolean"},
            "lines": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "sku": {"type": "string"},
                        "qty": {"type": "integer"},
                    },
                    "required": ["sku", "qty"],
                },
            },
            "tags": {"type": "array", "items": {"type": ["string", "null"]}},
            "attributes": {
                "type": "object",
                "additionalProperties": {"type": "integer"},
            },
        },
        "required": ["id", "customer", "status", "total", "paid", "lines"],
        "$defs": {
            "Customer": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "email": {"type": "string"},
                },
                "required": ["name"],
            },
        },
    }


@pytest.fixture
def order_records():
    return [
        {
            "id": 1,
            "customer": {"name": "Alice", "email": "alice@example.com"},
            "status": "open",
            "placed_on": "2024-01-15",
            "total": 19.5,
            "discount": None,
            "paid": True,
            "lines": [{"sku": "A-1", "qty": 2}, {"sku": "B-7", "qty": 1}],
            "tags": ["gift", None],
            "attributes": {"priority": 3},
        },
        {
            "id": 2,
            "customer": {"name": "Bob", "email": None},
            "status": "shipped",
            "placed_on": None,
            "total": 5.0,
            "discount": 0.5,
            "paid": False,
            "lines": [],
            "tags": None,
            "attributes": None,
        },
    ]
