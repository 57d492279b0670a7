import pytest

from services.order_service.privacy import anonymize_customer_data, mask_email, mask_phone
from services.order_service.schemas import CustomerData


@pytest.mark.parametrize("raw, masked", [
    ("jane.doe@example.com", "j*******@example.com"),
    ("a@b.io", "a***@b.io"),
    ("not-an-email", "************"),
])
def test_mask_email(raw, masked):
    assert mask_email(raw) == masked


@pytest.mark.parametrize("raw, masked", [
    ("+1 555-123-4567", "+* ***-***-4567"),
    ("5551234567", "******4567"),
    ("1234", "****"),
    ("n/a", "***"),
])
def test_mask_phone(raw, masked):
    assert mask_phone(raw) == masked


def test_anonymize_leaves_absent_fields_alone():
    data = CustomerData(name="Jane", email=None, phone="5551234567")

    result = anonymize_customer_data(data)

    assert result.name == "Jane"
    assert result.email is None
    assert result.phone == "******4567"
    # the caller's object is untouched
    assert data.phone == "5551234567"
