from .schemas import CustomerData

MASK = "*"
VISIBLE_PHONE_DIGITS = 4


def mask_email(email: str) -> str:
    """Keeps the first character of the local part and the domain: j***@example.com"""
    local, sep, domain = email.partition("@")
    if not sep:
        return MASK * max(len(email), 3)
    return local[:1] + MASK * max(len(local) - 1, 3) + sep + domain


def mask_phone(phone: str) -> str:
    """Masks every digit except the last four, keeping separators in place."""
    digit_count = sum(ch.isdigit() for ch in phone)
    if digit_count == 0:
        return MASK * max(len(phone), 3)

    # Short numbers are masked entirely so the output never equals the input.
    keep = VISIBLE_PHONE_DIGITS if digit_count > VISIBLE_PHONE_DIGITS else 0
    to_mask = digit_count - keep
    masked = []
    for ch in phone:
        if ch.isdigit() and to_mask > 0:
            masked.append(MASK)
            to_mask -= 1
        else:
            masked.append(ch)
    return "".join(masked)


def anonymize_customer_data(data: CustomerData) -> CustomerData:
    # Irreversible: the raw values are never persisted or cached.
    return data.model_copy(update={
        "email": mask_email(data.email) if data.email else data.email,
        "phone": mask_phone(data.phone) if data.phone else data.phone,
    })
