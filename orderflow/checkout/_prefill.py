"""
Shipping prefill from the customer's saved address book.
"""

from __future__ import annotations

from dataclasses import replace

from orderflow.domain import SavedAddress, ShippingContext

_ADDRESS_PARTS = (
    ("Block", "block"),
    ("Street", "street"),
    ("Building", "building"),
    ("Floor", "floor"),
    ("Apt", "apartment"),
)


def split_name(name: str) -> tuple[str, str]:
    """First word is the first name, the rest is the last name."""
    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def format_address(saved: SavedAddress) -> str:
    """Block 3, Street 12, Building 7, Floor 2, Apt 5 (blank parts skipped)."""
    return ", ".join(
        f"{label} {value.strip()}"
        for label, attr in _ADDRESS_PARTS
        if (value := getattr(saved, attr)).strip()
    )


def prefill_shipping(
    saved: SavedAddress | None,
    email: str = "",
    current: ShippingContext | None = None,
    default_city: str = "Kuwait",
) -> ShippingContext:
    """
    Fill blank shipping fields from a saved address.

    Fields the customer already typed are never overwritten; without a
    saved address only the account email is filled in.
    """
    current = current or ShippingContext()
    filled: dict[str, str] = {"email": email}

    if saved is not None:
        first, last = split_name(saved.name)
        filled.update(
            first_name=first,
            last_name=last,
            phone=saved.phone,
            address_text=format_address(saved),
            city=default_city,
            area=saved.area,
            notes=saved.notes,
        )

    changes = {
        name: value.strip()
        for name, value in filled.items()
        if value and value.strip() and not getattr(current, name).strip()
    }
    return replace(current, **changes)


__all__ = ("split_name", "format_address", "prefill_shipping")
