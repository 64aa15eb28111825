import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any


def to_cents(value: Any) -> int:
    """
    Montant décimal (str | int | float) -> centimes entiers, arrondi au plus proche.
    - Valeur absente, illisible ou non finie -> 0
    """
    if isinstance(value, bool) or value is None:
        return 0
    if not isinstance(value, (int, float, str)):
        return 0
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return 0
    if not amount.is_finite():
        return 0
    # Arrondi « half up » (pas d'arrondi bancaire)
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_quantity(value: Any) -> int:
    """Quantité entière non négative; entrée malformée -> 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        qty = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(qty) or qty <= 0:
        return 0
    return int(qty)
