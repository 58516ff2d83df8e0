"""Parsing and rounding of money amounts."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


CENT = Decimal('0.01')


def to_decimal(value):
    """Parse *value* into a two-place ``Decimal``.

    Accepts numbers and strings such as ``'39.90'``, ``'39,90'``,
    ``'R$ 1.234,56'`` or ``'1,234.56'``.  Returns ``None`` for blanks and
    raises ``ValueError`` for anything else that does not parse.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    if isinstance(value, (int, float)):
        if value != value:  # NaN from spreadsheets
            return None
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

    cleaned = str(value).strip()
    for token in ('R$', '$', '£', '€', ' '):
        cleaned = cleaned.replace(token, '')
    if cleaned in ('', '-'):
        return None

    if ',' in cleaned and '.' in cleaned:
        # Whichever separator comes last is the decimal one
        if cleaned.rfind(',') > cleaned.rfind('.'):
            cleaned = cleaned.replace('.', '').replace(',', '.')
        else:
            cleaned = cleaned.replace(',', '')
    elif ',' in cleaned:
        cleaned = cleaned.replace(',', '.')

    try:
        return Decimal(cleaned).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f'Invalid amount: {value!r}')


def as_float(value):
    """JSON-friendly rendering of a Decimal (``None`` stays ``None``)."""
    return float(value) if value is not None else None


def jsonable(value):
    """Recursively convert Decimals in dicts/lists to floats for ``jsonify``."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value
