"""Invoice arithmetic.

Pure functions: no database, no app context. Amounts are rounded to two places
per line before they are summed, so invoice totals always equal the sum of the
printed rows.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError

TWOPLACES = Decimal('0.01')
HUNDRED = Decimal('100')
ZERO = Decimal('0.00')


def to_decimal(value, field: str = 'amount') -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number, got {value!r}")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def round2(value) -> Decimal:
    return Decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def money(value, field: str = 'amount') -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return round2(amount)


def percent(value, field: str) -> Decimal:
    rate = to_decimal(value, field)
    if rate < 0 or rate > HUNDRED:
        raise ValidationError(f"{field} must be between 0 and 100, got {rate}")
    return rate


def calc_discount(amount: Decimal, discount_percent: Decimal) -> Decimal:
    return min(round2(amount * discount_percent / HUNDRED), amount)


def calc_gst(amount: Decimal, gst_percent: Decimal) -> Decimal:
    return round2(amount * gst_percent / HUNDRED)


def new_pricing_ctx():
    return {
        'final_amount': ZERO,  # sum of original amounts before discount
        'subtotal': ZERO,
        'gst_amount': ZERO,
        'total_amount': ZERO,
    }


def add_item(pricing_ctx, line, gst_included: bool = True, default_gst_rate=18):
    """Price one line and fold it into ``pricing_ctx``.

    ``line`` is a mapping with ``original_amount`` and optional
    ``discount_value`` / ``gst_rate`` percentages; other keys (service type,
    item context, description) are carried through untouched.
    """
    original_amount = money(line.get('original_amount'), 'original_amount')
    discount_value = percent(line.get('discount_value') or 0, 'discount_value')
    gst_rate = line.get('gst_rate')
    gst_rate = percent(default_gst_rate if gst_rate is None else gst_rate, 'gst_rate')

    discount_amount = calc_discount(original_amount, discount_value)
    final_amount = original_amount - discount_amount
    gst_amount = calc_gst(final_amount, gst_rate) if gst_included else ZERO

    pricing_ctx['final_amount'] += original_amount
    pricing_ctx['subtotal'] += final_amount
    pricing_ctx['gst_amount'] += gst_amount

    priced = dict(line)
    priced.update({
        'original_amount': original_amount,
        'discount_value': discount_value,
        'discount_amount': discount_amount,
        'final_amount': final_amount,
        'gst_rate': gst_rate,
        'gst_amount': gst_amount,
    })
    return priced


def close_pricing_ctx(pricing_ctx):
    pricing_ctx['final_amount'] = round2(pricing_ctx['final_amount'])
    pricing_ctx['subtotal'] = round2(pricing_ctx['subtotal'])
    pricing_ctx['gst_amount'] = round2(pricing_ctx['gst_amount'])
    pricing_ctx['total_amount'] = round2(pricing_ctx['subtotal'] + pricing_ctx['gst_amount'])
    return pricing_ctx


def calc_invoice(lines, gst_included: bool = True, default_gst_rate=18):
    """Price every line and aggregate them into invoice totals.

    Returns the closed pricing context with an extra ``items`` list holding
    the priced lines in input order.
    """
    ctx = new_pricing_ctx()
    items = [add_item(ctx, line, gst_included, default_gst_rate) for line in lines]
    close_pricing_ctx(ctx)
    ctx['items'] = items
    return ctx
