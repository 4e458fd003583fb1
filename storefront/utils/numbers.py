# storefront/utils/numbers.py
import itertools
import secrets
import threading

from storefront.utils.clock import utcnow

_lock = threading.Lock()
_sequence = itertools.count()


def generate_number(prefix: str) -> str:
    """
    Human readable document number, e.g. ORD-20261019-53012345-01A7F3C.

    date, milliseconds since midnight UTC, a per-process sequence and a random
    suffix; the random part keeps numbers from different workers apart and the
    UNIQUE column catches whatever is left.
    """
    now = utcnow()
    millis = (now.hour * 3600 + now.minute * 60 + now.second) * 1000 + now.microsecond // 1000
    with _lock:
        seq = next(_sequence) % 0x1000
    return f"{prefix}-{now:%Y%m%d}-{millis:08d}-{seq:03X}{secrets.token_hex(2).upper()}"


def order_number() -> str:
    return generate_number("ORD")


def invoice_number() -> str:
    return generate_number("INV")
