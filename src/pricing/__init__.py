from src.pricing.prices import PriceTable, Rate, load_price_table, pair_key
from src.pricing.quote_engine import REASON_BELOW_MIN, REASON_NO_PRICE, quote_intent

__all__ = [
    "PriceTable",
    "Rate",
    "load_price_table",
    "pair_key",
    "REASON_BELOW_MIN",
    "REASON_NO_PRICE",
    "quote_intent",
]
