"""Market data layer -- shared price cache and throttled feed projections."""

from marketdesk.market_data.klines import KlineProjection
from marketdesk.market_data.order_book import OrderBookProjection
from marketdesk.market_data.price_cache import SharedPriceCache
from marketdesk.market_data.service import MarketDataService
from marketdesk.market_data.throttle import TrailingThrottle
from marketdesk.market_data.ticker_feed import TickerProjection
from marketdesk.market_data.trades import RecentTradesProjection

__all__ = [
    "KlineProjection",
    "MarketDataService",
    "OrderBookProjection",
    "RecentTradesProjection",
    "SharedPriceCache",
    "TickerProjection",
    "TrailingThrottle",
]
