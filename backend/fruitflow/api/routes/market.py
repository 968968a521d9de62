from fastapi import APIRouter

from fruitflow.schemas.ai import MarketQuote
from fruitflow.services.market_data import get_market_quotes

router = APIRouter(prefix="/market", tags=["market"])


@router.get("/prices", response_model=list[MarketQuote])
def prices():
    """Illustrative prices; not live market data."""
    return get_market_quotes()
