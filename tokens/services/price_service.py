# tokens/services/price_service.py
import logging
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from tokens.models import TokenPrice

logger = logging.getLogger(__name__)

TOKEN_QUANT = Decimal('0.00000001')


class TokenPriceService:
    """Single source of the current DIT price"""

    def get_current_price(self):
        """
        Today's price if one was set, otherwise the most recent price,
        otherwise the configured starting price.
        """
        today = timezone.localdate()
        row = TokenPrice.objects.filter(date=today).first()
        if row is None:
            row = TokenPrice.objects.order_by('-date').first()
        if row is None:
            logger.warning(f"No token price recorded, using default ${settings.DEFAULT_TOKEN_PRICE}")
            return Decimal(settings.DEFAULT_TOKEN_PRICE)
        return row.price

    def set_price(self, price, date=None):
        """Create or replace the price for one calendar day"""
        date = date or timezone.localdate()
        row, created = TokenPrice.objects.update_or_create(
            date=date,
            defaults={'price': Decimal(str(price))}
        )
        logger.info(f"Token price {'set' if created else 'updated'} for {date}: ${row.price}")
        return row

    def history(self, limit=100):
        return TokenPrice.objects.order_by('-date')[:limit]

    def tokens_for(self, usd_amount, price=None):
        """Convert a USD amount to DIT at the given (or current) price"""
        price = price if price is not None else self.get_current_price()
        return (Decimal(usd_amount) / Decimal(price)).quantize(TOKEN_QUANT)

    def usd_for(self, token_amount, price=None):
        """Value a DIT amount in USD at the given (or current) price"""
        price = price if price is not None else self.get_current_price()
        return (Decimal(token_amount) * Decimal(price)).quantize(TOKEN_QUANT)
