"""ORM Models — SQLAlchemy declarative models for all storefront entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Aggregate roots: Product (variants, images), Cart (line items), Order (status events),
      CateringQuote (payments)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from smokehouse.models.product import Product  # noqa: F401
from smokehouse.models.product_variant import ProductVariant  # noqa: F401
from smokehouse.models.product_image import ProductImage  # noqa: F401
from smokehouse.models.product_category import ProductCategory  # noqa: F401
from smokehouse.models.product_collection import ProductCollection  # noqa: F401
from smokehouse.models.cart import Cart  # noqa: F401
from smokehouse.models.cart_line_item import CartLineItem  # noqa: F401
from smokehouse.models.order import Order  # noqa: F401
from smokehouse.models.order_status_event import OrderStatusEvent  # noqa: F401
from smokehouse.models.catering_quote import CateringQuote  # noqa: F401
from smokehouse.models.catering_addon import CateringAddon  # noqa: F401
from smokehouse.models.quote_payment import QuotePayment  # noqa: F401
from smokehouse.models.email_preference import EmailPreference  # noqa: F401
from smokehouse.models.scheduled_notification import ScheduledNotification  # noqa: F401
from smokehouse.models.admin_settings import AdminSettingsRecord  # noqa: F401
