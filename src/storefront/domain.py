"""Storefront bounded context: catalogue stock, carts, orders and payments.

Products, cart lines, orders and payments live in a single domain so that a
checkout (stock decrement, order creation, cart clearing) commits in one
Unit of Work.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging(log_dir="logs", log_file_prefix="storefront")

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
