"""Customer notifications.

Messages are written to the log; there is no delivery channel behind them.
"""
import logging

logger = logging.getLogger(__name__)


def notify_customer(enquiry, event: str, message: str) -> str:
    text = f"Hi {enquiry.customer_name}, {message}"
    logger.info("WhatsApp to %s (enquiry %s, %s): %s", enquiry.phone, enquiry.id, event, text)
    return text
