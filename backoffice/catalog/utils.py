"""
Utility functions for catalog operations
"""
import logging

from django.conf import settings

from backoffice.core.models import Setting

logger = logging.getLogger(__name__)

LOW_STOCK_SETTING = 'low_stock_threshold'


def current_low_stock_threshold():
    """Shop-wide threshold saved by an admin, else the configured default"""
    setting = Setting.objects.filter(key=LOW_STOCK_SETTING).first()
    if setting is not None:
        try:
            return int(setting.value)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {LOW_STOCK_SETTING} setting: {setting.value!r}")
    return settings.DEFAULT_LOW_STOCK_THRESHOLD
