from notify_hub.models.channel_config import NotifyChannel
from notify_hub.models.delivery_record import DeliveryRecord

__all__ = ["NotifyChannel", "DeliveryRecord"]
