"""
UPnP transport pieces: SOAP actions, event subscriptions and notifications.
"""

from .description import (
    DescriptionError,
    DeviceDescriptor,
    fetch_device_descriptor,
    parse_device_description,
)
from .lastchange import parse_didl, parse_last_change, parse_property_set, target_id_from_sid
from .listener import LAST_CHANGE_EVENT, NotificationListener
from .soap import ActionType, SoapAction, SoapClient, SoapError
from .subscriber import Subscriber, SubscriptionError

__all__ = [
    # Description
    "DescriptionError",
    "DeviceDescriptor",
    "fetch_device_descriptor",
    "parse_device_description",
    # Events
    "LAST_CHANGE_EVENT",
    "NotificationListener",
    "parse_didl",
    "parse_last_change",
    "parse_property_set",
    "target_id_from_sid",
    # Subscriptions
    "Subscriber",
    "SubscriptionError",
    # Actions
    "ActionType",
    "SoapAction",
    "SoapClient",
    "SoapError",
]
