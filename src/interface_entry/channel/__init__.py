from __future__ import annotations

from interface_entry.channel.adapter import ActivitySender, ChannelAdapter, ChannelDeliveryError

__all__ = ["ActivitySender", "ChannelAdapter", "ChannelDeliveryError"]
