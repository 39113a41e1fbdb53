"""
reellive.client.catalog
~~~~~~~~~~~~~~~~~~~~~~~

礼物目录与同步反应样式表。
"""
from __future__ import annotations

from pydantic import BaseModel

from reellive.schemas.events import GiftDescriptor


class ReactionStyle(BaseModel):
    emoji: str
    color: str


# 五种固定的同步反应
REACTION_STYLES: dict[str, ReactionStyle] = {
    "wave": ReactionStyle(emoji="👋", color="#3B82F6"),
    "cheer": ReactionStyle(emoji="🎉", color="#10B981"),
    "fire": ReactionStyle(emoji="🔥", color="#EF4444"),
    "love": ReactionStyle(emoji="❤️", color="#EC4899"),
    "mind_blown": ReactionStyle(emoji="🤯", color="#8B5CF6"),
}

GIFT_CATALOG: dict[str, GiftDescriptor] = {
    gift.id: gift
    for gift in (
        GiftDescriptor(id="rose", name="Rose", emoji="🌹", amount=1, rarity="common"),
        GiftDescriptor(id="heart", name="Heart", emoji="❤️", amount=5, rarity="common"),
        GiftDescriptor(id="thumbs_up", name="Thumbs Up", emoji="👍", amount=10, rarity="common"),
        GiftDescriptor(id="fire", name="Fire", emoji="🔥", amount=25, rarity="rare"),
        GiftDescriptor(id="star", name="Star", emoji="⭐", amount=50, rarity="rare"),
        GiftDescriptor(id="diamond", name="Diamond", emoji="💎", amount=100, rarity="epic"),
        GiftDescriptor(id="crown", name="Crown", emoji="👑", amount=250, rarity="epic"),
        GiftDescriptor(id="rocket", name="Rocket", emoji="🚀", amount=500, rarity="legendary"),
        GiftDescriptor(id="unicorn", name="Unicorn", emoji="🦄", amount=1000, rarity="legendary"),
    )
}
