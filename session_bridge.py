"""
Client for the betting session service.

The bot never places bets itself. It hands the chosen market and the user's
identity to the session service and gets back a one-time betting link. When
the service is unreachable or says no, the user gets a plain link to the
market page instead, so link generation never fails.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

import config

logger = logging.getLogger(__name__)


@dataclass
class ChatUser:
    id: str
    username: str = ""
    discriminator: Optional[str] = None
    avatar: Optional[str] = None


@dataclass
class ChatGuild:
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass
class ChatContext:
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None


def fallback_url(market_id):
    return f"{config.FALLBACK_MARKET_URL}/{market_id}"


class SessionBridge:
    def __init__(self, api_url=config.SESSION_API_URL, ui_domain=config.UI_DOMAIN,
                 timeout=config.REQUEST_TIMEOUT, lookup_timeout=config.SESSION_LOOKUP_TIMEOUT):
        self.api_url = api_url.rstrip('/')
        self.ui_domain = ui_domain.rstrip('/')
        self.timeout = timeout
        self.lookup_timeout = lookup_timeout

    async def _post_json(self, url, payload):
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload) as response:
                response.raise_for_status()
                return await response.json()

    async def _get_json(self, url):
        timeout = aiohttp.ClientTimeout(total=self.lookup_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.json()

    @staticmethod
    def build_payload(user, guild, market, context=None):
        context = context or ChatContext()
        guild = guild or ChatGuild()
        question = market.question or market.title
        title = market.title or market.question
        return {
            "userId": str(user.id),
            "marketId": market.id,
            "discordUser": {
                "id": str(user.id),
                "username": user.username,
                "discriminator": user.discriminator,
                "avatar": user.avatar,
            },
            "guildName": guild.name or "Unknown Guild",
            "guildId": guild.id,
            "channelId": context.channel_id,
            "channelName": context.channel_name,
            "market": {
                "id": market.id,
                "question": question,
                "title": title,
            },
        }

    async def create_session(self, user, guild, market, context=None):
        """Exchange market + user for a betting URL; falls back to the market page on any failure"""
        payload = self.build_payload(user, guild, market, context)
        logger.info(f"Creating session for user {user.id} on market {market.id}")

        try:
            data = await self._post_json(f"{self.api_url}/api/session/create", payload)
        except Exception as e:
            logger.error(f"Error creating session: {e}")
            return fallback_url(market.id)

        if isinstance(data, dict) and data.get('success') is True and data.get('token'):
            betting_url = f"{self.ui_domain}/bet/{data['token']}"
            logger.info(f"Session created for user {user.id}: {betting_url}")
            return betting_url

        logger.error(f"Session creation failed: {data}")
        return fallback_url(market.id)

    async def validate_session(self, token):
        """Session data if the token is valid, otherwise None"""
        try:
            data = await self._get_json(f"{self.api_url}/api/session/validate/{token}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Error validating session: {e}")
            return None
        if isinstance(data, dict) and data.get('success') and data.get('valid'):
            return data.get('data')
        return None

    async def get_session_status(self, token):
        """Session status without consuming the token, None if unknown"""
        try:
            data = await self._get_json(f"{self.api_url}/api/session/status/{token}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Error getting session status: {e}")
            return None
        if isinstance(data, dict) and data.get('success'):
            return data.get('data')
        return None
