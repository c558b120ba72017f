"""
Slack Web API client

Every notification in the system goes through ``post_message``. Posting is
best effort: callers get ``None`` back on any failure and carry on, the error
is only logged.
"""

import logging
from typing import Optional

import httpx

from .. import config

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"


async def post_message(
    channel: Optional[str],
    text: str,
    blocks: Optional[list] = None,
    thread_ts: Optional[str] = None,
) -> Optional[dict]:
    """
    Send chat.postMessage.

    Returns:
        Slack's response payload (has ``ts`` and ``channel``) or None when the
        bot token / channel is missing or Slack rejected the call
    """
    if not config.SLACK_BOT_TOKEN:
        logger.debug("⚠️ SLACK_BOT_TOKEN not set, skipping Slack post")
        return None
    if not channel:
        logger.debug("⚠️ No Slack channel for message, skipping")
        return None

    payload = {"channel": channel, "text": text}
    if blocks:
        payload["blocks"] = blocks
    if thread_ts:
        payload["thread_ts"] = thread_ts

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                f"{SLACK_API_URL}/chat.postMessage",
                headers={"Authorization": f"Bearer {config.SLACK_BOT_TOKEN}"},
                json=payload,
            )
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Slack API request failed: {str(e)}")
        return None

    if not data.get("ok"):
        logger.error(f"❌ Slack API error: {data.get('error', 'unknown_error')}")
        return None

    logger.info(f"💬 Slack message posted to {channel} (ts={data.get('ts')})")
    return data


async def post_to_thread(channel: Optional[str], thread_ts: Optional[str], message: dict) -> Optional[dict]:
    """Post a ``{"text", "blocks"}`` message built by ``slack_blocks`` into a thread"""
    if not thread_ts:
        logger.debug("⚠️ No Slack thread to post into, skipping")
        return None
    return await post_message(channel, message["text"], message.get("blocks"), thread_ts)
