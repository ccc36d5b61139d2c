"""
Evolution API WhatsApp Service
Sends text messages through a unit's Evolution API instance
"""

import logging
from typing import Optional

import httpx

from ..config import EVOLUTION_API_TIMEOUT

logger = logging.getLogger(__name__)


async def send_text(
    api_url: str,
    instance_name: str,
    api_key: str,
    number: str,
    text: str,
    presence_delay_ms: int = 0,
    http_client: Optional[httpx.AsyncClient] = None,
) -> tuple[bool, Optional[str]]:
    """
    Send a WhatsApp text message via Evolution API

    Args:
        api_url: Evolution API base URL
        instance_name: Unit's Evolution instance name
        api_key: Unit's (decrypted) Evolution API key
        number: Normalized destination number (digits with country code)
        text: Message body
        presence_delay_ms: "typing..." time shown before the message lands
        http_client: Optional shared client (a new one is created otherwise)

    Returns:
        Tuple of (success: bool, error_message: Optional[str]). On a non-2xx
        response the error is the raw provider body; on a transport error it
        is the exception text.
    """
    url = f"{api_url.rstrip('/')}/message/sendText/{instance_name}"
    payload = {"number": number, "delay": presence_delay_ms, "text": text}
    headers = {"Content-Type": "application/json", "apikey": api_key}

    logger.info(
        f"🚀 Sending WhatsApp message to {number} via {instance_name} (presence delay: {presence_delay_ms}ms)"
    )

    try:
        if http_client is not None:
            response = await http_client.post(
                url, json=payload, headers=headers, timeout=EVOLUTION_API_TIMEOUT
            )
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url, json=payload, headers=headers, timeout=EVOLUTION_API_TIMEOUT
                )
    except httpx.HTTPError as e:
        logger.error(f"❌ Evolution API connection error for {number}: {str(e) or type(e).__name__}")
        return False, str(e) or type(e).__name__
    except Exception as e:
        logger.error(f"❌ Error sending WhatsApp message to {number}: {str(e)}")
        return False, str(e) or type(e).__name__

    logger.info(f"📡 Evolution API response status: {response.status_code}")

    if response.is_success:
        return True, None

    logger.error(f"❌ Evolution API error [{response.status_code}]: {response.text}")
    return False, response.text
