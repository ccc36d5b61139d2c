"""
Channel credential encryption
Unit API keys are stored encrypted and only decrypted right before a send
"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..config import SECRET_KEY
from ..models import Unit

logger = logging.getLogger(__name__)

# Encryption for credentials (Fernet needs a 32-byte urlsafe base64 key)
cipher_suite = Fernet(base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest()))


def encrypt_credential(credential: str) -> str:
    """Encrypt a credential for storage"""
    return cipher_suite.encrypt(credential.encode()).decode()


def decrypt_credential(encrypted_credential: str) -> str:
    """Decrypt a stored credential"""
    return cipher_suite.decrypt(encrypted_credential.encode()).decode()


def get_unit_api_key(unit: Unit) -> Optional[str]:
    """
    Return the decrypted Evolution API key of a unit, or None when the unit
    cannot send (no instance, no key, or a key that fails to decrypt)
    """
    if not unit.evolution_instance_name or not unit.evolution_api_key:
        return None

    try:
        return decrypt_credential(unit.evolution_api_key)
    except InvalidToken:
        logger.error(f"❌ Failed to decrypt Evolution API key for unit {unit.id} ({unit.name})")
        return None
